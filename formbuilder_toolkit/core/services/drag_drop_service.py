from __future__ import annotations

"""Drag-and-drop insertion and move protocol.

A :class:`DragDropSession` follows one gesture from pick-up to commit::

    IDLE -> DRAGGING -> (AWAITING_DISAMBIGUATION)? -> COMMITTED | CANCELLED

The drop target is classified against the live snapshot (see
:func:`classify_drop`). Unambiguous drops commit immediately; a drop on a
non-empty row suspends the session behind a
:class:`~formbuilder_toolkit.core.services.disambiguation.DisambiguationPrompt`.
Every commit runs in one copy-on-write draft, renumbers each touched
container and publishes exactly one snapshot.

Examples
--------
    service = DragDropService()
    session = service.start_drag(ctx, NewElementTemplate("email"))
    outcome = session.drop(RowTarget(row_id))
    if outcome.awaiting:
        outcome = session.resolve("new_row")
"""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Optional, Tuple

from formbuilder_toolkit.core.exceptions import DragSessionError, NodeNotFoundError
from formbuilder_toolkit.core.models import (
    CanvasTarget,
    DragPayload,
    DropOutcome,
    DropTarget,
    ElementTarget,
    ExistingElement,
    FormTree,
    InsertionAction,
    InsertionMode,
    NewElementTemplate,
    NodeKind,
    RowTarget,
    SectionTarget,
    SessionState,
    TreeDraft,
    display_name,
)
from formbuilder_toolkit.core.services.disambiguation import DisambiguationPrompt
from formbuilder_toolkit.core.services.template_catalog import TemplateCatalog
from formbuilder_toolkit.core.services.tree_editing_service import TreeEditingService

if TYPE_CHECKING:
    from formbuilder_toolkit.core.context import EditorContext

__all__ = ["DropPlan", "classify_drop", "DragDropSession", "DragDropService"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DropPlan:
    """Classification of a drop target.

    Exactly one of ``action`` (commit immediately) or ``candidates``
    (``(join_row, new_row)`` awaiting a choice) is set.
    """

    action: Optional[InsertionAction] = None
    candidates: Tuple[InsertionAction, ...] = ()

    @property
    def ambiguous(self) -> bool:
        return self.action is None


def classify_drop(tree: FormTree, target: DropTarget,
                  moving_id: Optional[str] = None) -> DropPlan:
    """Classify *target* against *tree*.

    *moving_id* is the element being moved, if any; it does not count as an
    occupant of its own row.

    Raises
    ------
    NodeNotFoundError
        If the target id is stale or names a node of the wrong kind.
    """
    if isinstance(target, ElementTarget):
        element = tree.get(target.element_id, NodeKind.ELEMENT)
        target = RowTarget(element.parent_id)

    if isinstance(target, RowTarget):
        row = tree.get(target.row_id, NodeKind.ROW)
        occupants = [cid for cid in row.children if cid != moving_id]  # type: ignore[union-attr]
        join = InsertionAction(InsertionMode.JOIN_ROW, row.id)
        if not occupants:
            return DropPlan(action=join)
        return DropPlan(candidates=(join, InsertionAction(InsertionMode.NEW_ROW, row.parent_id)))

    if isinstance(target, SectionTarget):
        section = tree.get(target.section_id, NodeKind.SECTION)
        return DropPlan(action=InsertionAction(InsertionMode.NEW_ROW, section.id))

    if isinstance(target, CanvasTarget):
        page = tree.get(target.page_id, NodeKind.PAGE)
        if not page.children:  # type: ignore[union-attr]
            return DropPlan(action=InsertionAction(InsertionMode.NEW_SECTION, page.id))
        return DropPlan(action=InsertionAction(InsertionMode.NEW_ROW, page.children[0]))  # type: ignore[union-attr]

    raise TypeError(f"Unsupported drop target: {target!r}")


class DragDropSession:
    """State machine for a single drag gesture.

    Sessions are created by :meth:`DragDropService.start_drag`; a session
    that reached ``COMMITTED`` or ``CANCELLED`` is finished and rejects any
    further protocol call with :class:`DragSessionError`.
    """

    def __init__(self, context: EditorContext, payload: DragPayload,
                 editing: TreeEditingService, catalog: TemplateCatalog) -> None:
        self._context = context
        self.payload = payload
        self._editing = editing
        self._catalog = catalog
        self.state = SessionState.IDLE
        self.prompt: Optional[DisambiguationPrompt] = None
        self.outcome: Optional[DropOutcome] = None

    def __repr__(self) -> str:
        return f"DragDropSession(payload={self.payload!r}, state={self.state.value})"

    @property
    def is_active(self) -> bool:
        return self.state in (SessionState.DRAGGING, SessionState.AWAITING_DISAMBIGUATION)

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    def begin(self) -> None:
        """Pick up the payload (``IDLE -> DRAGGING``).

        Raises
        ------
        NodeNotFoundError
            If the template or element does not exist.
        """
        self._require(SessionState.IDLE, "begin")
        self._check_payload(self._context.tree)
        self.state = SessionState.DRAGGING
        logger.debug("Drag started payload=%r", self.payload)

    def drop(self, target: Optional[DropTarget]) -> DropOutcome:
        """Release the payload on *target*; None means no valid target.

        Raises
        ------
        DragSessionError
            If the session is not dragging.
        NodeNotFoundError
            If the target or payload id is stale. The session is cancelled.
        """
        self._require(SessionState.DRAGGING, "drop")
        if target is None:
            logger.debug("Drop without target; cancelling")
            return self._finish(SessionState.CANCELLED, message="Dropped outside the form.")

        tree = self._context.tree
        try:
            self._check_payload(tree)
            if isinstance(target, ElementTarget) and target.element_id == self._moving_id:
                tree.get(target.element_id, NodeKind.ELEMENT)
                logger.info("Edit noop: drop onto itself element=%s", target.element_id)
                return self._finish(SessionState.COMMITTED, element_id=target.element_id,
                                    message="Element is already there.")
            plan = classify_drop(tree, target, moving_id=self._moving_id)
        except NodeNotFoundError as exc:
            logger.warning("Drop FAIL: stale id target=%r error=%s", target, exc)
            self._finish(SessionState.CANCELLED, message=str(exc))
            raise

        if not plan.ambiguous:
            return self._commit(plan.action)  # type: ignore[arg-type]

        join, new = plan.candidates
        self.prompt = DisambiguationPrompt(
            row_id=join.container_id,
            section_id=new.container_id,
            on_resolve=self._commit,
            subject=self._subject_name(tree),
        )
        self.state = SessionState.AWAITING_DISAMBIGUATION
        logger.info("Drop awaiting disambiguation row=%s section=%s", join.container_id, new.container_id)
        self.outcome = DropOutcome(state=self.state, message=self.prompt.question)
        return self.outcome

    def resolve(self, choice: object) -> DropOutcome:
        """Answer the pending prompt with ``"join_row"`` or ``"new_row"``."""
        self._require(SessionState.AWAITING_DISAMBIGUATION, "resolve")
        return self.prompt.resolve(choice)  # type: ignore[union-attr]

    def cancel(self) -> DropOutcome:
        """Abandon the gesture without touching the tree."""
        if not self.is_active:
            raise DragSessionError(
                f"Cannot cancel while {self.state.value}", current_state=self.state.value
            )
        return self._finish(SessionState.CANCELLED, message="Drag cancelled.")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def _moving_id(self) -> Optional[str]:
        if isinstance(self.payload, ExistingElement):
            return self.payload.element_id
        return None

    def _require(self, state: SessionState, action: str) -> None:
        if self.state != state:
            raise DragSessionError(
                f"Cannot {action} while {self.state.value}", current_state=self.state.value
            )

    def _check_payload(self, tree: FormTree) -> None:
        if isinstance(self.payload, NewElementTemplate):
            self._catalog.get(self.payload.template_id)
        elif isinstance(self.payload, ExistingElement):
            tree.get(self.payload.element_id, NodeKind.ELEMENT)
        else:
            raise TypeError(f"Unsupported drag payload: {self.payload!r}")

    def _subject_name(self, tree: FormTree) -> str:
        if isinstance(self.payload, NewElementTemplate):
            return f'"{self._catalog.get(self.payload.template_id).label}"'
        return f'"{display_name(tree.get(self.payload.element_id))}"'

    def _commit(self, action: InsertionAction) -> DropOutcome:
        draft = self._context.tree.edit()
        try:
            element_id, changed = self._apply(draft, action)
        except NodeNotFoundError as exc:
            logger.warning("Drop FAIL: %s mode=%s error=%s", self.payload, action.mode.value, exc)
            self._finish(SessionState.CANCELLED, message=str(exc))
            raise

        if not changed:
            logger.info("Edit noop: drop same_position element=%s", element_id)
            return self._finish(SessionState.COMMITTED, element_id=element_id, action=action,
                                message="Element is already there.")

        touched = tuple(sorted(cid for cid in draft.touched if cid in draft))
        self._editing.commit(self._context, draft)
        logger.info("Edit OK: drop mode=%s element=%s touched=%d",
                    action.mode.value, element_id, len(touched))
        return self._finish(SessionState.COMMITTED, element_id=element_id, action=action,
                            touched=touched, changed=True,
                            message=_COMMIT_MESSAGES[action.mode])

    def _apply(self, draft: TreeDraft, action: InsertionAction) -> Tuple[str, bool]:
        """Carry out *action* in *draft*; return ``(element_id, changed)``."""
        row_id = action.container_id
        if action.mode == InsertionMode.NEW_SECTION:
            section = self._editing.add_node(
                draft, action.container_id, NodeKind.SECTION,
                fields={"title": self._editing.default_section_title},
            )
            row_id = self._editing.add_node(draft, section.id, NodeKind.ROW).id
        elif action.mode == InsertionMode.NEW_ROW:
            row_id = self._editing.add_node(draft, action.container_id, NodeKind.ROW).id

        if isinstance(self.payload, NewElementTemplate):
            template = self._catalog.get(self.payload.template_id)
            element = self._editing.add_node(
                draft, row_id, NodeKind.ELEMENT, fields=template.element_fields(),
                enforce_unique=self._context.enforce_unique_field_names,
            )
            return element.id, True

        element_id = self.payload.element_id
        changed = self._editing.relocate(draft, element_id, row_id)
        return element_id, changed

    def _finish(self, state: SessionState, **outcome) -> DropOutcome:
        self.state = state
        if self.prompt is not None:
            self.prompt.withdraw()
        if self._context.drag_session is self:
            self._context.drag_session = None
        self.outcome = DropOutcome(state=state, **outcome)
        logger.debug("Drag finished state=%s", state.value)
        return self.outcome


_COMMIT_MESSAGES = {
    InsertionMode.JOIN_ROW: "Element added to the row.",
    InsertionMode.NEW_ROW: "Element placed in a new row.",
    InsertionMode.NEW_SECTION: "Element placed in a new section.",
}


class DragDropService:
    """Starts drag sessions and enforces one active session per context.

    Parameters
    ----------
    editing_service
        Service used to mutate the tree; a default one is created if omitted.
    catalog
        Template catalog resolving ``NewElementTemplate`` payloads; loaded
        from configuration if omitted.
    """

    def __init__(self, editing_service: Optional[TreeEditingService] = None,
                 catalog: Optional[TemplateCatalog] = None) -> None:
        self.editing = editing_service or TreeEditingService()
        self.catalog = catalog or TemplateCatalog.from_config()

    def start_drag(self, context: EditorContext, payload: DragPayload) -> DragDropSession:
        """Begin a gesture, implicitly cancelling any session still active."""
        previous = context.drag_session
        if previous is not None and previous.is_active:
            logger.info("Implicit cancel of %r", previous)
            previous.cancel()
        session = DragDropSession(context, payload, self.editing, self.catalog)
        session.begin()
        context.drag_session = session
        return session

    def active_session(self, context: EditorContext) -> DragDropSession:
        """Return the context's active session.

        Raises
        ------
        DragSessionError
            If no gesture is in progress.
        """
        session = context.drag_session
        if session is None or not session.is_active:
            raise DragSessionError("No drag in progress", current_state=SessionState.IDLE.value)
        return session
