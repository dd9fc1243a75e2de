from __future__ import annotations

"""Service layer for structural and property edits on the form tree.

This module provides a UI-agnostic, testable service that owns the four
mutating operations of the document tree: create-child, delete-child,
move-child and patch.

Scope and guarantees:
- Operates purely in-memory on an EditorContext, no file I/O nor UI imports.
- Every operation runs in a copy-on-write TreeDraft. On success the touched
  containers are renumbered and exactly one snapshot is published; on
  failure an exception is raised and the published snapshot is untouched.
- Order fields and parent references are written by the renumbering service
  only, never by callers.

Examples
--------
Basic usage:

    service = TreeEditingService()
    section_id = service.create_child(ctx, page_id, NodeKind.SECTION)
    row_id = service.create_child(ctx, section_id, NodeKind.ROW)
    service.create_child(ctx, row_id, NodeKind.ELEMENT, fields={"type": "email"})

"""

from dataclasses import dataclass
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from formbuilder_toolkit.config import ConfigManager
from formbuilder_toolkit.core.exceptions import InvalidFieldError, NodeNotFoundError
from formbuilder_toolkit.core.models import (
    FormTree,
    Node,
    NodeKind,
    TreeDraft,
    validate_fields,
)
from formbuilder_toolkit.core.models.nodes import NODE_CLASSES, child_kind, parent_kind
from formbuilder_toolkit.core.services.renumbering_service import renumber_touched
from formbuilder_toolkit.core.utils import format_title, generate_node_id, next_field_name, slugify

if TYPE_CHECKING:
    from formbuilder_toolkit.core.context import EditorContext


__all__ = ["OperationResult", "TreeEditingService", "find_duplicate_field_names"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Result of an editing operation as reported to the host UI.

    Attributes
    ----------
    success
        Whether the operation completed successfully.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None


def find_duplicate_field_names(tree: FormTree) -> Dict[str, List[str]]:
    """Return ``{name: [element ids...]}`` for every element name used twice or more."""
    by_name: Dict[str, List[str]] = defaultdict(list)
    for element in tree.iter_nodes(NodeKind.ELEMENT):
        by_name[element.name].append(element.id)  # type: ignore[union-attr]
    return {name: ids for name, ids in by_name.items() if len(ids) > 1}


class TreeEditingService:
    """Encapsulates the mutating operations on a form tree.

    The public operations take an :class:`EditorContext`, edit a draft of its
    current snapshot and publish the result. The draft-level helpers
    (:meth:`add_node`, :meth:`relocate`, :meth:`commit`) are shared with the
    drag-drop session so that a drop composed of several structural steps
    still publishes a single snapshot.

    Parameters
    ----------
    editor_config
        The ``editor`` configuration section. Read from :class:`ConfigManager`
        when omitted.
    """

    def __init__(self, editor_config: Optional[Mapping[str, Any]] = None) -> None:
        if editor_config is None:
            editor_config = ConfigManager().get_editor_config()
        self._config: Dict[str, Any] = dict(editor_config)
        self._logger = logging.getLogger(f"{__name__}.TreeEditingService")

    @property
    def page_title_pattern(self) -> str:
        return self._config.get("page_title_pattern") or "Page {number}"

    @property
    def section_title_pattern(self) -> str:
        return self._config.get("section_title_pattern") or "Section {number}"

    @property
    def default_section_title(self) -> str:
        return self._config.get("default_section_title") or "Section 1"

    @property
    def new_form_title(self) -> str:
        return self._config.get("new_form_title") or "Untitled Form"

    def new_tree(self) -> FormTree:
        """Create a fresh form with one default page and no sections."""
        return FormTree.new(
            title=self.new_form_title,
            page_title=format_title(self.page_title_pattern, 1),
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def create_child(
        self,
        context: EditorContext,
        parent_id: str,
        kind: NodeKind,
        at_index: Optional[int] = None,
        fields: Optional[Mapping[str, Any]] = None,
        node_id: Optional[str] = None,
    ) -> str:
        """Create a node of *kind* under *parent_id* and return its id.

        Raises
        ------
        NodeNotFoundError
            If the parent does not exist or cannot hold *kind*.
        InvalidFieldError, TypeMismatchError
            If *fields* does not validate against the kind's schema.
        """
        kind = NodeKind(kind)
        logger.info("Edit: create_child kind=%s parent=%s index=%s", kind.value, parent_id, at_index)
        draft = context.tree.edit()
        try:
            node = self.add_node(draft, parent_id, kind, fields=fields, at_index=at_index,
                                 node_id=node_id,
                                 enforce_unique=context.enforce_unique_field_names)
        except Exception as exc:
            logger.warning("Edit FAIL: create_child kind=%s parent=%s error=%s", kind.value, parent_id, exc)
            raise
        self.commit(context, draft)
        logger.info("Edit OK: create_child kind=%s id=%s", kind.value, node.id)
        return node.id

    def delete_child(self, context: EditorContext, node_id: str) -> List[str]:
        """Delete *node_id* and all its descendants; return the removed ids.

        Deleting the form itself leaves an empty tree.
        """
        logger.info("Edit: delete_child node=%s", node_id)
        draft = context.tree.edit()
        try:
            removed = draft.remove_subtree(node_id)
        except NodeNotFoundError:
            logger.warning("Edit FAIL: delete_child node_not_found node=%s", node_id)
            raise
        self.commit(context, draft)
        logger.info("Edit OK: delete_child node=%s removed=%d", node_id, len(removed))
        return [n.id for n in removed]

    def move_child(
        self,
        context: EditorContext,
        node_id: str,
        new_parent_id: str,
        at_index: Optional[int] = None,
    ) -> bool:
        """Move a non-root node into *new_parent_id* at *at_index*.

        Returns False, publishing nothing, when the node would end up where it
        already is.
        """
        logger.info("Edit: move_child node=%s parent=%s index=%s", node_id, new_parent_id, at_index)
        draft = context.tree.edit()
        try:
            changed = self.relocate(draft, node_id, new_parent_id, at_index)
        except NodeNotFoundError as exc:
            logger.warning("Edit FAIL: move_child node=%s parent=%s error=%s", node_id, new_parent_id, exc)
            raise
        if not changed:
            logger.info("Edit noop: move_child same_position node=%s", node_id)
            return False
        self.commit(context, draft)
        logger.info("Edit OK: move_child node=%s parent=%s", node_id, new_parent_id)
        return True

    def patch(self, context: EditorContext, node_id: str, fields: Mapping[str, Any]) -> Node:
        """Apply *fields* to one node, all or nothing, and return the updated node.

        ``id``, ``parent_id``, order fields and ``children`` are never
        editable.

        Raises
        ------
        NodeNotFoundError
            If *node_id* does not exist.
        InvalidFieldError
            For fields outside the node's editable set, a duplicate element
            name when unique names are enforced, or turning ``is_multi_page``
            on for a form with fewer than two pages.
        TypeMismatchError
            For values outside their vocabulary or of the wrong type.
        """
        logger.info("Edit: patch node=%s fields=%s", node_id, sorted(fields))
        tree = context.tree
        try:
            node = tree.get(node_id)
            changes = validate_fields(node.kind, fields, node_id=node_id)
            if context.enforce_unique_field_names and "name" in changes:
                others = [n for n in tree.iter_nodes(NodeKind.ELEMENT) if n.id != node_id]
                self._check_unique_name(changes["name"], [n.name for n in others], node_id)  # type: ignore[union-attr]
            if (changes.get("is_multi_page") is True and not node.is_multi_page  # type: ignore[union-attr]
                    and len(node.children) < 2):  # type: ignore[union-attr]
                # Users may clear the flag; only a second page may raise it
                raise InvalidFieldError(
                    "is_multi_page can only be set on a form with more than one page",
                    node_id=node_id, fields=["is_multi_page"],
                )
        except Exception as exc:
            logger.warning("Edit FAIL: patch node=%s error=%s", node_id, exc)
            raise

        changes = {k: v for k, v in changes.items() if getattr(node, k) != v}
        if not changes:
            logger.info("Edit noop: patch node=%s unchanged", node_id)
            return node
        draft = tree.edit()
        updated = draft.replace(node_id, **changes)
        self.commit(context, draft, apply_multi_page=False)
        logger.info("Edit OK: patch node=%s fields=%s", node_id, sorted(changes))
        return updated

    # -------------------------------------------------------------------------
    # Draft-level helpers
    # -------------------------------------------------------------------------

    def add_node(
        self,
        draft: TreeDraft,
        parent_id: str,
        kind: NodeKind,
        fields: Optional[Mapping[str, Any]] = None,
        at_index: Optional[int] = None,
        node_id: Optional[str] = None,
        enforce_unique: bool = False,
    ) -> Node:
        """Build a node of *kind* with defaults and link it into *parent_id*."""
        kind = NodeKind(kind)
        parent = self._get_container(draft, parent_id, kind)
        values = validate_fields(kind, fields or {}, node_id=node_id)

        if node_id is None:
            node_id = generate_node_id(kind.value, draft)
        elif node_id in draft:
            raise InvalidFieldError(f"Id '{node_id}' is already in use", node_id=node_id, fields=["id"])
        elif draft.is_retired(node_id):
            raise InvalidFieldError(f"Id '{node_id}' belonged to a deleted node",
                                    node_id=node_id, fields=["id"])

        number = len(parent.children) + 1  # type: ignore[union-attr]
        if kind == NodeKind.PAGE:
            values.setdefault("title", format_title(self.page_title_pattern, number))
        elif kind == NodeKind.SECTION:
            values.setdefault("title", format_title(self.section_title_pattern, number))
        elif kind == NodeKind.ROW:
            prefix = slugify(parent.title) or "section"  # type: ignore[union-attr]
            values.setdefault("row_name", f"{prefix}_row_{number}")
        elif kind == NodeKind.ELEMENT:
            values.setdefault("type", "text")
            existing = self._element_names(draft)
            if "name" not in values:
                values["name"] = next_field_name(values["type"], existing)
            elif enforce_unique:
                self._check_unique_name(values["name"], existing, node_id)

        node = NODE_CLASSES[kind](id=node_id, parent_id=parent_id, **values)
        draft.insert_child(parent_id, node, self._clamp(at_index, number - 1))
        return node

    def relocate(self, draft: TreeDraft, node_id: str, new_parent_id: str,
                 at_index: Optional[int] = None) -> bool:
        """Detach *node_id* and re-insert it under *new_parent_id*.

        Returns False, leaving *draft* untouched, for a same-position move.
        """
        node = draft.get(node_id)
        if node.parent_id is None:
            raise NodeNotFoundError("The form cannot be moved", node_id=node_id)
        new_parent = self._get_container(draft, new_parent_id, node.kind)

        if new_parent_id == node.parent_id:
            siblings = list(new_parent.children)  # type: ignore[union-attr]
            planned = [cid for cid in siblings if cid != node_id]
            planned.insert(self._clamp(at_index, len(planned)), node_id)
            if planned == siblings:
                return False

        draft.detach(node_id)
        target_size = len(draft.children_ids(new_parent_id))
        draft.insert_child(new_parent_id, draft.get(node_id), self._clamp(at_index, target_size))
        return True

    def commit(self, context: EditorContext, draft: TreeDraft,
               apply_multi_page: bool = True) -> bool:
        """Renumber touched containers, commit *draft* and publish it.

        A form that ends up with more than one page is flagged
        ``is_multi_page``; the flag is never cleared here. Returns whether a
        new snapshot was published.
        """
        return context.publish(self.finalize(draft, apply_multi_page))

    def finalize(self, draft: TreeDraft, apply_multi_page: bool = True) -> FormTree:
        """Renumber touched containers and return the committed snapshot."""
        renumbered = renumber_touched(draft)
        if apply_multi_page and draft.root_id is not None:
            root = draft.get(draft.root_id)
            if len(root.children) > 1 and not root.is_multi_page:  # type: ignore[union-attr]
                draft.replace(root.id, is_multi_page=True)
                self._logger.debug("Form %s switched to multi-page", root.id)
        self._logger.debug("Commit renumbered=%s", renumbered)
        return draft.commit()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _get_container(draft: TreeDraft, parent_id: str, kind: NodeKind) -> Node:
        expected = parent_kind(kind)
        if expected is None:
            raise NodeNotFoundError("A form cannot be placed inside another node")
        parent = draft.find(parent_id)
        if parent is None:
            raise NodeNotFoundError(f"No container with id '{parent_id}'", node_id=parent_id)
        if child_kind(parent.kind) != kind:
            raise NodeNotFoundError(
                f"A {parent.kind.value} cannot hold a {kind.value}", node_id=parent_id
            )
        return parent

    @staticmethod
    def _clamp(at_index: Optional[int], size: int) -> int:
        """Resolve *at_index* the way ``list.insert`` does for a list of *size*."""
        if at_index is None:
            return size
        if at_index < 0:
            return max(0, size + at_index)
        return min(at_index, size)

    @staticmethod
    def _element_names(draft: TreeDraft) -> List[str]:
        if draft.root_id is None:
            return []
        names: List[str] = []
        stack = [draft.root_id]
        while stack:
            node = draft.get(stack.pop())
            if node.kind == NodeKind.ELEMENT:
                names.append(node.name)  # type: ignore[union-attr]
            else:
                stack.extend(node.children)  # type: ignore[union-attr]
        return names

    @staticmethod
    def _check_unique_name(name: str, existing: List[str], node_id: Optional[str]) -> None:
        if name in existing:
            raise InvalidFieldError(
                f"Field name '{name}' is already used in this form",
                node_id=node_id, fields=["name"],
            )
