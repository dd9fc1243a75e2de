from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from formbuilder_toolkit.core.context import EditorContext
from formbuilder_toolkit.core.exceptions import (
    FormEditError,
    GenerationError,
    IntegrationError,
    StaleSelectionError,
)
from formbuilder_toolkit.core.generators.payload_builder import build_form_payload, element_payloads
from formbuilder_toolkit.core.integrations.interfaces import FormGenerator, FormRepository, FormSummary
from formbuilder_toolkit.core.models import (
    DropOutcome,
    DropTarget,
    ExistingElement,
    FormTree,
    NewElementTemplate,
    Node,
    NodeKind,
    PageNode,
    display_name,
)
from formbuilder_toolkit.core.services.drag_drop_service import DragDropService
from formbuilder_toolkit.core.services.property_service import PropertyService
from formbuilder_toolkit.core.services.tree_editing_service import (
    OperationResult,
    TreeEditingService,
    find_duplicate_field_names,
)

STALE_SELECTION_MESSAGE = "That item no longer exists; selection cleared."


class FormBuilderController:
    """Controller coordinating form builder UI actions with the editing services.

    This controller maintains transient UI-related state (active page, last
    status message) and delegates operations to the services. It contains no
    UI toolkit code and does not perform logging; the services log.

    Parameters
    ----------
    context : EditorContext
        The editing context of the open document.
    editing_service : TreeEditingService, optional
        Service performing structural edits.
    drag_drop_service : DragDropService, optional
        Service running drag sessions; shares the editing service by default.
    property_service : PropertyService, optional
        Service applying property-panel patches.
    repository : FormRepository, optional
        Persistence backend; document commands fail softly without one.
    generator : FormGenerator, optional
        Remote generator tried first by :meth:`generate_form`.
    fallback_generator : FormGenerator, optional
        Local generator used when the remote one fails or is absent.

    Notes
    -----
    - Every public method is non-raising: editing and integration errors are
      reported through ``OperationResult(success=False, ...)`` or plain
      return values plus :attr:`last_message`.
    - No Tkinter or UI framework code should appear in this module.
    """

    def __init__(
        self,
        context: EditorContext,
        editing_service: Optional[TreeEditingService] = None,
        drag_drop_service: Optional[DragDropService] = None,
        property_service: Optional[PropertyService] = None,
        repository: Optional[FormRepository] = None,
        generator: Optional[FormGenerator] = None,
        fallback_generator: Optional[FormGenerator] = None,
    ) -> None:
        # Dependencies
        self.context: EditorContext = context
        self.editing_service: TreeEditingService = editing_service or TreeEditingService()
        self.drag_drop_service: DragDropService = drag_drop_service or DragDropService(self.editing_service)
        self.property_service: PropertyService = property_service or PropertyService(self.editing_service)
        self.repository: Optional[FormRepository] = repository
        self.generator: Optional[FormGenerator] = generator
        self.fallback_generator: Optional[FormGenerator] = fallback_generator

        # Transient UI-related state
        self.active_page_index: int = 0
        self.remote_form_id: Optional[str] = None  # id of the persisted record, once saved or loaded
        self.last_message: str = ""

    # ---------------------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------------------

    def _run(self, action: Callable[[], OperationResult]) -> OperationResult:
        """Execute *action*, converting editing and integration errors to results."""
        try:
            result = action()
        except StaleSelectionError:
            self.context.selection.clear()
            result = OperationResult(False, STALE_SELECTION_MESSAGE, {"error": "stale_selection"})
        except FormEditError as exc:
            result = OperationResult(False, str(exc), {"error": type(exc).__name__, "node_id": exc.node_id})
        except IntegrationError as exc:
            result = OperationResult(False, str(exc), {"error": type(exc).__name__})
        self.last_message = result.message
        return result

    def _fail(self, message: str) -> OperationResult:
        self.last_message = message
        return OperationResult(False, message)

    def _clamp_active_page(self) -> None:
        count = len(self.context.tree.pages)
        if self.active_page_index >= count:
            self.active_page_index = max(0, count - 1)

    def _install_tree(self, tree: FormTree) -> None:
        self.context.replace_tree(tree)
        self.active_page_index = 0

    # ---------------------------------------------------------------------------------
    # Pages and toolbar
    # ---------------------------------------------------------------------------------

    def set_active_page(self, index: int) -> bool:
        """Switch the active page; returns False for an out-of-range index."""
        if not isinstance(index, int) or not 0 <= index < len(self.context.tree.pages):
            return False
        self.active_page_index = index
        return True

    def current_page(self) -> Optional[PageNode]:
        self._clamp_active_page()
        pages = self.context.tree.pages
        if not pages:
            return None
        return pages[self.active_page_index]

    def handle_add_page(self) -> OperationResult:
        """Append a page and make it the active one."""
        def _add() -> OperationResult:
            page_id = self.editing_service.create_child(
                self.context, self.context.tree.root_id, NodeKind.PAGE
            )
            self.active_page_index = len(self.context.tree.pages) - 1
            return OperationResult(True, "Page added.", {"node_id": page_id})
        if self.context.tree.is_empty:
            return self._fail("There is no form to add a page to.")
        return self._run(_add)

    def handle_add_section(self) -> OperationResult:
        """Append a section to the active page."""
        page = self.current_page()
        if page is None:
            return self._fail("There is no page to add a section to.")
        return self._run(lambda: OperationResult(
            True, "Section added.",
            {"node_id": self.editing_service.create_child(self.context, page.id, NodeKind.SECTION)},
        ))

    def handle_add_row(self, section_id: str) -> OperationResult:
        return self._run(lambda: OperationResult(
            True, "Row added.",
            {"node_id": self.editing_service.create_child(self.context, section_id, NodeKind.ROW)},
        ))

    def handle_delete(self, node_id: str) -> OperationResult:
        """Delete a node and its descendants; a selection inside it is cleared."""
        def _delete() -> OperationResult:
            removed = self.editing_service.delete_child(self.context, node_id)
            current = self.context.selection.current
            if current is not None and current.node_id in removed:
                self.context.selection.clear()
            self._clamp_active_page()
            return OperationResult(True, f"Deleted {len(removed)} item(s).", {"removed": removed})
        return self._run(_delete)

    def handle_move(self, node_id: str, parent_id: str, index: Optional[int] = None) -> OperationResult:
        def _move() -> OperationResult:
            changed = self.editing_service.move_child(self.context, node_id, parent_id, index)
            if not changed:
                return OperationResult(True, "Already in place.", {"changed": False})
            return OperationResult(True, "Moved.", {"changed": True})
        return self._run(_move)

    # ---------------------------------------------------------------------------------
    # Selection and properties
    # ---------------------------------------------------------------------------------

    def select(self, kind: NodeKind, node_id: str) -> OperationResult:
        def _select() -> OperationResult:
            selection = self.context.selection.select(self.context.tree, kind, node_id)
            return OperationResult(True, f"Selected {selection.name}.", {"kind": selection.kind.value})
        return self._run(_select)

    def clear_selection(self) -> None:
        self.context.selection.clear()

    def get_selected_node(self) -> Optional[Node]:
        """Return the selected node, or None.

        A selection that outlived its node is cleared and
        :attr:`last_message` explains why.
        """
        try:
            return self.context.selection.current_node(self.context.tree)
        except StaleSelectionError:
            self.context.selection.clear()
            self.last_message = STALE_SELECTION_MESSAGE
            return None

    def handle_property_update(self, fields: Mapping[str, Any]) -> OperationResult:
        """Patch the selected node from the property panel."""
        def _patch() -> OperationResult:
            node = self.property_service.apply_patch(self.context, fields)
            return OperationResult(True, "Properties updated.", {"node_id": node.id})
        return self._run(_patch)

    # ---------------------------------------------------------------------------------
    # Drag and drop
    # ---------------------------------------------------------------------------------

    @staticmethod
    def _outcome_result(outcome: DropOutcome) -> OperationResult:
        details: Dict[str, Any] = {"state": outcome.state.value, "changed": outcome.changed}
        if outcome.element_id:
            details["element_id"] = outcome.element_id
        if outcome.awaiting:
            details["choices"] = ["join_row", "new_row"]
        return OperationResult(outcome.committed or outcome.awaiting, outcome.message, details)

    def begin_template_drag(self, template_id: str) -> OperationResult:
        return self._run(lambda: OperationResult(True, "Dragging.", {
            "state": self.drag_drop_service.start_drag(
                self.context, NewElementTemplate(template_id)).state.value,
        }))

    def begin_element_drag(self, element_id: str) -> OperationResult:
        return self._run(lambda: OperationResult(True, "Dragging.", {
            "state": self.drag_drop_service.start_drag(
                self.context, ExistingElement(element_id)).state.value,
        }))

    def handle_drop(self, target: Optional[DropTarget]) -> OperationResult:
        """Release the dragged item; awaiting results carry the choices to offer."""
        return self._run(lambda: self._outcome_result(
            self.drag_drop_service.active_session(self.context).drop(target)
        ))

    def resolve_drop(self, choice: str) -> OperationResult:
        return self._run(lambda: self._outcome_result(
            self.drag_drop_service.active_session(self.context).resolve(choice)
        ))

    def cancel_drag(self) -> OperationResult:
        session = self.context.drag_session
        if session is None or not session.is_active:
            return OperationResult(True, "Nothing to cancel.", {"state": "idle"})
        return self._run(lambda: self._outcome_result(session.cancel()))

    # ---------------------------------------------------------------------------------
    # Documents
    # ---------------------------------------------------------------------------------

    def new_form(self) -> OperationResult:
        self._install_tree(self.editing_service.new_tree())
        self.remote_form_id = None
        self.last_message = "New form created."
        return OperationResult(True, self.last_message, {"node_id": self.context.tree.root_id})

    def load_form(self, form_id: str) -> OperationResult:
        if self.repository is None:
            return self._fail("No form repository configured.")

        def _load() -> OperationResult:
            tree = self.repository.get_form(form_id)
            self._install_tree(tree)
            self.remote_form_id = form_id
            return OperationResult(True, f"Loaded '{tree.root.title}'.", {"form_id": form_id})
        return self._run(_load)

    def save_form(self) -> OperationResult:
        """Create the record on first save, update it afterwards."""
        if self.repository is None:
            return self._fail("No form repository configured.")
        if self.context.tree.is_empty:
            return self._fail("There is no form to save.")

        def _save() -> OperationResult:
            if self.remote_form_id is None:
                stored = self.repository.create_form(self.context.tree)
                self.remote_form_id = stored.root_id
                return OperationResult(True, "Form created.", {"form_id": self.remote_form_id})
            self.repository.update_form(self.remote_form_id, build_form_payload(self.context.tree))
            return OperationResult(True, "Form saved.", {"form_id": self.remote_form_id})
        return self._run(_save)

    def delete_form(self) -> OperationResult:
        """Delete the persisted record and start over with a new form."""
        if self.repository is None or self.remote_form_id is None:
            return self._fail("This form has not been saved.")

        def _delete() -> OperationResult:
            form_id = self.remote_form_id
            self.repository.delete_form(form_id)
            self.new_form()
            return OperationResult(True, "Form deleted.", {"form_id": form_id})
        return self._run(_delete)

    def list_forms(self) -> List[FormSummary]:
        """Return the stored forms; an empty list (and a message) on failure."""
        if self.repository is None:
            return []
        try:
            return self.repository.list_forms()
        except IntegrationError as exc:
            self.last_message = str(exc)
            return []

    def generate_form(self, prompt: str,
                      reference_element_ids: Optional[List[str]] = None) -> OperationResult:
        """Replace the document with a generated form.

        The remote generator is tried first; on GenerationError (or without
        one) the local fallback heuristic is used.
        """
        references = element_payloads(self.context.tree, list(reference_element_ids or []))

        def _generate() -> OperationResult:
            used_fallback = False
            tree = None
            if self.generator is not None:
                try:
                    tree = self.generator.generate(prompt, references or None)
                except GenerationError:
                    if self.fallback_generator is None:
                        raise
            if tree is None:
                if self.fallback_generator is None:
                    return OperationResult(False, "No form generator configured.")
                tree = self.fallback_generator.generate(prompt, references or None)
                used_fallback = True
            self._install_tree(tree)
            self.remote_form_id = None
            message = "Generated a basic form." if used_fallback else "Form generated."
            return OperationResult(True, message, {"fallback": used_fallback})
        return self._run(_generate)

    # ---------------------------------------------------------------------------------
    # Read helpers
    # ---------------------------------------------------------------------------------

    def get_summary(self) -> str:
        """Return the toolbar summary, e.g. ``"2 pages • 3 sections"``."""
        tree = self.context.tree
        pages = tree.count(NodeKind.PAGE)
        sections = tree.count(NodeKind.SECTION)
        return (
            f"{pages} page{'s' if pages != 1 else ''} • "
            f"{sections} section{'s' if sections != 1 else ''}"
        )

    def get_node_path(self, node_id: str) -> List[Tuple[str, str]]:
        """Get the breadcrumb for a node.

        Returns a list of ``(display name, id)`` tuples from the form down to
        the node itself. Empty list if the node is not found.
        """
        tree = self.context.tree
        node = tree.find(node_id)
        if node is None:
            return []
        ids = list(tree.get_path(node_id)) + [node_id]
        return [(display_name(tree.get(i)), i) for i in ids]

    def find_duplicate_field_names(self) -> Dict[str, List[str]]:
        return find_duplicate_field_names(self.context.tree)
