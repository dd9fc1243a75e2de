from __future__ import annotations

"""Editor context: the explicit home of per-session editing state.

One :class:`EditorContext` exists per open document. It owns the current
tree snapshot, the selection tracker and the single active drag-drop
session, and it publishes every new snapshot to subscribers. Services
receive the context as an argument instead of reaching for module-level
state, so several documents can be edited side by side.
"""

import logging
from typing import TYPE_CHECKING, Callable, List, Optional

from formbuilder_toolkit.config import ConfigManager
from formbuilder_toolkit.core.models import FormTree
from formbuilder_toolkit.core.services.selection_service import SelectionTracker

if TYPE_CHECKING:
    from formbuilder_toolkit.core.services.drag_drop_service import DragDropSession

logger = logging.getLogger(__name__)

__all__ = ["EditorContext", "SnapshotListener"]

# Called with (new_tree, old_tree) after every publish
SnapshotListener = Callable[[FormTree, FormTree], None]


class EditorContext:
    """Per-document editing state shared by the services.

    Parameters
    ----------
    tree
        Initial snapshot. Defaults to a new form with one empty page.
    enforce_unique_field_names
        Opt-in stricter invariant: element names must be unique across the
        whole form. Read from the ``editor`` configuration section when
        omitted.
    """

    def __init__(self, tree: Optional[FormTree] = None,
                 enforce_unique_field_names: Optional[bool] = None) -> None:
        if enforce_unique_field_names is None:
            editor_config = ConfigManager().get_editor_config()
            enforce_unique_field_names = bool(editor_config.get("enforce_unique_field_names", False))
        self._tree: FormTree = tree if tree is not None else FormTree.new()
        self._listeners: List[SnapshotListener] = []
        self.selection = SelectionTracker()
        self.drag_session: Optional["DragDropSession"] = None
        self.enforce_unique_field_names = enforce_unique_field_names
        self._logger = logging.getLogger(f"{__name__}.EditorContext")

    # -------------------------------------------------------------------------
    # Snapshot access
    # -------------------------------------------------------------------------

    @property
    def tree(self) -> FormTree:
        """The current published snapshot (read-only)."""
        return self._tree

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a "snapshot changed" callback; returns an unsubscribe function."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, tree: FormTree) -> bool:
        """Swap in a fully mutated and renumbered snapshot and notify listeners.

        Returns False (and notifies nobody) when *tree* is the current snapshot.
        """
        if tree is self._tree:
            return False
        old = self._tree
        self._tree = tree
        self._logger.debug("Published snapshot nodes=%d", len(tree))
        for listener in list(self._listeners):
            try:
                listener(tree, old)
            except Exception as exc:
                # A broken consumer must not block the others
                self._logger.error("Snapshot listener %r failed: %s", listener, exc, exc_info=True)
        return True

    def replace_tree(self, tree: FormTree) -> None:
        """Install a new initial snapshot (load, generate, new document).

        Any pending drag session is cancelled and the selection cleared.
        """
        if self.drag_session is not None and self.drag_session.is_active:
            self.drag_session.cancel()
        self.drag_session = None
        self.selection.clear()
        self.publish(tree)
