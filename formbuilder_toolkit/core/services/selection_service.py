from __future__ import annotations

"""Selection tracking for the form builder.

The tracker holds a single :class:`Selection` (or nothing). It is a weak
reference by id: the tree stays the source of truth, and every read goes
through the snapshot the caller passes in. A selection whose node vanished
is reported as :class:`StaleSelectionError` rather than returning stale data.
"""

import logging
from typing import Optional

from formbuilder_toolkit.core.exceptions import NodeNotFoundError, StaleSelectionError
from formbuilder_toolkit.core.models import FormTree, Node, NodeKind, Selection, display_name

__all__ = ["SelectionTracker", "resolve_selection"]

logger = logging.getLogger(__name__)


class SelectionTracker:
    """Holds the currently addressed node of one editor context."""

    def __init__(self) -> None:
        self._current: Optional[Selection] = None

    @property
    def current(self) -> Optional[Selection]:
        return self._current

    def select(self, tree: FormTree, kind: NodeKind, node_id: str) -> Selection:
        """Select *node_id*, which must exist in *tree* with *kind*.

        Raises
        ------
        NodeNotFoundError
            If the id is unknown or names a node of another kind. The previous
            selection is kept in that case.
        """
        kind = NodeKind(kind)
        node = tree.get(node_id, kind)
        self._current = Selection(kind=kind, node_id=node_id, name=display_name(node))
        logger.debug("Selected %s %s", kind.value, node_id)
        return self._current

    def clear(self) -> None:
        if self._current is not None:
            logger.debug("Selection cleared (was %s)", self._current.node_id)
        self._current = None

    def current_node(self, tree: FormTree) -> Optional[Node]:
        """Resolve the selection against *tree*.

        Returns None when nothing is selected.

        Raises
        ------
        StaleSelectionError
            If the selected id no longer exists or now names another kind.
        """
        selection = self._current
        if selection is None:
            return None
        return resolve_selection(tree, selection)

    def refresh_name(self, tree: FormTree) -> Optional[Selection]:
        """Re-derive the denormalised display name after a patch."""
        selection = self._current
        if selection is None:
            return None
        node = resolve_selection(tree, selection)
        name = display_name(node)
        if name != selection.name:
            self._current = Selection(kind=selection.kind, node_id=selection.node_id, name=name)
        return self._current


def resolve_selection(tree: FormTree, selection: Selection) -> Node:
    """Return the node *selection* refers to or raise StaleSelectionError."""
    try:
        return tree.get(selection.node_id, selection.kind)
    except NodeNotFoundError as exc:
        raise StaleSelectionError(
            f"Selected {selection.kind.value} no longer exists",
            node_id=selection.node_id,
            cause=exc,
        ) from exc
