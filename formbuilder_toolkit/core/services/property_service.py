from __future__ import annotations

"""Property panel edits on the selected node.

Resolves the selection, validates the patch against the node's field schema
and delegates to :meth:`TreeEditingService.patch`. Order fields and parent
references are not part of any editable schema, so property edits can never
change them.
"""

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional

from formbuilder_toolkit.core.exceptions import StaleSelectionError
from formbuilder_toolkit.core.models import Node, Selection
from formbuilder_toolkit.core.services.selection_service import resolve_selection
from formbuilder_toolkit.core.services.tree_editing_service import TreeEditingService

if TYPE_CHECKING:
    from formbuilder_toolkit.core.context import EditorContext

__all__ = ["PropertyService"]

logger = logging.getLogger(__name__)


class PropertyService:
    """Applies property-panel patches through the tree editing service."""

    def __init__(self, editing_service: Optional[TreeEditingService] = None) -> None:
        self.editing = editing_service or TreeEditingService()

    def apply_patch(self, context: EditorContext, fields: Mapping[str, Any],
                    selection: Optional[Selection] = None) -> Node:
        """Patch the node addressed by *selection* (the current one by default).

        Returns the updated node and refreshes the selection's display name.

        Raises
        ------
        StaleSelectionError
            If the selected node no longer exists, or nothing is selected.
        InvalidFieldError, TypeMismatchError
            If *fields* does not validate; the tree is left unchanged.
        """
        if selection is None:
            selection = context.selection.current
        if selection is None:
            raise StaleSelectionError("Nothing is selected")

        node = resolve_selection(context.tree, selection)
        updated = self.editing.patch(context, node.id, fields)
        current = context.selection.current
        if current is not None and current.node_id == node.id:
            context.selection.refresh_name(context.tree)
        logger.debug("Property patch applied node=%s", node.id)
        return updated
