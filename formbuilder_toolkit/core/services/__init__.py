from __future__ import annotations

"""High-level editing services (tree edits, drag-drop, selection, properties).

Services take the EditorContext they act on as an argument; none of them
keeps per-document state of its own.
"""

from .tree_editing_service import OperationResult, TreeEditingService  # noqa: F401
from .selection_service import SelectionTracker  # noqa: F401
from .drag_drop_service import DragDropService, DragDropSession  # noqa: F401
from .disambiguation import DisambiguationPrompt  # noqa: F401
from .property_service import PropertyService  # noqa: F401
from .template_catalog import TemplateCatalog  # noqa: F401

__all__: list[str] = [
    "OperationResult",
    "TreeEditingService",
    "SelectionTracker",
    "DragDropService",
    "DragDropSession",
    "DisambiguationPrompt",
    "PropertyService",
    "TemplateCatalog",
]
