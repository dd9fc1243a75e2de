from __future__ import annotations

"""Shared data structures used across the Form Builder Toolkit core.

This package exposes the node dataclasses, immutable tree snapshots and the
value objects used by services. It is intentionally free of UI / I/O code so
that the contained objects can be reused in any context (unit-tests, CLI,
GUI, etc.).
"""

from .nodes import (
    ELEMENT_TYPES,
    FORM_STATUSES,
    ElementNode,
    FormNode,
    Node,
    NodeKind,
    PageNode,
    RowNode,
    SectionNode,
    display_name,
    validate_fields,
)
from .tree import FormTree, TreeDraft
from .selection import Selection
from .drag_drop import (
    CanvasTarget,
    DragPayload,
    DropOutcome,
    DropTarget,
    ElementTarget,
    ExistingElement,
    InsertionAction,
    InsertionMode,
    NewElementTemplate,
    RowTarget,
    SectionTarget,
    SessionState,
)

__all__ = [
    "ELEMENT_TYPES",
    "FORM_STATUSES",
    "ElementNode",
    "FormNode",
    "Node",
    "NodeKind",
    "PageNode",
    "RowNode",
    "SectionNode",
    "display_name",
    "validate_fields",
    "FormTree",
    "TreeDraft",
    "Selection",
    "CanvasTarget",
    "DragPayload",
    "DropOutcome",
    "DropTarget",
    "ElementTarget",
    "ExistingElement",
    "InsertionAction",
    "InsertionMode",
    "NewElementTemplate",
    "RowTarget",
    "SectionTarget",
    "SessionState",
]
