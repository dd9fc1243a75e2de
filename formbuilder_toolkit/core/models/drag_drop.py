from __future__ import annotations

"""Value types exchanged by the drag-drop protocol.

A gesture carries a *payload* (what is being dragged) and ends on a
*target* (where it was released). Both only hold ids; they are classified
against the live tree when the drop happens.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

__all__ = [
    "SessionState",
    "NewElementTemplate",
    "ExistingElement",
    "DragPayload",
    "CanvasTarget",
    "SectionTarget",
    "RowTarget",
    "ElementTarget",
    "DropTarget",
    "InsertionMode",
    "InsertionAction",
    "DropOutcome",
]


class SessionState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    AWAITING_DISAMBIGUATION = "awaiting_disambiguation"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NewElementTemplate:
    """Dragged from the element palette; nothing exists in the tree yet."""

    template_id: str


@dataclass(frozen=True)
class ExistingElement:
    """Dragged from the canvas; the element is already in the tree."""

    element_id: str


DragPayload = Union[NewElementTemplate, ExistingElement]


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CanvasTarget:
    """Released on the page canvas outside any section."""

    page_id: str


@dataclass(frozen=True)
class SectionTarget:
    section_id: str


@dataclass(frozen=True)
class RowTarget:
    row_id: str


@dataclass(frozen=True)
class ElementTarget:
    """Released near an element; resolved to that element's row."""

    element_id: str


DropTarget = Union[CanvasTarget, SectionTarget, RowTarget, ElementTarget]


# ---------------------------------------------------------------------------
# Planned actions and outcomes
# ---------------------------------------------------------------------------

class InsertionMode(str, Enum):
    JOIN_ROW = "join_row"        # append to an existing row
    NEW_ROW = "new_row"          # new row at the end of a section
    NEW_SECTION = "new_section"  # default section on an empty page, then a new row


@dataclass(frozen=True)
class InsertionAction:
    """Where a dropped element ends up.

    ``container_id`` is a row id for ``JOIN_ROW``, a section id for
    ``NEW_ROW`` and a page id for ``NEW_SECTION``.
    """

    mode: InsertionMode
    container_id: str


@dataclass(frozen=True)
class DropOutcome:
    """Result of a drop or of resolving a pending disambiguation.

    Attributes
    ----------
    state
        Session state after the step.
    element_id
        The inserted or moved element, once committed.
    touched
        Containers renumbered by the commit.
    changed
        False for committed no-op moves and for non-committed outcomes.
    message
        Human-readable summary for inline display.
    """

    state: SessionState
    element_id: Optional[str] = None
    action: Optional[InsertionAction] = None
    touched: Tuple[str, ...] = field(default_factory=tuple)
    changed: bool = False
    message: str = ""

    @property
    def committed(self) -> bool:
        return self.state == SessionState.COMMITTED

    @property
    def awaiting(self) -> bool:
        return self.state == SessionState.AWAITING_DISAMBIGUATION
