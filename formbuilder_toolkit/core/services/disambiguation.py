from __future__ import annotations

"""Two-option prompt raised when a drop lands on a non-empty row.

The prompt is a plain data object: nothing blocks while it is pending. The
host UI shows :attr:`DisambiguationPrompt.question`, then calls
:meth:`DisambiguationPrompt.resolve` exactly once with the user's choice.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional

from formbuilder_toolkit.core.exceptions import DragSessionError
from formbuilder_toolkit.core.models import DropOutcome, InsertionAction, InsertionMode

__all__ = ["DisambiguationChoice", "DisambiguationPrompt", "parse_choice"]

logger = logging.getLogger(__name__)


class DisambiguationChoice(str, Enum):
    JOIN_ROW = "join_row"  # candidate A: append to the target row
    NEW_ROW = "new_row"    # candidate B: new row in the row's section


_CHOICE_SPELLINGS: Dict[str, DisambiguationChoice] = {
    "join_row": DisambiguationChoice.JOIN_ROW,
    "joinRow": DisambiguationChoice.JOIN_ROW,
    "new_row": DisambiguationChoice.NEW_ROW,
    "newRow": DisambiguationChoice.NEW_ROW,
}


def parse_choice(choice: object) -> DisambiguationChoice:
    """Map a snake-case or camel-case spelling to a :class:`DisambiguationChoice`."""
    if isinstance(choice, DisambiguationChoice):
        return choice
    try:
        return _CHOICE_SPELLINGS[str(choice)]
    except KeyError:
        raise DragSessionError(
            f"Unknown disambiguation choice {choice!r}; expected 'join_row' or 'new_row'"
        ) from None


class DisambiguationPrompt:
    """Suspended decision between joining a row and opening a new one.

    Parameters
    ----------
    row_id
        The non-empty row the drop landed on.
    section_id
        The section owning *row_id*, which receives the new row for
        ``new_row``.
    on_resolve
        Called with the chosen :class:`InsertionAction`; its return value is
        the result of :meth:`resolve`.
    subject
        Display name of the dragged element, used in :attr:`question`.
    """

    def __init__(self, row_id: str, section_id: str,
                 on_resolve: Callable[[InsertionAction], DropOutcome],
                 subject: str = "the element") -> None:
        self.candidates: Dict[DisambiguationChoice, InsertionAction] = {
            DisambiguationChoice.JOIN_ROW: InsertionAction(InsertionMode.JOIN_ROW, row_id),
            DisambiguationChoice.NEW_ROW: InsertionAction(InsertionMode.NEW_ROW, section_id),
        }
        self.subject = subject
        self._on_resolve = on_resolve
        self._answer: Optional[DisambiguationChoice] = None
        self._withdrawn = False

    @property
    def question(self) -> str:
        return f"Add {self.subject} to this row, or place it in a new row below?"

    @property
    def answer(self) -> Optional[DisambiguationChoice]:
        return self._answer

    @property
    def is_open(self) -> bool:
        return self._answer is None and not self._withdrawn

    def resolve(self, choice: object) -> DropOutcome:
        """Answer the prompt with ``"join_row"`` or ``"new_row"``.

        Raises
        ------
        DragSessionError
            If the prompt was already answered or withdrawn, or *choice* is
            not a known spelling.
        """
        if self._answer is not None:
            raise DragSessionError(
                f"Prompt already answered with '{self._answer.value}'",
                current_state="answered",
            )
        if self._withdrawn:
            raise DragSessionError("Prompt was withdrawn by a cancel", current_state="withdrawn")
        parsed = parse_choice(choice)
        self._answer = parsed
        logger.debug("Disambiguation answered choice=%s", parsed.value)
        return self._on_resolve(self.candidates[parsed])

    def withdraw(self) -> None:
        """Close the prompt without an answer (the session was cancelled)."""
        if self._answer is None:
            self._withdrawn = True
