from __future__ import annotations

"""Exception classes for the form tree editing engine.

Every condition raised here is local and recoverable: services raise them,
the controller layer catches them and turns them into inline messages for the
host UI. None of them should ever terminate the process.
"""

from typing import Optional, Sequence

__all__ = [
    "FormEditError",
    "NodeNotFoundError",
    "InvalidFieldError",
    "TypeMismatchError",
    "StaleSelectionError",
    "DragSessionError",
    "IntegrationError",
    "PersistenceError",
    "GenerationError",
]


class FormEditError(Exception):
    """Base exception for all tree editing errors.

    All editing exceptions inherit from this base class so callers can
    handle the whole family with a single ``except`` clause.
    """

    def __init__(self, message: str, node_id: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.node_id = node_id
        self.cause = cause

    def __str__(self) -> str:
        if self.node_id:
            return f"[Node: {self.node_id}] {super().__str__()}"
        return super().__str__()


class NodeNotFoundError(FormEditError):
    """Raised when an id does not resolve to a node of the expected kind.

    This covers stale ids (the node or its container vanished) as well as
    containers that cannot hold the requested child kind.
    """
    pass


class InvalidFieldError(FormEditError):
    """Raised when a patch or imported payload names fields outside the
    entity's declared field set.
    """

    def __init__(self, message: str, node_id: Optional[str] = None,
                 fields: Optional[Sequence[str]] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, node_id, cause)
        self.fields = list(fields or [])


class TypeMismatchError(FormEditError):
    """Raised when a value falls outside its fixed vocabulary or Python type.

    The canonical case is changing an element ``type`` to something that is
    not part of the element type vocabulary.
    """

    def __init__(self, message: str, node_id: Optional[str] = None,
                 field: Optional[str] = None, value: object = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, node_id, cause)
        self.field = field
        self.value = value


class StaleSelectionError(FormEditError):
    """Raised when the current selection outlived its node.

    Callers must treat this as "nothing selected", not as a crash.
    """
    pass


class DragSessionError(FormEditError):
    """Raised when a drag-drop session is driven out of protocol order.

    Examples: dropping on a session that already committed, or resolving a
    disambiguation prompt twice.
    """

    def __init__(self, message: str, current_state: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause=cause)
        self.current_state = current_state


class IntegrationError(Exception):
    """Base exception for failures of external collaborators."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.cause = cause


class PersistenceError(IntegrationError):
    """Raised when the forms REST API cannot be reached or rejects a call."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, cause)
        self.status_code = status_code


class GenerationError(IntegrationError):
    """Raised when the remote form generation service fails."""
    pass
