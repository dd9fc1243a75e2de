from __future__ import annotations

"""Integration interface definitions.

Defines the contracts between the editing engine and its external
collaborators: the persistence API and the form generation service. The
engine depends on these protocols only; the concrete adapters in this package
are one possible implementation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from formbuilder_toolkit.core.models import FormTree

__all__ = ["FormSummary", "FormRepository", "FormGenerator"]


@dataclass(frozen=True)
class FormSummary:
    """Lightweight listing entry returned by :meth:`FormRepository.list_forms`."""

    form_id: str
    title: str
    status: str = "draft"
    updated_at: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "FormSummary":
        return cls(
            form_id=str(data.get("id", "")),
            title=str(data.get("title") or ""),
            status=str(data.get("status") or "draft"),
            updated_at=data.get("updatedAt"),
        )


@runtime_checkable
class FormRepository(Protocol):
    """Protocol for form persistence.

    The engine treats a loaded form as its initial snapshot and only calls
    :meth:`update_form` when the user chooses to save.
    """

    def list_forms(self) -> List[FormSummary]:
        ...

    def get_form(self, form_id: str) -> FormTree:
        ...

    def create_form(self, tree: FormTree) -> FormTree:
        ...

    def update_form(self, form_id: str, partial: Mapping[str, Any]) -> FormTree:
        """Send *partial* (a camel-case JSON object) and return the stored form."""
        ...

    def delete_form(self, form_id: str) -> None:
        ...


@runtime_checkable
class FormGenerator(Protocol):
    """Protocol for natural-language form generation.

    The result is accepted as a new initial snapshot. Malformed output fails
    with InvalidFieldError or TypeMismatchError, exactly as a manual edit.
    """

    def generate(self, prompt: str,
                 reference_elements: Optional[Sequence[Dict[str, Any]]] = None) -> FormTree:
        ...
