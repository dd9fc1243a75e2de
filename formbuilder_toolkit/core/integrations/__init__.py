from __future__ import annotations

"""Adapters for the external collaborators of the editor.

Key components:
- FormRepository / FormGenerator: protocols the engine depends on
- FormsApiClient: persistence over the forms REST API
- ApiFormGenerator / FallbackFormGenerator: remote and local form generation
"""

from .interfaces import FormGenerator, FormRepository, FormSummary
from .persistence import FormsApiClient, JsonApiClient
from .generation import ApiFormGenerator, FallbackFormGenerator

__all__ = [
    "FormGenerator",
    "FormRepository",
    "FormSummary",
    "FormsApiClient",
    "JsonApiClient",
    "ApiFormGenerator",
    "FallbackFormGenerator",
]
