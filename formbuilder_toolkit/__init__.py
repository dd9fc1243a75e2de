"""Top-level package for the Form Builder Toolkit.

This package hosts the GUI-agnostic form document editing engine. Front-ends
(web bridges, desktop UIs, CLIs) should only depend on the public API exposed
here rather than importing internal modules directly.
"""

from .core.context import EditorContext  # re-export for convenience
from .core.models import FormTree, NodeKind

__all__: list[str] = [
    "EditorContext",
    "FormTree",
    "NodeKind",
]
