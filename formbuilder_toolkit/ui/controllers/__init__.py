"""UI controllers coordinating host UI actions with the editing services.

Controllers contain no UI toolkit code; any front-end (Tk, web bridge, CLI)
can drive them.
"""

from .builder_controller import FormBuilderController

__all__ = ["FormBuilderController"]
