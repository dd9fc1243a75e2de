from __future__ import annotations

"""Importers turning external form documents into tree snapshots.

Key components:
- FormImporter: builds a FormTree from the camel-case JSON used by the forms
  REST API and the generation service
"""

from .form_importer import FormImporter, import_form

__all__ = ["FormImporter", "import_form"]
