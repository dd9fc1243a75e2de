from __future__ import annotations

"""Form generation adapters.

``ApiFormGenerator`` asks the remote generation endpoint for a form;
``FallbackFormGenerator`` builds a basic form locally from keywords in the
prompt and is used when the remote service is unavailable.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from formbuilder_toolkit.core.exceptions import GenerationError
from formbuilder_toolkit.core.importers.form_importer import FormImporter
from formbuilder_toolkit.core.integrations.persistence import JsonApiClient
from formbuilder_toolkit.core.models import FormTree

logger = logging.getLogger(__name__)

__all__ = ["ApiFormGenerator", "FallbackFormGenerator"]


class ApiFormGenerator:
    """:class:`FormGenerator` calling ``POST /forms/generate``."""

    def __init__(self, api: Optional[JsonApiClient] = None,
                 importer: Optional[FormImporter] = None) -> None:
        self.api = api or JsonApiClient(error_cls=GenerationError)
        # Generated ids carry no meaning, fresh ones are assigned on import
        self.importer = importer or FormImporter(keep_ids=False)
        self.last_response: Dict[str, Any] = {}

    def generate(self, prompt: str,
                 reference_elements: Optional[Sequence[Dict[str, Any]]] = None) -> FormTree:
        body = {
            "prompt": prompt,
            "selectedElements": list(reference_elements) if reference_elements else None,
            "context": {"timestamp": datetime.now(timezone.utc).isoformat()},
        }
        logger.info("Requesting generated form prompt_len=%d references=%d",
                    len(prompt or ""), len(reference_elements or ()))
        data = self.api.request("POST", "/forms/generate", body)
        return self.importer.import_form(self._extract_form(data))

    def _extract_form(self, data: Any) -> Mapping[str, Any]:
        """Return the form document from a generation response.

        The service answers with the form itself; a ``{"form": {...}, ...}``
        envelope is accepted too, its other members kept in
        :attr:`last_response`.
        """
        if not isinstance(data, Mapping):
            raise GenerationError("Generation service returned no form")
        if isinstance(data.get("form"), Mapping):
            self.last_response = {k: v for k, v in data.items() if k != "form"}
            return data["form"]
        if "pages" in data or "title" in data:
            self.last_response = {}
            return data
        raise GenerationError("Generation service returned no form")


# (keyword, element fields) in display order
_KEYWORD_FIELDS = (
    ("name", {"type": "text", "label": "Full Name", "name": "fullName", "required": True}),
    ("email", {"type": "email", "label": "Email Address", "name": "email", "required": True,
               "validation": {"email": True}}),
    ("phone", {"type": "tel", "label": "Phone Number", "name": "phone", "required": False}),
    ("message", {"type": "textarea", "label": "Message", "name": "message", "required": True}),
)


class FallbackFormGenerator:
    """Local keyword heuristic producing a single-page, single-row form."""

    def __init__(self, importer: Optional[FormImporter] = None) -> None:
        self.importer = importer or FormImporter(keep_ids=False)

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        text = (prompt or "").lower()
        elements: List[Dict[str, Any]] = [
            dict(fields) for keyword, fields in _KEYWORD_FIELDS if keyword in text
        ]
        if not elements:
            elements.append({"type": "text", "label": "Input Field", "name": "input1", "required": False})
        return {
            "title": "Generated Form",
            "subtitle": "Created from your description",
            "description": prompt,
            "isMultiPage": False,
            "status": "draft",
            "pages": [{
                "title": "Page 1",
                "sections": [{
                    "title": "Main Section",
                    "rows": [{"rowName": "row_1", "elements": elements}],
                }],
            }],
        }

    def generate(self, prompt: str,
                 reference_elements: Optional[Sequence[Dict[str, Any]]] = None) -> FormTree:
        payload = self.build_payload(prompt)
        logger.info("Fallback generation fields=%d",
                    len(payload["pages"][0]["sections"][0]["rows"][0]["elements"]))
        return self.importer.import_form(payload)
