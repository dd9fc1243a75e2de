from __future__ import annotations

"""REST client for the forms persistence API.

Talks to the JSON endpoints ``/forms`` and ``/forms/{id}`` with
:mod:`requests`. Payloads are the camel-case documents produced by
:func:`~formbuilder_toolkit.core.generators.payload_builder.build_form_payload`
and parsed back with the form importer.
"""

import logging
from typing import Any, List, Mapping, Optional, Type

import requests

from formbuilder_toolkit.config import ConfigManager
from formbuilder_toolkit.core.exceptions import IntegrationError, PersistenceError
from formbuilder_toolkit.core.generators.payload_builder import build_form_payload
from formbuilder_toolkit.core.importers.form_importer import FormImporter
from formbuilder_toolkit.core.integrations.interfaces import FormSummary
from formbuilder_toolkit.core.models import FormTree
from formbuilder_toolkit.version import get_app_version

logger = logging.getLogger(__name__)

__all__ = ["JsonApiClient", "FormsApiClient"]

DEFAULT_API_BASE_URL = "http://localhost:3001/api"
DEFAULT_TIMEOUT = 10  # seconds


class JsonApiClient:
    """Thin JSON-over-HTTP helper shared by the integration adapters.

    Parameters
    ----------
    base_url, timeout
        Override the ``integrations`` configuration section.
    session
        A :class:`requests.Session` (or compatible object); one is created
        when omitted.
    error_cls
        Exception raised for transport and HTTP failures.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None,
                 error_cls: Type[IntegrationError] = PersistenceError) -> None:
        config = ConfigManager().get_integrations_config() if base_url is None or timeout is None else {}
        self.base_url = (base_url or config.get("api_base_url") or DEFAULT_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else config.get("timeout_seconds", DEFAULT_TIMEOUT)
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": f"formbuilder-toolkit/{get_app_version()}",
        })
        self.error_cls = error_cls

    def request(self, method: str, path: str, payload: Optional[Any] = None) -> Any:
        """Send one request and return the decoded JSON body (None if empty)."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug("HTTP %s %s", method, url)
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("HTTP %s %s failed: %s", method, url, exc)
            raise self._error(f"Could not reach {url}: {exc}", cause=exc) from exc

        if not 200 <= response.status_code < 300:
            logger.warning("HTTP %s %s returned %s", method, url, response.status_code)
            raise self._error(
                f"{method} {path} failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise self._error(f"{method} {path} returned invalid JSON", cause=exc) from exc

    def _error(self, message: str, status_code: Optional[int] = None,
               cause: Optional[Exception] = None) -> IntegrationError:
        if issubclass(self.error_cls, PersistenceError):
            return self.error_cls(message, status_code=status_code, cause=cause)
        return self.error_cls(message, cause=cause)


class FormsApiClient:
    """:class:`FormRepository` backed by the forms REST API."""

    def __init__(self, api: Optional[JsonApiClient] = None,
                 importer: Optional[FormImporter] = None) -> None:
        self.api = api or JsonApiClient()
        self.importer = importer or FormImporter()

    def list_forms(self) -> List[FormSummary]:
        data = self.api.request("GET", "/forms")
        if not isinstance(data, list):
            raise PersistenceError("GET /forms did not return a list")
        return [FormSummary.from_payload(item) for item in data if isinstance(item, Mapping)]

    def get_form(self, form_id: str) -> FormTree:
        return self._to_tree(self.api.request("GET", f"/forms/{form_id}"), "GET")

    def create_form(self, tree: FormTree) -> FormTree:
        payload = build_form_payload(tree, include_ids=False)
        logger.info("Creating form title=%r", payload.get("title"))
        return self._to_tree(self.api.request("POST", "/forms", payload), "POST")

    def update_form(self, form_id: str, partial: Mapping[str, Any]) -> FormTree:
        logger.info("Updating form id=%s keys=%s", form_id, sorted(partial))
        return self._to_tree(self.api.request("PUT", f"/forms/{form_id}", dict(partial)), "PUT")

    def delete_form(self, form_id: str) -> None:
        logger.info("Deleting form id=%s", form_id)
        self.api.request("DELETE", f"/forms/{form_id}")

    def _to_tree(self, data: Any, method: str) -> FormTree:
        if not isinstance(data, Mapping):
            raise PersistenceError(f"{method} returned no form document")
        return self.importer.import_form(data)
