from unittest.mock import MagicMock

import pytest
import requests

from formbuilder_toolkit.core.exceptions import GenerationError, PersistenceError
from formbuilder_toolkit.core.importers import FormImporter
from formbuilder_toolkit.core.integrations import FormRepository, FormsApiClient, FormSummary, JsonApiClient


def _response(status_code=200, body=None, content=b"{}"):
    response = MagicMock()
    response.status_code = status_code
    response.content = content if body is not None or status_code != 204 else b""
    response.json.return_value = body
    return response


@pytest.fixture
def session():
    mock = MagicMock()
    mock.headers = {}
    return mock


@pytest.fixture
def client(session, editing):
    api = JsonApiClient(base_url="http://forms.test/api/", timeout=2, session=session)
    return FormsApiClient(api=api, importer=FormImporter(editing))


def test_defaults_come_from_integrations_config(session):
    api = JsonApiClient(session=session)
    assert api.base_url == "http://localhost:3001/api"
    assert api.timeout == 10
    assert session.headers["Accept"] == "application/json"
    assert session.headers["User-Agent"].startswith("formbuilder-toolkit/")


def test_request_builds_url_and_decodes_json(session):
    session.request.return_value = _response(body={"ok": True})
    api = JsonApiClient(base_url="http://forms.test/api/", timeout=2, session=session)

    assert api.request("POST", "/forms", {"title": "x"}) == {"ok": True}
    session.request.assert_called_once_with(
        "POST", "http://forms.test/api/forms", json={"title": "x"}, timeout=2
    )


def test_http_error_raises_with_status(session):
    session.request.return_value = _response(status_code=404, body={"error": "nope"})
    api = JsonApiClient(base_url="http://forms.test", timeout=1, session=session)
    with pytest.raises(PersistenceError) as excinfo:
        api.request("GET", "/forms/missing")
    assert excinfo.value.status_code == 404


def test_transport_error_uses_configured_error_class(session):
    session.request.side_effect = requests.ConnectionError("refused")
    api = JsonApiClient(base_url="http://forms.test", timeout=1, session=session,
                        error_cls=GenerationError)
    with pytest.raises(GenerationError) as excinfo:
        api.request("POST", "/forms/generate", {})
    assert isinstance(excinfo.value.cause, requests.ConnectionError)


def test_invalid_json_raises(session):
    response = _response(body=None, content=b"<html>")
    response.json.side_effect = ValueError("not json")
    session.request.return_value = response
    api = JsonApiClient(base_url="http://forms.test", timeout=1, session=session)
    with pytest.raises(PersistenceError):
        api.request("GET", "/forms")


def test_no_content_returns_none(session):
    session.request.return_value = _response(status_code=204)
    api = JsonApiClient(base_url="http://forms.test", timeout=1, session=session)
    assert api.request("DELETE", "/forms/1") is None


def test_forms_client_satisfies_repository_protocol(client):
    assert isinstance(client, FormRepository)


def test_list_forms(client, session):
    session.request.return_value = _response(body=[
        {"id": 1, "title": "One", "status": "published", "updatedAt": "2024-05-01"},
        {"id": "2", "title": None},
        "junk",
    ])
    forms = client.list_forms()
    assert forms == [
        FormSummary("1", "One", "published", "2024-05-01"),
        FormSummary("2", "", "draft", None),
    ]


def test_list_forms_requires_a_list(client, session):
    session.request.return_value = _response(body={"forms": []})
    with pytest.raises(PersistenceError):
        client.list_forms()


def test_get_form_imports_document(client, session):
    session.request.return_value = _response(body={
        "id": "f1", "title": "Loaded",
        "pages": [{"id": "p1", "sections": [{"id": "s1", "rows": []}]}],
    })
    tree = client.get_form("f1")
    assert tree.root_id == "f1"
    assert tree.get("s1").parent_id == "p1"
    session.request.assert_called_once_with("GET", "http://forms.test/api/forms/f1", json=None, timeout=2)


def test_create_form_posts_payload_without_ids(client, session, populated):
    session.request.return_value = _response(body={"id": "server-1", "title": "Untitled Form"})

    stored = client.create_form(populated.context.tree)

    sent = session.request.call_args.kwargs["json"]
    assert "id" not in sent
    assert sent["pages"][0]["sections"][0]["title"] == "Section A"
    assert stored.root_id == "server-1"


def test_update_and_delete(client, session):
    session.request.return_value = _response(body={"id": "f1", "title": "Renamed"})
    tree = client.update_form("f1", {"title": "Renamed"})
    assert tree.root.title == "Renamed"
    assert session.request.call_args.args[:2] == ("PUT", "http://forms.test/api/forms/f1")

    session.request.return_value = _response(status_code=204)
    assert client.delete_form("f1") is None
    assert session.request.call_args.args[0] == "DELETE"


def test_non_document_response_raises(client, session):
    session.request.return_value = _response(body=["not", "a", "form"])
    with pytest.raises(PersistenceError):
        client.get_form("f1")
