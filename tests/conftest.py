"""Test configuration and shared fixtures for the Form Builder Toolkit.

Every test runs against an isolated user configuration directory so local
overrides never leak in. Tree fixtures are built through the public editing
service, the same way a host UI would build them.
"""

import logging
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from formbuilder_toolkit.config import ConfigManager
from formbuilder_toolkit.core.context import EditorContext
from formbuilder_toolkit.core.models import NodeKind
from formbuilder_toolkit.core.services.drag_drop_service import DragDropService
from formbuilder_toolkit.core.services.template_catalog import TemplateCatalog
from formbuilder_toolkit.core.services.tree_editing_service import TreeEditingService

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


EDITOR_CONFIG = {
    "new_form_title": "Untitled Form",
    "page_title_pattern": "Page {number}",
    "section_title_pattern": "Section {number}",
    "default_section_title": "Section 1",
    "enforce_unique_field_names": False,
}


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point user overrides at an empty temp dir and drop the cached singleton."""
    config_dir = tmp_path / "user_config"
    config_dir.mkdir()
    monkeypatch.setenv("FORMBUILDER_CONFIG_DIR", str(config_dir))
    ConfigManager._instance = None
    yield config_dir
    ConfigManager._instance = None


@pytest.fixture
def editing():
    return TreeEditingService(EDITOR_CONFIG)


@pytest.fixture
def catalog():
    return TemplateCatalog.from_config()


@pytest.fixture
def drag_drop(editing, catalog):
    return DragDropService(editing, catalog)


@pytest.fixture
def context(editing):
    """Context holding a new form: one page, no sections."""
    return EditorContext(editing.new_tree())


@pytest.fixture
def populated(context, editing):
    """Form -> Page 1 -> Section A -> [row_full (2 elements), row_empty].

    Returns a namespace of ids plus the context and service.
    """
    page_id = context.tree.pages[0].id
    section_id = editing.create_child(context, page_id, NodeKind.SECTION, fields={"title": "Section A"})
    row_full = editing.create_child(context, section_id, NodeKind.ROW)
    first = editing.create_child(context, row_full, NodeKind.ELEMENT, fields={"label": "First"})
    second = editing.create_child(context, row_full, NodeKind.ELEMENT,
                                  fields={"type": "email", "label": "Second"})
    row_empty = editing.create_child(context, section_id, NodeKind.ROW)
    return SimpleNamespace(
        context=context,
        editing=editing,
        form_id=context.tree.root_id,
        page_id=page_id,
        section_id=section_id,
        row_full=row_full,
        row_empty=row_empty,
        first=first,
        second=second,
    )


class PublishRecorder:
    """Collects (new_tree, old_tree) pairs published by a context."""

    def __init__(self, context):
        self.events = []
        self.unsubscribe = context.subscribe(lambda new, old: self.events.append((new, old)))

    @property
    def count(self):
        return len(self.events)


@pytest.fixture
def make_recorder():
    """Factory: ``make_recorder(context)`` starts recording publishes from now on."""
    return PublishRecorder
