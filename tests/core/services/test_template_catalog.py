import logging

import pytest
import yaml

from formbuilder_toolkit.core.exceptions import NodeNotFoundError
from formbuilder_toolkit.core.models import ELEMENT_TYPES
from formbuilder_toolkit.core.services.template_catalog import ElementTemplate, TemplateCatalog


def test_packaged_catalog_covers_every_element_type(catalog):
    assert {t.element_type for t in catalog} == set(ELEMENT_TYPES)
    assert len(catalog) == len(ELEMENT_TYPES)
    assert [c.category_id for c in catalog.categories] == ["basic", "advanced", "layout"]


def test_get_known_and_unknown(catalog):
    phone = catalog.get("phone")
    assert phone.element_type == "tel"
    assert phone.label == "Phone"
    assert "phone" in catalog
    with pytest.raises(NodeNotFoundError):
        catalog.get("hologram")


def test_by_category(catalog):
    layout = catalog.by_category("layout")
    assert [t.template_id for t in layout] == ["info"]
    assert all(t.category == "advanced" for t in catalog.by_category("advanced"))


def test_element_fields_are_fresh_copies(catalog):
    select = catalog.get("select")
    fields = select.element_fields()
    assert fields["type"] == "select"
    fields["options"]["choices"].append({"label": "Extra", "value": "extra"})

    again = select.element_fields()
    assert len(again["options"]["choices"]) == 3


def test_from_config_skips_invalid_entries(caplog):
    config = {
        "categories": [{"id": "basic", "name": "Basic"}],
        "templates": [
            {"id": "text", "type": "text", "label": "Text", "defaults": {"label": "Text"}},
            {"id": "laser", "type": "laser", "label": "Laser"},
            {"id": "bad_field", "type": "text", "defaults": {"colour": "red"}},
            "not-a-mapping",
            {"type": "email"},
        ],
    }
    with caplog.at_level(logging.ERROR):
        catalog = TemplateCatalog.from_config(config)

    assert [t.template_id for t in catalog] == ["text"]
    assert caplog.text.count("Skipping invalid element template") == 4


def test_duplicate_ids_keep_first():
    catalog = TemplateCatalog([
        ElementTemplate("text", "text", "First"),
        ElementTemplate("text", "text", "Second"),
    ])
    assert len(catalog) == 1
    assert catalog.get("text").label == "First"


def test_user_override_replaces_templates(isolated_config):
    override = {
        "templates": [
            {"id": "rating", "type": "range", "label": "Rating",
             "defaults": {"label": "Rate us", "properties": {"min": 1, "max": 5}}},
        ],
    }
    (isolated_config / "element_templates.yml").write_text(yaml.safe_dump(override), encoding="utf-8")

    catalog = TemplateCatalog.from_config()

    assert [t.template_id for t in catalog] == ["rating"]
    fields = catalog.get("rating").element_fields()
    assert fields == {"type": "range", "label": "Rate us", "properties": {"min": 1, "max": 5}}
    # categories come from the packaged file
    assert catalog.categories
