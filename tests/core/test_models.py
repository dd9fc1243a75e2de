import pytest

from formbuilder_toolkit.core.exceptions import InvalidFieldError, TypeMismatchError
from formbuilder_toolkit.core.models import (
    ELEMENT_TYPES,
    ElementNode,
    NodeKind,
    RowNode,
    display_name,
    validate_fields,
)
from formbuilder_toolkit.core.models.nodes import child_kind, parent_kind


def test_kind_hierarchy():
    assert child_kind(NodeKind.FORM) == NodeKind.PAGE
    assert child_kind(NodeKind.ROW) == NodeKind.ELEMENT
    assert child_kind(NodeKind.ELEMENT) is None
    assert parent_kind(NodeKind.SECTION) == NodeKind.PAGE
    assert parent_kind(NodeKind.FORM) is None


def test_element_type_vocabulary_is_complete():
    assert set(ELEMENT_TYPES) == {
        "text", "email", "tel", "url", "password", "textarea", "select", "radio",
        "checkbox", "file", "signature", "date", "datetime", "time", "number",
        "range", "info",
    }


def test_validate_fields_maps_camel_case_aliases():
    assert validate_fields(NodeKind.FORM, {"isMultiPage": True, "companyLogo": None}) == {
        "is_multi_page": True,
        "company_logo": None,
    }
    assert validate_fields(NodeKind.ROW, {"rowName": "contact_row_1"}) == {"row_name": "contact_row_1"}


def test_validate_fields_reports_every_unknown_field():
    with pytest.raises(InvalidFieldError) as info:
        validate_fields(NodeKind.PAGE, {"zeta": 1, "title": "ok", "alpha": 2})
    assert info.value.fields == ["alpha", "zeta"]


@pytest.mark.parametrize("field", ["id", "parent_id", "element_number", "children"])
def test_structural_fields_are_never_editable(field):
    with pytest.raises(InvalidFieldError):
        validate_fields(NodeKind.ELEMENT, {field: "x"})


def test_validate_fields_rejects_type_outside_vocabulary():
    with pytest.raises(TypeMismatchError) as info:
        validate_fields(NodeKind.ELEMENT, {"type": "hologram"}, node_id="element_1")
    assert info.value.field == "type"
    assert info.value.value == "hologram"
    assert info.value.node_id == "element_1"


def test_validate_fields_rejects_unknown_status_and_wrong_python_types():
    with pytest.raises(TypeMismatchError):
        validate_fields(NodeKind.FORM, {"status": "deleted"})
    with pytest.raises(TypeMismatchError):
        validate_fields(NodeKind.ELEMENT, {"required": "yes"})
    with pytest.raises(TypeMismatchError):
        validate_fields(NodeKind.SECTION, {"title": None})


def test_validate_fields_deep_copies_json_values():
    options = {"choices": [{"label": "A", "value": "a"}]}
    result = validate_fields(NodeKind.ELEMENT, {"options": options})
    options["choices"].append({"label": "B", "value": "b"})
    assert result["options"] == {"choices": [{"label": "A", "value": "a"}]}


def test_display_name_fallbacks():
    assert display_name(RowNode(id="r", parent_id="s", row_number=2)) == "Row 2"
    assert display_name(ElementNode(id="e", parent_id="r", name="email_1")) == "email_1"
    assert display_name(ElementNode(id="e", parent_id="r", label="Email", name="email_1")) == "Email"
