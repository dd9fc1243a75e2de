from __future__ import annotations

"""Entity types of the form document tree.

The tree has five node kinds, each stored as a frozen dataclass inside a
flat arena keyed by id (see :mod:`formbuilder_toolkit.core.models.tree`).
Containers reference their ordered children by id; every non-root node
references its container through ``parent_id``.

The module also owns the editable field schema of every kind. Patches and
imported payloads are validated against it by :func:`validate_fields`.
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from formbuilder_toolkit.core.exceptions import InvalidFieldError, TypeMismatchError

__all__ = [
    "NodeKind",
    "ELEMENT_TYPES",
    "FORM_STATUSES",
    "FormNode",
    "PageNode",
    "SectionNode",
    "RowNode",
    "ElementNode",
    "Node",
    "CONTAINER_KINDS",
    "NODE_CLASSES",
    "EDITABLE_FIELDS",
    "FIELD_ALIASES",
    "child_kind",
    "parent_kind",
    "display_name",
    "validate_fields",
]


class NodeKind(str, Enum):
    """The five granularities of the document tree."""

    FORM = "form"
    PAGE = "page"
    SECTION = "section"
    ROW = "row"
    ELEMENT = "element"


ELEMENT_TYPES: Tuple[str, ...] = (
    "text", "email", "tel", "url", "password", "textarea",
    "select", "radio", "checkbox", "file", "signature",
    "date", "datetime", "time", "number", "range", "info",
)

FORM_STATUSES: Tuple[str, ...] = ("draft", "published", "archived")


@dataclass(frozen=True)
class FormNode:
    """Root of the tree; owns the pages."""

    id: str
    title: str = "Untitled Form"
    subtitle: Optional[str] = None
    description: Optional[str] = None
    company_logo: Optional[str] = None
    company_address: Optional[str] = None
    is_multi_page: bool = False
    status: str = "draft"
    children: Tuple[str, ...] = ()
    parent_id: Optional[str] = None

    kind: ClassVar[NodeKind] = NodeKind.FORM
    ORDER_FIELD: ClassVar[Optional[str]] = None


@dataclass(frozen=True)
class PageNode:
    id: str
    parent_id: str
    title: str = ""
    description: Optional[str] = None
    page_number: int = 1
    children: Tuple[str, ...] = ()

    kind: ClassVar[NodeKind] = NodeKind.PAGE
    ORDER_FIELD: ClassVar[Optional[str]] = "page_number"


@dataclass(frozen=True)
class SectionNode:
    id: str
    parent_id: str
    title: str = ""
    description: Optional[str] = None
    section_number: int = 1
    children: Tuple[str, ...] = ()

    kind: ClassVar[NodeKind] = NodeKind.SECTION
    ORDER_FIELD: ClassVar[Optional[str]] = "section_number"


@dataclass(frozen=True)
class RowNode:
    id: str
    parent_id: str
    row_name: str = ""
    row_number: int = 1
    children: Tuple[str, ...] = ()

    kind: ClassVar[NodeKind] = NodeKind.ROW
    ORDER_FIELD: ClassVar[Optional[str]] = "row_number"


@dataclass(frozen=True)
class ElementNode:
    """Leaf node: a single form field.

    ``validation``, ``options``, ``conditional_logic`` and ``properties`` are
    schema-less JSON values. They are deep-copied whenever they enter or
    leave the tree and must be treated as read-only by consumers.
    """

    id: str
    parent_id: str
    type: str = "text"
    label: str = ""
    name: str = ""
    placeholder: Optional[str] = None
    required: bool = False
    validation: Any = None
    options: Any = None
    conditional_logic: Any = None
    properties: Any = None
    element_number: int = 1

    kind: ClassVar[NodeKind] = NodeKind.ELEMENT
    ORDER_FIELD: ClassVar[Optional[str]] = "element_number"


Node = Union[FormNode, PageNode, SectionNode, RowNode, ElementNode]

NODE_CLASSES: Dict[NodeKind, type] = {
    NodeKind.FORM: FormNode,
    NodeKind.PAGE: PageNode,
    NodeKind.SECTION: SectionNode,
    NodeKind.ROW: RowNode,
    NodeKind.ELEMENT: ElementNode,
}

CONTAINER_KINDS = frozenset({NodeKind.FORM, NodeKind.PAGE, NodeKind.SECTION, NodeKind.ROW})

_CHILD_KIND: Dict[NodeKind, NodeKind] = {
    NodeKind.FORM: NodeKind.PAGE,
    NodeKind.PAGE: NodeKind.SECTION,
    NodeKind.SECTION: NodeKind.ROW,
    NodeKind.ROW: NodeKind.ELEMENT,
}
_PARENT_KIND: Dict[NodeKind, NodeKind] = {v: k for k, v in _CHILD_KIND.items()}


def child_kind(kind: NodeKind) -> Optional[NodeKind]:
    """Return the kind a container of *kind* holds, or None for elements."""
    return _CHILD_KIND.get(NodeKind(kind))


def parent_kind(kind: NodeKind) -> Optional[NodeKind]:
    """Return the kind of container that holds *kind*, or None for the form."""
    return _PARENT_KIND.get(NodeKind(kind))


def display_name(node: Node) -> str:
    """Denormalised name shown in breadcrumbs and the property panel header."""
    if isinstance(node, RowNode):
        return node.row_name or f"Row {node.row_number}"
    if isinstance(node, ElementNode):
        return node.label or node.name
    return node.title


# ---------------------------------------------------------------------------
# Editable field schema
# ---------------------------------------------------------------------------

# Value specs: "str", "optional_str", "bool", "json", or a tuple vocabulary
_FieldSpec = Union[str, Tuple[str, ...]]

EDITABLE_FIELDS: Dict[NodeKind, Dict[str, _FieldSpec]] = {
    NodeKind.FORM: {
        "title": "str",
        "subtitle": "optional_str",
        "description": "optional_str",
        "company_logo": "optional_str",
        "company_address": "optional_str",
        "is_multi_page": "bool",
        "status": FORM_STATUSES,
    },
    NodeKind.PAGE: {
        "title": "str",
        "description": "optional_str",
    },
    NodeKind.SECTION: {
        "title": "str",
        "description": "optional_str",
    },
    NodeKind.ROW: {
        "row_name": "str",
    },
    NodeKind.ELEMENT: {
        "type": ELEMENT_TYPES,
        "label": "str",
        "name": "str",
        "placeholder": "optional_str",
        "required": "bool",
        "validation": "json",
        "options": "json",
        "conditional_logic": "json",
        "properties": "json",
    },
}

# Camel-case spellings used by the REST payloads and the property panel
FIELD_ALIASES: Dict[str, str] = {
    "isMultiPage": "is_multi_page",
    "companyLogo": "company_logo",
    "companyAddress": "company_address",
    "conditionalLogic": "conditional_logic",
    "rowName": "row_name",
}

_JSON_TYPES = (dict, list, str, int, float, bool, type(None))


def _check_value(kind: NodeKind, name: str, spec: _FieldSpec, value: Any,
                 node_id: Optional[str]) -> Any:
    if isinstance(spec, tuple):
        if value not in spec:
            raise TypeMismatchError(
                f"Invalid {kind.value} {name} {value!r}; expected one of: {', '.join(spec)}",
                node_id=node_id, field=name, value=value,
            )
        return value
    if spec == "str":
        ok = isinstance(value, str)
    elif spec == "optional_str":
        ok = value is None or isinstance(value, str)
    elif spec == "bool":
        ok = isinstance(value, bool)
    else:  # json
        ok = isinstance(value, _JSON_TYPES)
        value = copy.deepcopy(value)
    if not ok:
        raise TypeMismatchError(
            f"Invalid value for {kind.value} field '{name}': {type(value).__name__}",
            node_id=node_id, field=name, value=value,
        )
    return value


def validate_fields(kind: NodeKind, fields: Mapping[str, Any],
                    node_id: Optional[str] = None) -> Dict[str, Any]:
    """Validate and normalise a field patch for a node of *kind*.

    Aliases are mapped to their snake-case names and JSON values are
    deep-copied so the caller's objects never alias the tree.

    Raises
    ------
    InvalidFieldError
        If any field is outside the kind's editable set. All offending names
        are reported at once.
    TypeMismatchError
        If a value is outside its vocabulary or of the wrong Python type.
    """
    kind = NodeKind(kind)
    schema = EDITABLE_FIELDS[kind]
    normalised: Dict[str, Any] = {}
    unknown = []
    for raw_name, value in fields.items():
        name = FIELD_ALIASES.get(raw_name, raw_name)
        if name not in schema:
            unknown.append(raw_name)
            continue
        normalised[name] = value
    if unknown:
        raise InvalidFieldError(
            f"Unknown {kind.value} field(s): {', '.join(sorted(unknown))}",
            node_id=node_id, fields=sorted(unknown),
        )
    return {
        name: _check_value(kind, name, schema[name], value, node_id)
        for name, value in normalised.items()
    }
