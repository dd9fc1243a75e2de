from __future__ import annotations

"""Serialise tree snapshots into the camel-case JSON used by the forms API.

The output mirrors what :mod:`formbuilder_toolkit.core.importers.form_importer`
accepts, including order fields and parent foreign keys, so persisted forms
can be read back unchanged. Dynamic field bags are deep-copied.
"""

import copy
from typing import Any, Dict, List

from formbuilder_toolkit.core.models import ElementNode, FormTree, PageNode, RowNode, SectionNode

__all__ = ["build_form_payload", "build_element_payload", "element_payloads"]


def build_form_payload(tree: FormTree, include_ids: bool = True) -> Dict[str, Any]:
    """Return the nested JSON document for *tree*.

    With ``include_ids=False`` node ids and foreign keys are left out, which is
    the shape expected when creating a new record.
    """
    form = tree.root
    payload: Dict[str, Any] = {
        "title": form.title,
        "subtitle": form.subtitle,
        "description": form.description,
        "companyLogo": form.company_logo,
        "companyAddress": form.company_address,
        "isMultiPage": form.is_multi_page,
        "status": form.status,
        "pages": [_page(tree, page, include_ids) for page in tree.pages],
    }
    if include_ids:
        payload = {"id": form.id, **payload}
    return payload


def _page(tree: FormTree, page: PageNode, include_ids: bool) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "title": page.title,
        "description": page.description,
        "pageNumber": page.page_number,
        "sections": [_section(tree, s, include_ids) for s in tree.children_of(page.id)],  # type: ignore[arg-type]
    }
    if include_ids:
        data = {"id": page.id, "formId": page.parent_id, **data}
    return data


def _section(tree: FormTree, section: SectionNode, include_ids: bool) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "title": section.title,
        "description": section.description,
        "sectionNumber": section.section_number,
        "rows": [_row(tree, r, include_ids) for r in tree.children_of(section.id)],  # type: ignore[arg-type]
    }
    if include_ids:
        data = {"id": section.id, "pageId": section.parent_id, **data}
    return data


def _row(tree: FormTree, row: RowNode, include_ids: bool) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "rowName": row.row_name,
        "rowNumber": row.row_number,
        "elements": [
            build_element_payload(e, include_ids) for e in tree.children_of(row.id)  # type: ignore[arg-type]
        ],
    }
    if include_ids:
        data = {"id": row.id, "sectionId": row.parent_id, **data}
    return data


def build_element_payload(element: ElementNode, include_ids: bool = True) -> Dict[str, Any]:
    """Return the JSON object for a single element."""
    data: Dict[str, Any] = {
        "type": element.type,
        "label": element.label,
        "name": element.name,
        "placeholder": element.placeholder,
        "required": element.required,
        "validation": copy.deepcopy(element.validation),
        "options": copy.deepcopy(element.options),
        "conditionalLogic": copy.deepcopy(element.conditional_logic),
        "properties": copy.deepcopy(element.properties),
        "elementNumber": element.element_number,
    }
    if include_ids:
        data = {"id": element.id, "rowId": element.parent_id, **data}
    return data


def element_payloads(tree: FormTree, element_ids: List[str]) -> List[Dict[str, Any]]:
    """Serialise the given elements (unknown ids are skipped)."""
    return [
        build_element_payload(tree.find(eid))  # type: ignore[arg-type]
        for eid in element_ids
        if isinstance(tree.find(eid), ElementNode)
    ]
