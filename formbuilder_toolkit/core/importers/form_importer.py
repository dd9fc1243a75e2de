from __future__ import annotations

"""Form payload importer.

Builds a :class:`FormTree` from the nested camel-case JSON documents exchanged
with the forms REST API and produced by the generation service::

    {"title": ..., "isMultiPage": ..., "pages": [
        {"title": ..., "sections": [
            {"title": ..., "rows": [
                {"rowName": ..., "elements": [{"type": ..., "label": ...}]}]}]}]}

Array order is authoritative: order fields and parent references present in
the payload are ignored and rebuilt by renumbering. Server bookkeeping keys
(timestamps, foreign keys) are ignored; any other unknown key fails the
import with :class:`InvalidFieldError`, exactly as a manual patch would.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from formbuilder_toolkit.core.exceptions import TypeMismatchError
from formbuilder_toolkit.core.models import FormNode, FormTree, NodeKind, TreeDraft, validate_fields
from formbuilder_toolkit.core.models.nodes import child_kind
from formbuilder_toolkit.core.services.tree_editing_service import TreeEditingService
from formbuilder_toolkit.core.utils import generate_node_id

logger = logging.getLogger(__name__)

__all__ = ["FormImporter", "import_form"]

# Keys rebuilt or not modelled by the tree, per kind
_IGNORED_KEYS: Dict[NodeKind, Tuple[str, ...]] = {
    NodeKind.FORM: ("id", "createdAt", "updatedAt", "pages", "sections", "userId"),
    NodeKind.PAGE: ("id", "formId", "pageNumber", "sections", "createdAt", "updatedAt"),
    NodeKind.SECTION: ("id", "pageId", "sectionNumber", "rows", "createdAt", "updatedAt"),
    NodeKind.ROW: ("id", "sectionId", "rowNumber", "elements", "createdAt", "updatedAt"),
    NodeKind.ELEMENT: ("id", "rowId", "elementNumber", "createdAt", "updatedAt"),
}

_CHILD_KEYS: Dict[NodeKind, str] = {
    NodeKind.PAGE: "pages",
    NodeKind.SECTION: "sections",
    NodeKind.ROW: "rows",
    NodeKind.ELEMENT: "elements",
}


class FormImporter:
    """Converts form payloads into immutable tree snapshots.

    Parameters
    ----------
    editing_service
        Supplies node defaults (titles, row names, element names) and the
        renumbering pass. A default instance is created when omitted.
    keep_ids
        Reuse string ids found in the payload when they are unique within
        the document. Persisted forms keep their server ids this way, so a
        later save targets the same record.
    """

    def __init__(self, editing_service: Optional[TreeEditingService] = None,
                 keep_ids: bool = True) -> None:
        self.editing = editing_service or TreeEditingService()
        self.keep_ids = keep_ids
        self.logger = logging.getLogger(f"{__name__}.FormImporter")

    def import_form(self, payload: Mapping[str, Any]) -> FormTree:
        """Build a tree from *payload*.

        A payload without pages but with top-level ``sections`` gets them
        wrapped in a default page; a payload with neither gets one empty
        default page.

        Raises
        ------
        InvalidFieldError
            If any node carries a key outside its schema.
        TypeMismatchError
            If a value has the wrong type or is outside its vocabulary.
        """
        payload = self._require_mapping(payload, "form")
        draft = FormTree.empty().edit()

        form_fields = self._own_fields(NodeKind.FORM, payload)
        form_fields.setdefault("title", self.editing.new_form_title)
        form_values = validate_fields(NodeKind.FORM, form_fields)
        form_id = self._pick_id(draft, NodeKind.FORM, payload.get("id")) or generate_node_id("form")
        draft.set_root(FormNode(id=form_id, **form_values))

        pages = self._require_list(payload.get("pages"), "pages")
        if not pages and payload.get("sections"):
            pages = [{"sections": payload.get("sections")}]
        if not pages:
            pages = [{}]
        for page in pages:
            self._import_node(draft, form_id, NodeKind.PAGE, page)

        tree = self.editing.finalize(draft)
        self.logger.info(
            "Imported form id=%s pages=%d sections=%d elements=%d",
            tree.root_id, tree.count(NodeKind.PAGE), tree.count(NodeKind.SECTION),
            tree.count(NodeKind.ELEMENT),
        )
        return tree

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _import_node(self, draft: TreeDraft, parent_id: str, kind: NodeKind, raw: Any) -> None:
        raw = self._require_mapping(raw, kind.value)
        node_id = self._pick_id(draft, kind, raw.get("id"))
        node = self.editing.add_node(draft, parent_id, kind,
                                     fields=self._own_fields(kind, raw), node_id=node_id)
        nested_kind = child_kind(kind)
        if nested_kind is None:
            return
        key = _CHILD_KEYS[nested_kind]
        for child in self._require_list(raw.get(key), key):
            self._import_node(draft, node.id, nested_kind, child)

    @staticmethod
    def _own_fields(kind: NodeKind, raw: Mapping[str, Any]) -> Dict[str, Any]:
        ignored = _IGNORED_KEYS[kind]
        return {k: v for k, v in raw.items() if k not in ignored}

    def _pick_id(self, draft: TreeDraft, kind: NodeKind, candidate: Any) -> Optional[str]:
        if not self.keep_ids or candidate is None:
            return None
        if not isinstance(candidate, (str, int)) or isinstance(candidate, bool):
            return None
        candidate = str(candidate)
        if not candidate:
            return None
        if candidate in draft or draft.is_retired(candidate):
            self.logger.warning("Duplicate %s id '%s' in payload; generating a new one",
                                kind.value, candidate)
            return None
        return candidate

    @staticmethod
    def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
        if not isinstance(value, Mapping):
            raise TypeMismatchError(
                f"Expected an object for {what}, got {type(value).__name__}",
                field=what, value=value,
            )
        return value

    @staticmethod
    def _require_list(value: Any, what: str) -> List[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise TypeMismatchError(
                f"Expected a list for '{what}', got {type(value).__name__}",
                field=what, value=value,
            )
        return value


def import_form(payload: Mapping[str, Any],
                editing_service: Optional[TreeEditingService] = None) -> FormTree:
    """Convenience wrapper around :meth:`FormImporter.import_form`."""
    return FormImporter(editing_service).import_form(payload)
