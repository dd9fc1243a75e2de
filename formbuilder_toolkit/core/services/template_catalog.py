from __future__ import annotations

"""Element template catalog.

Templates describe the kinds of elements the palette offers, with the
default field values a new element receives when it is dropped. The catalog
is declarative: it is read from the ``element_templates`` configuration
section (see ``config/element_templates.yml``), which users can override.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional

from formbuilder_toolkit.config import ConfigManager
from formbuilder_toolkit.core.exceptions import FormEditError, NodeNotFoundError
from formbuilder_toolkit.core.models import ELEMENT_TYPES, NodeKind, validate_fields

__all__ = ["ElementTemplate", "TemplateCategory", "TemplateCatalog"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateCategory:
    category_id: str
    name: str


@dataclass(frozen=True)
class ElementTemplate:
    """A palette entry, not yet part of any tree.

    Attributes
    ----------
    template_id
        Stable catalog key (``"email"``, ``"phone"``...).
    element_type
        Element type the template produces; part of the type vocabulary.
    label
        Palette label.
    category
        Palette category id.
    defaults
        Element field values applied on insertion.
    """

    template_id: str
    element_type: str
    label: str
    category: str = "basic"
    defaults: Mapping[str, Any] = field(default_factory=dict)

    def element_fields(self) -> Dict[str, Any]:
        """Return a fresh field mapping for a new element built from this template."""
        fields = copy.deepcopy(dict(self.defaults))
        fields["type"] = self.element_type
        return fields


class TemplateCatalog:
    """Ordered, read-only collection of :class:`ElementTemplate` entries."""

    def __init__(self, templates: List[ElementTemplate],
                 categories: Optional[List[TemplateCategory]] = None) -> None:
        self._templates: Dict[str, ElementTemplate] = {}
        for template in templates:
            if template.template_id in self._templates:
                logger.warning("Duplicate template id '%s'; keeping the first", template.template_id)
                continue
            self._templates[template.template_id] = template
        self._categories = list(categories or [])

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "TemplateCatalog":
        """Build the catalog from the ``element_templates`` configuration section.

        Invalid entries are logged and skipped so that a broken user override
        does not empty the palette.
        """
        if config is None:
            config = ConfigManager().get_element_templates()

        categories = [
            TemplateCategory(category_id=str(c.get("id")), name=str(c.get("name", c.get("id"))))
            for c in config.get("categories") or []
            if isinstance(c, Mapping) and c.get("id")
        ]
        templates: List[ElementTemplate] = []
        for entry in config.get("templates") or []:
            try:
                templates.append(cls._parse_entry(entry))
            except (FormEditError, TypeError, ValueError) as exc:
                logger.error("Skipping invalid element template %r: %s", entry, exc)
        logger.debug("Template catalog loaded templates=%d categories=%d",
                     len(templates), len(categories))
        return cls(templates, categories)

    @staticmethod
    def _parse_entry(entry: Any) -> ElementTemplate:
        if not isinstance(entry, Mapping):
            raise TypeError("template entry must be a mapping")
        template_id = entry.get("id")
        element_type = entry.get("type")
        if not template_id:
            raise ValueError("template entry has no id")
        if element_type not in ELEMENT_TYPES:
            raise ValueError(f"unknown element type {element_type!r}")
        defaults = dict(entry.get("defaults") or {})
        defaults.pop("type", None)
        # Fails on fields an element cannot carry
        validate_fields(NodeKind.ELEMENT, defaults)
        return ElementTemplate(
            template_id=str(template_id),
            element_type=element_type,
            label=str(entry.get("label") or template_id),
            category=str(entry.get("category") or "basic"),
            defaults=defaults,
        )

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get(self, template_id: str) -> ElementTemplate:
        """Return the template *template_id*.

        Raises
        ------
        NodeNotFoundError
            If the catalog has no such template.
        """
        try:
            return self._templates[template_id]
        except KeyError:
            raise NodeNotFoundError(f"Unknown element template '{template_id}'") from None

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    def __iter__(self) -> Iterator[ElementTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def categories(self) -> List[TemplateCategory]:
        return list(self._categories)

    def by_category(self, category_id: str) -> List[ElementTemplate]:
        return [t for t in self._templates.values() if t.category == category_id]
