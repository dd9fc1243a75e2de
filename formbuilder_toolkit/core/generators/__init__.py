from __future__ import annotations

"""Modules responsible for generating JSON payloads from tree snapshots."""

from .payload_builder import build_element_payload, build_form_payload, element_payloads  # noqa: F401

__all__: list[str] = [
    "build_form_payload",
    "build_element_payload",
    "element_payloads",
]
