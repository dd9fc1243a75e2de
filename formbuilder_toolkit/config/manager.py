from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises the declarative settings of the editor (default
titles, element template catalog, integration endpoints, logging). It loads
YAML files packaged with *formbuilder_toolkit* and merges them with user
overrides.

User overrides are looked up in ``$FORMBUILDER_CONFIG_DIR`` when set, else:

On Windows: ``%LOCALAPPDATA%\\FormBuilderToolkit\\config\\*.yml``
On Unix: ``~/.formbuilder_toolkit/*.yml``
"""

import importlib.resources as pkg_resources
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager"]


def _get_user_config_dir() -> Path:
    """Get the user configuration directory."""
    override = os.environ.get("FORMBUILDER_CONFIG_DIR")
    if override:
        return Path(override)
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "FormBuilderToolkit" / "config"
        return Path.home() / "AppData" / "Local" / "FormBuilderToolkit" / "config"
    return Path.home() / ".formbuilder_toolkit"


def _read_packaged(filename: str) -> str:
    return pkg_resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")


class _Singleton(type):
    _instance: "ConfigManager" | None = None

    def __call__(cls, *args, **kwargs):  # type: ignore[no-self-use]
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries."""

    _DEFAULT_FILENAMES = {
        "editor": "editor.yml",
        "element_templates": "element_templates.yml",
        "integrations": "integrations.yml",
        "logging": "logging.yml",
    }

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def get_editor_config(self) -> Dict[str, Any]:
        return self._data.get("editor", {})

    def get_element_templates(self) -> Dict[str, Any]:
        return self._data.get("element_templates", {})

    def get_integrations_config(self) -> Dict[str, Any]:
        return self._data.get("integrations", {})

    def get_logging_config(self) -> Dict[str, Any]:
        return self._data.get("logging", {})

    def reload(self) -> None:
        """Drop cached sections and read packaged files and overrides again."""
        self._data = {}
        self._ensure_loaded()

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return  # already loaded

        startup_summary = []
        user_config_dir = _get_user_config_dir()

        for key, filename in self._DEFAULT_FILENAMES.items():
            merged_cfg: Dict[str, Any] = {}
            status = "missing"

            # 1. load packaged default
            try:
                packaged_data = yaml.safe_load(_read_packaged(filename)) or {}
                merged_cfg.update(packaged_data)
                status = "loaded"
            except (FileNotFoundError, OSError):
                logger.error("Missing packaged config for %s (%s)", key, filename)
            except yaml.YAMLError as exc:
                logger.error("Invalid packaged config for %s (%s): %s", key, filename, exc)
                status = "invalid"

            # 2. load user overrides
            user_path = user_config_dir / filename
            if user_path.exists():
                try:
                    user_data = yaml.safe_load(user_path.read_text(encoding="utf-8")) or {}
                    merged_cfg.update(user_data)
                    if status == "loaded":
                        status = "loaded+overrides"
                except (OSError, yaml.YAMLError) as exc:
                    logger.error("Could not parse user config %s: %s", user_path, exc)

            self._data[key] = merged_cfg
            startup_summary.append(f"{key}: {status}")

        logger.info("Config startup: %s", " | ".join(startup_summary))
