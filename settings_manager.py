from __future__ import annotations
import logging
import os
import tomllib
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import tomlkit

from utils.CONSTANT import (
    UTILS_SAVE_DIR,
    DEFAULT_ENGINE_OPTIONS,
    DEFAULT_ZOOM,
    RELAYOUT_DELAY_MS,
    ANNOTATION_PALETTE,
    ANNOTATION_FALLBACK_COLOR,
    HIGHLIGHT_CLASS,
    REQUEST_TIMEOUT_S,
)

logger = logging.getLogger(__name__)

SETTINGS_PATH: Path = Path(UTILS_SAVE_DIR) / "settings.toml"


@dataclass
class _SettingDef:
    default: object
    description: str


class SettingsManager:
    """Register and persist viewer settings in ~/.scoreview/settings.toml.

    Values are read with tomllib and written back through tomlkit so that
    comments a user added by hand survive a save.
    """

    def __init__(self, path: Path = SETTINGS_PATH) -> None:
        self.path = Path(path)
        self._schema: Dict[str, _SettingDef] = {}
        self._values: Dict[str, object] = {}
        self._doc: tomlkit.TOMLDocument | None = None

    def register(self, key: str, default: object, description: str) -> None:
        self._schema[key] = _SettingDef(default=default, description=description)
        if key not in self._values:
            self._values[key] = deepcopy(default)

    def get(self, key: str, default: Optional[object] = None) -> object:
        return self._values.get(key, default)

    def set(self, key: str, value: object) -> None:
        self._values[key] = value

    def keys(self) -> list[str]:
        return list(self._schema.keys())

    def load(self) -> None:
        """Merge the file into registered defaults; create the file when missing."""
        if not self.path.exists():
            self.save()
            return
        try:
            text = self.path.read_text(encoding="utf-8")
            parsed = tomllib.loads(text)
            self._doc = tomlkit.parse(text)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            logger.warning("Could not read settings from %s: %s", self.path, exc)
            return
        missing = False
        for k, d in self._schema.items():
            if k in parsed:
                self._values[k] = parsed[k]
            else:
                self._values.setdefault(k, deepcopy(d.default))
                missing = True
        for k, v in parsed.items():
            if k not in self._values:
                self._values[k] = v
        # Persist restored defaults if any registered keys were missing
        if missing:
            self.save()

    def save(self) -> None:
        os.makedirs(self.path.parent, exist_ok=True)
        if self._doc is None:
            self._doc = self._new_document()
        for k, v in self._values.items():
            if k in self._doc:
                self._doc[k] = tomlkit.item(v)
            else:
                desc = self._schema[k].description if k in self._schema else ""
                if desc:
                    self._doc.add(tomlkit.comment(desc))
                self._doc.add(k, tomlkit.item(v))
        self.path.write_text(tomlkit.dumps(self._doc), encoding="utf-8")

    def _new_document(self) -> tomlkit.TOMLDocument:
        doc = tomlkit.document()
        doc.add(tomlkit.comment("scoreview settings (TOML)"))
        doc.add(tomlkit.nl())
        return doc


def create_settings_manager(path: Path = SETTINGS_PATH) -> SettingsManager:
    """Build a manager with every known key registered; nothing is read from disk."""
    sm = SettingsManager(path)
    sm.register("zoom", DEFAULT_ZOOM, "Initial zoom (engine scale in percent)")
    sm.register("relayout_delay_ms", RELAYOUT_DELAY_MS, "Delay used to coalesce resize events before a relayout")
    sm.register("annotation_palette", list(ANNOTATION_PALETTE), "Colors assigned to annotation categories in document order")
    sm.register("annotation_fallback_color", ANNOTATION_FALLBACK_COLOR, "Color for annotation categories not declared in the document")
    sm.register("highlight_class", HIGHLIGHT_CLASS, "CSS class set on sounding notes during playback")
    sm.register("request_timeout_s", REQUEST_TIMEOUT_S, "Timeout in seconds for document downloads")
    sm.register("log_level", "INFO", "Console log level")
    # Tables go last so the plain keys above stay top-level
    sm.register("engine_options", dict(DEFAULT_ENGINE_OPTIONS), "Rendering options passed to the notation engine")
    return sm


# ---- Shared instance ----
_settings_manager: Optional[SettingsManager] = None


def get_settings_manager() -> SettingsManager:
    global _settings_manager
    if _settings_manager is None:
        sm = create_settings_manager(SETTINGS_PATH)
        sm.load()
        _settings_manager = sm
    return _settings_manager
