from __future__ import annotations
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from utils.CONSTANT import PAGE_WIDTH_RANGE, PAGE_HEIGHT_RANGE
from utils.tiny_tool import parse_int, normalize_number

if TYPE_CHECKING:
    from viewer.score_viewer import ScoreViewer

logger = logging.getLogger(__name__)


class _NoChange:
    def __repr__(self) -> str:
        return 'NO_CHANGE'


# Returned by a coercer when the raw value must not touch the state
NO_CHANGE = _NoChange()


class PropertyName(str, Enum):
    ZOOM = 'zoom'
    PAGE_NUMBER = 'pagenumber'
    HEIGHT = 'height'
    WIDTH = 'width'
    PAGE_WIDTH = 'pagewidth'
    PAGE_HEIGHT = 'pageheight'
    SOURCE_URL = 'meiurl'
    MOVEMENT_ID = 'movementid'
    ELEMENT_ID = 'elementid'
    MEASURE_NUMBER = 'measurenumber'
    MDIV_NAME = 'mdivname'
    ENGINE_OPTIONS = 'engineoptions'


_ALIASES: dict[str, PropertyName] = {
    'sourceurl': PropertyName.SOURCE_URL,
    'verovio-options': PropertyName.ENGINE_OPTIONS,
}


def parse_property_name(name: str) -> Optional[PropertyName]:
    key = str(name or '').strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return PropertyName(key)
    except ValueError:
        return None


# ---- coercers ----
def _positive_int(raw: object) -> object:
    value = parse_int(raw)
    if value is None or value <= 0:
        return NO_CHANGE
    return value


def _page_number(raw: object) -> object:
    value = parse_int(raw)
    return NO_CHANGE if value is None else value


def _ranged_int(lo: int, hi: int) -> Callable[[object], object]:
    def coerce(raw: object) -> object:
        value = parse_int(raw)
        if value is None or not (lo <= value <= hi):
            return NO_CHANGE
        return value
    return coerce


def _text(raw: object) -> object:
    if raw is None:
        return NO_CHANGE
    value = str(raw).strip()
    return value if value else NO_CHANGE


def _optional_text(raw: object) -> object:
    # Empty clears the value
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def _measure_number(raw: object) -> object:
    if raw is None or isinstance(raw, bool):
        return NO_CHANGE
    value = normalize_number(raw)
    return value if value else NO_CHANGE


def _options(raw: object) -> object:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return NO_CHANGE
        if isinstance(parsed, dict):
            return parsed
    return NO_CHANGE


@dataclass(frozen=True)
class PropertyRule:
    coerce: Callable[[object], object]
    effect: Callable[["ScoreViewer", object], None]
    # Exception table: the effect only stages configuration that a later
    # write acts on, and must not render by itself
    staged_only: bool = False


PROPERTY_RULES: dict[PropertyName, PropertyRule] = {
    PropertyName.ZOOM: PropertyRule(_positive_int, lambda v, x: v.apply_zoom(x)),
    PropertyName.PAGE_NUMBER: PropertyRule(_page_number, lambda v, x: v.pagination.goto(x)),
    PropertyName.HEIGHT: PropertyRule(_positive_int, lambda v, x: v.set_explicit_size(height=x)),
    PropertyName.WIDTH: PropertyRule(_positive_int, lambda v, x: v.set_explicit_size(width=x)),
    PropertyName.PAGE_WIDTH: PropertyRule(_ranged_int(*PAGE_WIDTH_RANGE), lambda v, x: v.set_page_size_option(width=x)),
    PropertyName.PAGE_HEIGHT: PropertyRule(_ranged_int(*PAGE_HEIGHT_RANGE), lambda v, x: v.set_page_size_option(height=x)),
    PropertyName.SOURCE_URL: PropertyRule(_text, lambda v, x: v.load_source(x)),
    PropertyName.MOVEMENT_ID: PropertyRule(_optional_text, lambda v, x: v.set_movement(x)),
    PropertyName.ELEMENT_ID: PropertyRule(_text, lambda v, x: v.goto_element(x)),
    PropertyName.MEASURE_NUMBER: PropertyRule(_measure_number, lambda v, x: v.goto_measure(x)),
    PropertyName.MDIV_NAME: PropertyRule(_optional_text, lambda v, x: v.set_scope(x), staged_only=True),
    PropertyName.ENGINE_OPTIONS: PropertyRule(_options, lambda v, x: v.merge_engine_options(x)),
}

STAGED_ONLY_PROPERTIES: frozenset[PropertyName] = frozenset(
    name for name, rule in PROPERTY_RULES.items() if rule.staged_only
)


class PropertySynchronizer:
    """Applies external property writes to a viewer.

    Unknown names are ignored. For a known name the notification carrying the
    raw value goes out first, then the value is coerced; values that do not
    coerce (unparseable, out of range) change nothing.
    """

    def __init__(self, viewer: "ScoreViewer", notify: Callable[[str, object], None]) -> None:
        self._viewer = viewer
        self._notify = notify

    def apply(self, name: str, raw_value: object) -> bool:
        prop = parse_property_name(name)
        if prop is None:
            logger.debug("Ignoring unknown property '%s'", name)
            return False
        rule = PROPERTY_RULES[prop]
        logger.debug("property %s is changed to %r", name, raw_value)
        self._notify(str(name).strip().lower(), raw_value)
        value = rule.coerce(raw_value)
        if value is NO_CHANGE:
            logger.debug("Value %r for '%s' ignored", raw_value, prop.value)
            return True
        rule.effect(self._viewer, value)
        if rule.staged_only:
            logger.debug("'%s' staged for the next lookup", prop.value)
        return True
