from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterator, Optional

from lxml import etree

from utils.CONSTANT import SVG_NS

_NUMBER = re.compile(r'[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?')


@dataclass(frozen=True)
class BBox:
    x: float
    y: float
    width: float
    height: float


def _num(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    m = _NUMBER.search(value)
    return float(m.group(0)) if m else None


def _classes(el: etree._Element) -> list[str]:
    return (el.get('class') or '').split()


def _points(el: etree._Element) -> list[tuple[float, float]]:
    """Geometry points of one SVG primitive, in its own user space."""
    tag = etree.QName(el).localname if isinstance(el.tag, str) else ''
    if tag == 'path':
        nums = [float(n) for n in _NUMBER.findall(el.get('d') or '')]
        return list(zip(nums[0::2], nums[1::2]))
    if tag in ('polygon', 'polyline'):
        nums = [float(n) for n in _NUMBER.findall(el.get('points') or '')]
        return list(zip(nums[0::2], nums[1::2]))
    if tag == 'line':
        vals = [_num(el.get(a)) for a in ('x1', 'y1', 'x2', 'y2')]
        if None in vals:
            return []
        return [(vals[0], vals[1]), (vals[2], vals[3])]
    if tag in ('circle', 'ellipse'):
        cx, cy = _num(el.get('cx')), _num(el.get('cy'))
        if cx is None or cy is None:
            return []
        rx = _num(el.get('rx')) or _num(el.get('r')) or 0.0
        ry = _num(el.get('ry')) or _num(el.get('r')) or 0.0
        return [(cx - rx, cy - ry), (cx + rx, cy + ry)]
    if tag in ('rect', 'use', 'text', 'image'):
        x, y = _num(el.get('x')), _num(el.get('y'))
        if x is None or y is None:
            return []
        w = _num(el.get('width')) or 0.0
        h = _num(el.get('height')) or 0.0
        return [(x, y), (x + w, y + h)]
    return []


class RenderedPage:
    """Visual output of one engine page, held as a mutable SVG tree.

    Highlight classes and annotation markers are applied to this tree; a new
    render replaces the whole object.
    """

    def __init__(self, svg: str, page: int) -> None:
        self.page = int(page)
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        self.root = etree.fromstring(svg.encode('utf-8'), parser)
        self._by_id: dict[str, etree._Element] = {}
        for el in self.root.iter():
            if isinstance(el.tag, str):
                eid = el.get('id')
                if eid and eid not in self._by_id:
                    self._by_id[eid] = el

    def get_element_by_id(self, element_id: str) -> Optional[etree._Element]:
        return self._by_id.get(element_id)

    def find_class(self, class_name: str) -> Iterator[etree._Element]:
        for el in self.root.iter():
            if isinstance(el.tag, str) and class_name in _classes(el):
                yield el

    def measures(self) -> list[etree._Element]:
        return list(self.find_class('measure'))

    # ---- class helpers ----
    @staticmethod
    def has_class(el: etree._Element, class_name: str) -> bool:
        return class_name in _classes(el)

    @staticmethod
    def add_class(el: etree._Element, class_name: str) -> None:
        cls = _classes(el)
        if class_name not in cls:
            cls.append(class_name)
            el.set('class', ' '.join(cls))

    @staticmethod
    def remove_class(el: etree._Element, class_name: str) -> None:
        cls = _classes(el)
        if class_name in cls:
            cls = [c for c in cls if c != class_name]
            if cls:
                el.set('class', ' '.join(cls))
            else:
                del el.attrib['class']

    # ---- geometry ----
    def bbox(self, el: etree._Element) -> Optional[BBox]:
        pts: list[tuple[float, float]] = []
        for sub in el.iter():
            if isinstance(sub.tag, str):
                pts.extend(_points(sub))
        if not pts:
            return None
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        return BBox(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))

    def staff_bbox(self, measure: etree._Element) -> Optional[BBox]:
        """Bounding box of the first staff in a measure, else of the measure."""
        for el in measure.iter():
            if isinstance(el.tag, str) and 'staff' in _classes(el):
                box = self.bbox(el)
                if box is not None:
                    return box
        return self.bbox(measure)

    def append_rect(self, parent: etree._Element, x: float, y: float, w: float, h: float,
                    attrs: dict[str, str]) -> etree._Element:
        tag = '{%s}rect' % SVG_NS if self.root.tag.startswith('{') else 'rect'
        el = etree.SubElement(parent, tag)
        el.set('x', f'{x:g}')
        el.set('y', f'{y:g}')
        el.set('width', f'{w:g}')
        el.set('height', f'{h:g}')
        for k, v in attrs.items():
            el.set(k, v)
        return el

    def to_svg(self) -> str:
        return etree.tostring(self.root, encoding='unicode')

    def to_bytes(self) -> bytes:
        return etree.tostring(self.root, encoding='utf-8')
