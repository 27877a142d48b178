from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from lxml import etree

from utils.CONSTANT import MEI_NS, XML_ID

logger = logging.getLogger(__name__)


class DocumentParseError(ValueError):
    """Raised when a fetched source is not well-formed XML."""


def _tags(name: str) -> tuple[str, str]:
    # Accept both namespaced MEI and bare element names
    return ('{%s}%s' % (MEI_NS, name), name)


def local_name(el: etree._Element) -> str:
    if not isinstance(el.tag, str):
        return ''
    return etree.QName(el).localname


def element_id(el: etree._Element) -> Optional[str]:
    return el.get(XML_ID) or el.get('id')


def _ref_tokens(value: Optional[str]) -> list[str]:
    """Split a pointer list such as '#m1 #m2' into bare ids."""
    if not value:
        return []
    return [tok.lstrip('#') for tok in value.split() if tok.strip('#')]


@dataclass
class Annotation:
    annot_id: str
    category: Optional[str]
    measure_refs: list[str] = field(default_factory=list)
    positioned: bool = False


@dataclass
class ScoreDocument:
    """Raw document text and its parsed tree.

    Owned by a single viewer; replaced wholesale on every load and never
    edited in place.
    """
    text: str
    root: etree._Element
    source_url: str = ''

    @classmethod
    def from_text(cls, text: str, source_url: str = '') -> "ScoreDocument":
        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True, remove_blank_text=False)
        try:
            root = etree.fromstring(text.encode('utf-8'), parser)
        except etree.XMLSyntaxError as exc:
            raise DocumentParseError(f"Document from '{source_url or '<memory>'}' is not well-formed: {exc}") from exc
        return cls(text=text, root=root, source_url=source_url)

    # ---- Structural access (document order) ----
    def movements(self) -> Iterator[etree._Element]:
        return self.root.iter(*_tags('mdiv'))

    def measures(self, within: Optional[etree._Element] = None) -> Iterator[etree._Element]:
        base = self.root if within is None else within
        return base.iter(*_tags('measure'))

    def find_by_id(self, xml_id: str) -> Optional[etree._Element]:
        for el in self.root.iter():
            if isinstance(el.tag, str) and element_id(el) == xml_id:
                return el
        return None

    def category_ids(self) -> list[str]:
        """Annotation categories in first-seen document order.

        Declared taxonomy categories and categories referenced by annotations
        both count; the first occurrence fixes the position.
        """
        seen: dict[str, None] = {}
        for el in self.root.iter(*(_tags('category') + _tags('annot'))):
            if local_name(el) == 'category':
                cid = element_id(el)
            else:
                cid = self._annot_category(el)
            if cid and cid not in seen:
                seen[cid] = None
        return list(seen)

    def annotations(self) -> list[Annotation]:
        out: list[Annotation] = []
        for el in self.root.iter(*_tags('annot')):
            aid = element_id(el)
            if not aid:
                continue
            refs = _ref_tokens(el.get('plist'))
            # An annot placed inside a measure belongs to that measure as well
            parent = el.getparent()
            while parent is not None:
                if local_name(parent) == 'measure':
                    pid = element_id(parent)
                    if pid and pid not in refs:
                        refs.append(pid)
                    break
                parent = parent.getparent()
            out.append(Annotation(
                annot_id=aid,
                category=self._annot_category(el),
                measure_refs=refs,
                # Anchored to an event: the engine draws these itself
                positioned=bool(el.get('startid') or el.get('tstamp')),
            ))
        return out

    @staticmethod
    def _annot_category(el: etree._Element) -> Optional[str]:
        for attr in ('class', 'type'):
            toks = _ref_tokens(el.get(attr))
            if toks:
                return toks[0]
        return None
