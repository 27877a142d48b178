from __future__ import annotations
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from engine.rendered_page import RenderedPage
from file_model.document import Annotation, ScoreDocument
from utils.CONSTANT import (
    ANNOTATION_PALETTE,
    ANNOTATION_FALLBACK_COLOR,
    MARKER_CLASS,
    MARKER_SIZE,
    MARKER_STEP_X,
    MARKER_OFFSET_Y,
)

logger = logging.getLogger(__name__)


def build_category_colors(categories: Sequence[str], palette: Sequence[str]) -> Mapping[str, str]:
    """Assign palette colors in the given order, cycling when categories outnumber colors."""
    if not palette:
        return MappingProxyType({})
    colors = {cat: palette[i % len(palette)] for i, cat in enumerate(categories)}
    return MappingProxyType(colors)


@dataclass(frozen=True)
class Marker:
    """One overlay marker; annot_id is the hook for external detail lookup."""
    annot_id: str
    measure_id: str
    category: Optional[str]
    color: str
    x: float
    y: float
    size: float


class AnnotationOverlayAssigner:
    def __init__(self, palette: Sequence[str] = ANNOTATION_PALETTE,
                 fallback_color: str = ANNOTATION_FALLBACK_COLOR,
                 marker_size: float = MARKER_SIZE,
                 step_x: float = MARKER_STEP_X,
                 offset_y: float = MARKER_OFFSET_Y) -> None:
        self.palette = list(palette)
        self.fallback_color = fallback_color
        self.marker_size = float(marker_size)
        self.step_x = float(step_x)
        self.offset_y = float(offset_y)
        self._colors: Mapping[str, str] = MappingProxyType({})
        self._document: Optional[ScoreDocument] = None
        self._by_measure: dict[str, list[Annotation]] = {}

    @property
    def category_colors(self) -> Mapping[str, str]:
        return self._colors

    def load(self, document: Optional[ScoreDocument]) -> None:
        """Rebuild the color map and per-measure annotation table for a new document."""
        self._document = document
        self._by_measure = {}
        if document is None:
            self._colors = MappingProxyType({})
            return
        self._colors = build_category_colors(document.category_ids(), self.palette)
        for annot in document.annotations():
            if annot.positioned:
                continue
            for mid in annot.measure_refs:
                self._by_measure.setdefault(mid, []).append(annot)
        logger.debug("Annotation categories: %d, annotated measures: %d",
                     len(self._colors), len(self._by_measure))

    def color_for(self, category_id: Optional[str]) -> str:
        if category_id is None:
            return self.fallback_color
        return self._colors.get(category_id, self.fallback_color)

    def place_markers(self, page: RenderedPage, document: ScoreDocument) -> list[Marker]:
        if document is not self._document:
            self.load(document)
        markers: list[Marker] = []
        for measure in page.measures():
            mid = measure.get('id')
            annots = self._by_measure.get(mid or '')
            if not annots:
                continue
            box = page.staff_bbox(measure)
            if box is None:
                logger.debug("Measure %s has no geometry; skipping %d markers", mid, len(annots))
                continue
            for i, annot in enumerate(annots):
                marker = Marker(
                    annot_id=annot.annot_id,
                    measure_id=mid,
                    category=annot.category,
                    color=self.color_for(annot.category),
                    x=box.x + i * self.step_x,
                    y=box.y - self.offset_y,
                    size=self.marker_size,
                )
                page.append_rect(measure, marker.x, marker.y, marker.size, marker.size, {
                    'class': MARKER_CLASS,
                    'fill': marker.color,
                    'data-annot-id': marker.annot_id,
                    'data-category': marker.category or '',
                })
                markers.append(marker)
        return markers
