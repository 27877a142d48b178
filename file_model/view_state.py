from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from utils.CONSTANT import DEFAULT_ENGINE_OPTIONS, DEFAULT_ZOOM


@dataclass
class ViewState:
    """The single mutable record behind one viewer.

    current_page is the only page field: a requested page (pagenumber write,
    navigation) is written here and clamped against the page count the
    engine reports at render time.
    """
    current_page: int = 1
    total_pages: int = 0
    zoom: int = DEFAULT_ZOOM
    # Page size currently pushed into the engine options (engine units)
    page_width: int = int(DEFAULT_ENGINE_OPTIONS['pageWidth'])
    page_height: int = int(DEFAULT_ENGINE_OPTIONS['pageHeight'])
    options: dict[str, object] = field(default_factory=lambda: dict(DEFAULT_ENGINE_OPTIONS))

    # Explicit on-screen size (width/height properties); None means "follow the viewport"
    explicit_width: Optional[int] = None
    explicit_height: Optional[int] = None
    # Live viewport size reported by the host widget
    viewport_width: int = 0
    viewport_height: int = 0

    # NavigationScope: movement label/id narrowing measure lookup, None = whole document
    scope: Optional[str] = None
    # Movement id appended to the next fetch
    movement_id: Optional[str] = None
    source_url: str = ''

    def max_page(self) -> int:
        return max(self.total_pages, 1)

    def clamp_page(self, page: int) -> int:
        return max(1, min(int(page), self.max_page()))

    def set_zoom(self, zoom: int) -> None:
        self.zoom = int(zoom)
        self.options['scale'] = self.zoom

    def set_page_size(self, width: Optional[int] = None, height: Optional[int] = None) -> None:
        if width is not None:
            self.page_width = int(width)
            self.options['pageWidth'] = self.page_width
        if height is not None:
            self.page_height = int(height)
            self.options['pageHeight'] = self.page_height
