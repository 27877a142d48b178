"""Shared fixtures: an offscreen Qt application, a scripted engine and a sample score."""
from __future__ import annotations
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6 import QtWidgets

from engine.engine import ElementsAtTime, EngineHandle, RenderEngine
from engine.errors import FetchError
from engine.fetcher import DocumentFetcher
from settings_manager import create_settings_manager
from viewer.score_viewer import ScoreViewer


SAMPLE_MEI = """<?xml version="1.0" encoding="UTF-8"?>
<mei xmlns="http://www.music-encoding.org/ns/mei">
  <meiHead>
    <encodingDesc>
      <classDecls>
        <taxonomy>
          <category xml:id="cat-harmony"/>
          <category xml:id="cat-form"/>
        </taxonomy>
      </classDecls>
    </encodingDesc>
  </meiHead>
  <music>
    <body>
      <mdiv xml:id="mdiv-1" label="Allegro">
        <score>
          <section>
            <measure xml:id="a1" n="1"><staff n="1"><layer><note xml:id="n1"/></layer></staff></measure>
            <measure xml:id="a2" n="2"><staff n="1"><layer><note xml:id="n2"/></layer></staff></measure>
            <measure xml:id="a3" n="3"><staff n="1"><layer><note xml:id="n3"/></layer></staff></measure>
            <annot xml:id="an1" class="#cat-harmony" plist="#a1"/>
            <annot xml:id="an2" class="#cat-form" plist="#a1 #a2"/>
            <annot xml:id="an3" plist="#a2"/>
            <annot xml:id="an4" class="#cat-harmony" startid="#n2"/>
          </section>
        </score>
      </mdiv>
      <mdiv xml:id="mdiv-2" label="Adagio">
        <score>
          <section>
            <measure xml:id="b1" n="1">
              <staff n="1"><layer><note xml:id="n4"/></layer></staff>
              <annot xml:id="an5" type="cat-form"/>
            </measure>
            <measure xml:id="b2" n="2"><staff n="1"><layer><note xml:id="n5"/></layer></staff></measure>
          </section>
        </score>
      </mdiv>
    </body>
  </music>
</mei>
"""

# page -> measure ids drawn on it
PAGE_LAYOUT: dict[int, list[str]] = {
    1: ['a1', 'a2'],
    2: ['a3', 'b1'],
    3: ['b2'],
}

NOTES: dict[str, str] = {'a1': 'n1', 'a2': 'n2', 'a3': 'n3', 'b1': 'n4', 'b2': 'n5'}

ELEMENT_PAGES: dict[str, int] = {
    'mdiv-1': 1, 'mdiv-2': 2,
    'a1': 1, 'a2': 1, 'a3': 2, 'b1': 2, 'b2': 3,
    'n1': 1, 'n2': 1, 'n3': 2, 'n4': 2, 'n5': 3,
}

TIMELINE: dict[int, ElementsAtTime] = {
    0: ElementsAtTime(page=0),
    500: ElementsAtTime(page=1, elements=frozenset({'n1'})),
    1000: ElementsAtTime(page=1, elements=frozenset({'n2'})),
    1500: ElementsAtTime(page=2, elements=frozenset({'n3'})),
}


def page_svg(page: int) -> str:
    parts = ['<svg xmlns="http://www.w3.org/2000/svg" width="2100" height="2970" viewBox="0 0 21000 29700">',
             '<g class="page-margin">']
    for i, mid in enumerate(PAGE_LAYOUT.get(page, [])):
        x0 = 100 + i * 2000
        y0 = 1000
        parts.append(
            f'<g id="{mid}" class="measure">'
            f'<g class="staff"><path d="M{x0} {y0} L{x0 + 1900} {y0} M{x0} {y0 + 400} L{x0 + 1900} {y0 + 400}"/>'
            f'<g id="{NOTES[mid]}" class="note"><use x="{x0 + 200}" y="{y0 + 100}" width="100" height="100"/></g>'
            f'</g></g>'
        )
    parts.append('</g></svg>')
    return ''.join(parts)


class FakeEngine(RenderEngine):
    """Scripted engine recording every call the viewer makes."""

    def __init__(self, page_count: int = 3) -> None:
        self.page_count = page_count
        self.element_pages = dict(ELEMENT_PAGES)
        self.timeline = dict(TIMELINE)
        self.options: dict[str, object] = {}
        self.option_pushes: list[dict[str, object]] = []
        self.loaded: list[str] = []
        self.rendered: list[int] = []
        self.fail_render = False

    def load_data(self, document_text: str) -> None:
        self.loaded.append(document_text)

    def set_options(self, options: dict[str, object]) -> None:
        self.options.update(options)
        self.option_pushes.append(dict(options))

    def get_options(self) -> dict[str, object]:
        return dict(self.options)

    def render_page(self, page: int) -> str:
        if self.fail_render:
            raise RuntimeError("engine crashed")
        self.rendered.append(page)
        return page_svg(page)

    def get_page_count(self) -> int:
        return self.page_count

    def get_page_with_element(self, element_id: str) -> int:
        return self.element_pages.get(element_id, 0)

    def get_elements_at_time(self, time_ms: float) -> ElementsAtTime:
        return self.timeline.get(int(time_ms), ElementsAtTime())

    def render_to_audio(self) -> bytes:
        return b'MThd'


class Sources:
    """In-memory documents keyed by URL; the query string is ignored for lookup."""

    def __init__(self, documents: dict[str, str]) -> None:
        self.documents = dict(documents)
        self.requested: list[str] = []

    def __call__(self, url: str) -> str:
        self.requested.append(url)
        key = url.split('?', 1)[0]
        if key not in self.documents:
            raise FetchError(f"Could not fetch {url}: 404")
        return self.documents[key]


SCORE_URL = 'mem://score.mei'


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication([])
    yield app


@pytest.fixture
def settings(tmp_path):
    sm = create_settings_manager(tmp_path / "settings.toml")
    return sm


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def engine_handle(fake_engine) -> EngineHandle:
    handle = EngineHandle(lambda: fake_engine)
    handle.initialize(deferred=False)
    return handle


@pytest.fixture
def sources() -> Sources:
    return Sources({
        SCORE_URL: SAMPLE_MEI,
        'mem://broken.mei': '<mei><music>',
    })


@pytest.fixture
def viewer(engine_handle, sources, settings) -> ScoreViewer:
    fetcher = DocumentFetcher(get_text=sources, run_inline=True)
    v = ScoreViewer(engine_handle, fetcher=fetcher, settings=settings)
    yield v
    v.shutdown()


@pytest.fixture
def loaded_viewer(viewer) -> ScoreViewer:
    viewer.set_property('meiurl', SCORE_URL)
    assert viewer.document is not None
    return viewer
