import pytest
from PySide6.QtTest import QTest

from conftest import SAMPLE_MEI, SCORE_URL, FakeEngine, Sources
from engine.engine import EngineHandle, EngineState
from engine.errors import EngineNotReadyError
from engine.fetcher import DocumentFetcher
from viewer.score_viewer import ScoreViewer


def test_load_renders_first_page(viewer, fake_engine):
    loaded, infos = [], []
    viewer.document_loaded.connect(loaded.append)
    viewer.page_info_updated.connect(lambda page, total: infos.append((page, total)))
    viewer.set_property('meiurl', SCORE_URL)
    assert loaded == [SCORE_URL]
    assert infos == [(1, 3)]
    assert fake_engine.loaded == [SAMPLE_MEI]
    assert viewer.view.page == 1


def test_fetch_failure_keeps_last_document(loaded_viewer):
    loaded_viewer.set_property('pagenumber', 2)
    doc, view, renders = loaded_viewer.document, loaded_viewer.view, loaded_viewer.render_count
    failures = []
    loaded_viewer.load_failed.connect(lambda url, msg: failures.append(url))
    loaded_viewer.set_property('meiurl', 'mem://missing.mei')
    assert failures == ['mem://missing.mei']
    assert loaded_viewer.document is doc
    assert loaded_viewer.view is view
    assert loaded_viewer.render_count == renders
    assert loaded_viewer.state.current_page == 2


def test_malformed_document_keeps_last_document(loaded_viewer, fake_engine):
    doc = loaded_viewer.document
    failures = []
    loaded_viewer.load_failed.connect(lambda url, msg: failures.append(msg))
    loaded_viewer.set_property('meiurl', 'mem://broken.mei')
    assert len(failures) == 1
    assert loaded_viewer.document is doc
    assert fake_engine.loaded == [SAMPLE_MEI]


def test_render_failure_keeps_previous_view(loaded_viewer, fake_engine):
    view, renders = loaded_viewer.view, loaded_viewer.render_count
    infos = []
    loaded_viewer.page_info_updated.connect(lambda page, total: infos.append(page))
    fake_engine.fail_render = True
    loaded_viewer.set_property('pagenumber', 2)
    assert loaded_viewer.view is view
    assert loaded_viewer.render_count == renders
    assert loaded_viewer.state.current_page == view.page == 1
    assert infos == []
    # Stepping still starts from the page on screen
    fake_engine.fail_render = False
    assert loaded_viewer.pagination.next_page() == 2


def test_stale_fetch_answers_are_dropped(qapp):
    fetcher = DocumentFetcher(get_text=lambda url: url, run_inline=True)
    got = []
    fetcher.fetched.connect(lambda rid, url, text: got.append(rid))
    fetcher.fetch('a')
    fetcher.fetch('b')
    assert got == [1, 2]
    # A late answer for the first request arrives after the second
    fetcher._signals.done.emit(1, 'a', 'a')
    assert got == [1, 2]
    assert fetcher.latest_request_id == 2


def test_writes_before_engine_ready_are_staged(qapp, settings):
    engine = FakeEngine()
    handle = EngineHandle(lambda: engine)
    sources = Sources({SCORE_URL: SAMPLE_MEI})
    viewer = ScoreViewer(handle, fetcher=DocumentFetcher(get_text=sources, run_inline=True), settings=settings)
    viewer.set_property('zoom', 45)
    viewer.set_property('meiurl', SCORE_URL)
    assert viewer.document is not None
    assert viewer.render_count == 0
    assert engine.option_pushes == []

    handle.initialize(deferred=True)
    assert handle.state is EngineState.UNINITIALIZED
    QTest.qWait(50)
    assert handle.is_ready
    assert engine.options['scale'] == 45
    assert engine.loaded == [SAMPLE_MEI]
    assert viewer.render_count == 1
    assert viewer.state.total_pages == 3


def test_source_set_before_engine_is_fetched_on_ready(qapp, settings):
    engine = FakeEngine()
    handle = EngineHandle(lambda: engine)
    fetched = []
    viewer = ScoreViewer(handle, fetcher=DocumentFetcher(get_text=lambda u: fetched.append(u) or SAMPLE_MEI,
                                                         run_inline=True), settings=settings)
    viewer.state.source_url = SCORE_URL
    handle.initialize(deferred=False)
    assert fetched == [SCORE_URL]
    assert viewer.render_count == 1


def test_engine_failure_leaves_viewer_empty(qapp, settings, caplog):
    def broken():
        raise RuntimeError("no wasm today")

    handle = EngineHandle(broken)
    messages = []
    handle.failed.connect(messages.append)
    viewer = ScoreViewer(handle, fetcher=DocumentFetcher(get_text=Sources({}), run_inline=True), settings=settings)
    handle.initialize(deferred=False)
    assert handle.state is EngineState.FAILED
    assert messages and 'no wasm today' in messages[0]
    assert viewer.render() is False
    assert 'no wasm today' in caplog.text
    with pytest.raises(EngineNotReadyError):
        handle.engine


def test_initialize_runs_once(qapp):
    created = []
    handle = EngineHandle(lambda: created.append(1) or FakeEngine())
    handle.initialize(deferred=False)
    handle.initialize(deferred=False)
    assert created == [1]


def test_render_audio(loaded_viewer):
    assert loaded_viewer.render_audio() == b'MThd'


def test_render_audio_needs_a_document(viewer):
    with pytest.raises(EngineNotReadyError):
        viewer.render_audio()


LARGO_MEI = SAMPLE_MEI.replace('label="Adagio"', 'label="Largo"')


def test_load_that_cannot_render_keeps_previous_document(loaded_viewer, fake_engine, sources):
    sources.documents['mem://largo.mei'] = LARGO_MEI
    doc, view = loaded_viewer.document, loaded_viewer.view
    colors = dict(loaded_viewer.overlay.category_colors)
    loaded, failures = [], []
    loaded_viewer.document_loaded.connect(loaded.append)
    loaded_viewer.load_failed.connect(lambda url, msg: failures.append(url))
    fake_engine.fail_render = True
    loaded_viewer.set_property('meiurl', 'mem://largo.mei')
    assert loaded == []
    assert failures == ['mem://largo.mei']
    assert loaded_viewer.document is doc
    assert loaded_viewer.view is view
    assert loaded_viewer.resolver.resolve_movement('Largo') is None
    assert loaded_viewer.resolver.resolve_movement('Adagio') == 'mdiv-2'
    assert dict(loaded_viewer.overlay.category_colors) == colors
    # The engine holds the previous document again
    assert fake_engine.loaded[-1] == SAMPLE_MEI


def test_document_loaded_waits_for_the_engine(qapp, settings):
    engine = FakeEngine()
    handle = EngineHandle(lambda: engine)
    viewer = ScoreViewer(handle, fetcher=DocumentFetcher(get_text=Sources({SCORE_URL: SAMPLE_MEI}),
                                                         run_inline=True), settings=settings)
    loaded = []

    def jump(url):
        loaded.append(url)
        viewer.set_property('measurenumber', 2)

    viewer.document_loaded.connect(jump)
    viewer.set_property('mdivname', 'Adagio')
    viewer.set_property('meiurl', SCORE_URL)
    assert loaded == []

    handle.initialize(deferred=True)
    QTest.qWait(50)
    assert loaded == [SCORE_URL]
    assert viewer.state.current_page == 3
    assert viewer.view.page == 3


def test_staged_document_fails_with_the_engine(qapp, settings):
    def broken():
        raise RuntimeError("no engine")

    handle = EngineHandle(broken)
    viewer = ScoreViewer(handle, fetcher=DocumentFetcher(get_text=Sources({SCORE_URL: SAMPLE_MEI}),
                                                         run_inline=True), settings=settings)
    failures = []
    viewer.load_failed.connect(lambda url, msg: failures.append((url, msg)))
    viewer.set_property('meiurl', SCORE_URL)
    handle.initialize(deferred=False)
    assert failures and failures[0][0] == SCORE_URL
