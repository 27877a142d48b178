from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse, unquote

import requests
from PySide6 import QtCore

from engine.errors import FetchError
from utils.CONSTANT import REQUEST_TIMEOUT_S

logger = logging.getLogger(__name__)


def http_get_text(url: str, timeout: float = REQUEST_TIMEOUT_S) -> str:
    """Download a document as text; local paths and file:// URLs are read from disk."""
    parsed = urlparse(url)
    if parsed.scheme in ('', 'file') or len(parsed.scheme) == 1:
        # len == 1: a Windows drive letter, not a scheme
        path = Path(unquote(parsed.path) if parsed.scheme == 'file' else url)
        try:
            return path.read_text(encoding='utf-8')
        except OSError as exc:
            raise FetchError(f"Could not read {path}: {exc}") from exc
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Could not fetch {url}: {exc}") from exc
    response.encoding = response.encoding or 'utf-8'
    return response.text


class _FetchSignals(QtCore.QObject):
    done = QtCore.Signal(int, str, str)
    error = QtCore.Signal(int, str, str)


class _FetchTask(QtCore.QRunnable):
    def __init__(self, request_id: int, url: str, get_text: Callable[[str], str], signals: _FetchSignals):
        super().__init__()
        self._request_id = request_id
        self._url = url
        self._get_text = get_text
        self._signals = signals

    def run(self) -> None:
        try:
            text = self._get_text(self._url)
        except FetchError as exc:
            self._signals.error.emit(self._request_id, self._url, str(exc))
            return
        self._signals.done.emit(self._request_id, self._url, text)


class DocumentFetcher(QtCore.QObject):
    """Asynchronous document download with latest-request-wins delivery.

    - fetch(url) starts a download and returns its request id.
    - fetched / failed fire on the GUI thread for the latest request only;
      answers to superseded requests are dropped.
    """

    fetched = QtCore.Signal(int, str, str)
    failed = QtCore.Signal(int, str, str)

    def __init__(self, get_text: Optional[Callable[[str], str]] = None,
                 pool: Optional[QtCore.QThreadPool] = None,
                 run_inline: bool = False, parent=None):
        super().__init__(parent)
        self._get_text = get_text or http_get_text
        self._pool = pool or QtCore.QThreadPool.globalInstance()
        self._run_inline = run_inline
        self._latest_request_id = 0
        self._signals = _FetchSignals(self)
        self._signals.done.connect(self._on_done)
        self._signals.error.connect(self._on_error)

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    def fetch(self, url: str) -> int:
        self._latest_request_id += 1
        req_id = self._latest_request_id
        task = _FetchTask(req_id, url, self._get_text, self._signals)
        logger.debug("Fetching %s (request %d)", url, req_id)
        if self._run_inline:
            task.run()
        else:
            self._pool.start(task)
        return req_id

    @QtCore.Slot(int, str, str)
    def _on_done(self, request_id: int, url: str, text: str) -> None:
        if request_id != self._latest_request_id:
            logger.debug("Dropping stale response for %s (request %d)", url, request_id)
            return
        self.fetched.emit(request_id, url, text)

    @QtCore.Slot(int, str, str)
    def _on_error(self, request_id: int, url: str, message: str) -> None:
        if request_id != self._latest_request_id:
            return
        logger.error("Error fetching document: %s", message)
        self.failed.emit(request_id, url, message)
