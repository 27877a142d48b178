from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from PySide6 import QtCore

from engine.errors import EngineInitError, EngineNotReadyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ElementsAtTime:
    """Engine answer for a playback position; page 0 means no active position."""
    page: int = 0
    elements: frozenset[str] = field(default_factory=frozenset)


class RenderEngine(ABC):
    """Notation engine boundary.

    Implementations turn document text into pages and answer structural
    queries. Calls either succeed or raise; the viewer does not look inside.
    """

    @abstractmethod
    def load_data(self, document_text: str) -> None: ...

    @abstractmethod
    def set_options(self, options: dict[str, object]) -> None: ...

    @abstractmethod
    def get_options(self) -> dict[str, object]: ...

    @abstractmethod
    def render_page(self, page: int) -> str:
        """Return the SVG markup of a 1-based page."""

    @abstractmethod
    def get_page_count(self) -> int: ...

    @abstractmethod
    def get_page_with_element(self, element_id: str) -> int:
        """Page holding the element, or 0 when it is not rendered anywhere."""

    @abstractmethod
    def get_elements_at_time(self, time_ms: float) -> ElementsAtTime: ...

    @abstractmethod
    def render_to_audio(self) -> bytes: ...


class EngineState(str, Enum):
    UNINITIALIZED = 'uninitialized'
    READY = 'ready'
    FAILED = 'failed'


class EngineHandle(QtCore.QObject):
    """Owns one engine instance and its asynchronous startup.

    - initialize() schedules creation on the event loop and returns at once.
    - ready / failed announce the outcome exactly once.
    - engine raises EngineNotReadyError unless the state is READY.
    """

    ready = QtCore.Signal()
    failed = QtCore.Signal(str)

    def __init__(self, factory: Callable[[], RenderEngine], parent=None):
        super().__init__(parent)
        self._factory = factory
        self._engine: Optional[RenderEngine] = None
        self._state = EngineState.UNINITIALIZED
        self._scheduled = False

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is EngineState.READY

    @property
    def engine(self) -> RenderEngine:
        if self._engine is None or self._state is not EngineState.READY:
            raise EngineNotReadyError(f"Rendering engine is {self._state.value}")
        return self._engine

    def initialize(self, deferred: bool = True) -> None:
        if self._state is not EngineState.UNINITIALIZED or self._scheduled:
            return
        if deferred:
            self._scheduled = True
            QtCore.QTimer.singleShot(0, self._create)
        else:
            self._create()

    def _create(self) -> None:
        self._scheduled = False
        try:
            engine = self._factory()
        except Exception as exc:
            self._state = EngineState.FAILED
            err = EngineInitError(str(exc))
            logger.error("Rendering engine failed to initialize: %s", err)
            self.failed.emit(str(err))
            return
        self._engine = engine
        self._state = EngineState.READY
        logger.info("Rendering engine ready: %s", type(engine).__name__)
        self.ready.emit()
