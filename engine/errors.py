class ScoreViewError(Exception):
    """Base class for viewer errors."""


class EngineNotReadyError(ScoreViewError):
    """The rendering engine has not finished (or failed) initialization."""


class EngineInitError(ScoreViewError):
    """The rendering engine could not be created."""


class FetchError(ScoreViewError):
    """A source document could not be downloaded."""
