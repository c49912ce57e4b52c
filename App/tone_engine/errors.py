"""Exceptions raised by the tone engine."""


class ToneEngineError(Exception):
    """Base class for tone engine failures."""


class InvalidImageError(ToneEngineError, ValueError):
    """Image could not be decoded or the pixel buffer is malformed."""


class EmptySequenceError(ToneEngineError, RuntimeError):
    """A tone was requested before any pixels were loaded."""
