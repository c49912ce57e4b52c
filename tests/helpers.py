"""Shared test utilities."""

import time

from PyQt6.QtCore import QCoreApplication


def ensure_app() -> QCoreApplication:
    """A QCoreApplication for timers and cross-thread signals."""
    return QCoreApplication.instance() or QCoreApplication([])


def wait_until(predicate, timeout: float = 5.0) -> bool:
    """Pump Qt events until predicate() holds or timeout seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        if predicate():
            return True
        time.sleep(0.005)
    QCoreApplication.processEvents()
    return predicate()


def make_buffer(pixels, width: int, height: int) -> bytes:
    """RGBA buffer from a row-major list of (r, g, b) byte triples."""
    assert len(pixels) == width * height
    data = bytearray()
    for r, g, b in pixels:
        data.extend((r, g, b, 255))
    return bytes(data)


def solid_buffer(color, width: int, height: int) -> bytes:
    return make_buffer([color] * (width * height), width, height)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds
