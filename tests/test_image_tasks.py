from types import SimpleNamespace

import pytest

from core.errors import DecodeFailure

image_tasks = pytest.importorskip("app.views.image_tasks")


class RecordingReceiver:
    def __init__(self):
        self.emitted = []
        self.imageLoaded = SimpleNamespace(emit=lambda *args: self.emitted.append(args))


class StubDecoder:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def decode(self, path, max_dimension):
        self.calls.append(("decode", path, max_dimension))
        if self.error is not None:
            raise self.error
        return "preview"

    def load_full(self, path):
        self.calls.append(("load_full", path))
        if self.error is not None:
            raise self.error
        return "full"


def _run(decoder, side):
    receiver = RecordingReceiver()
    task = image_tasks._ImageTask(
        path="a.jpg", side=side, decoder=decoder, receiver=receiver, token="t1"
    )
    task.run()
    return receiver.emitted


def test_positive_side_decodes_preview():
    decoder = StubDecoder()
    assert _run(decoder, 800) == [("t1", "a.jpg", "preview")]
    assert decoder.calls == [("decode", "a.jpg", 800)]


def test_zero_side_loads_full_resolution():
    decoder = StubDecoder()
    assert _run(decoder, 0) == [("t1", "a.jpg", "full")]
    assert decoder.calls == [("load_full", "a.jpg")]


def test_decode_failure_emits_none():
    decoder = StubDecoder(error=DecodeFailure("a.jpg", "truncated"))
    assert _run(decoder, 800) == [("t1", "a.jpg", None)]


def test_unexpected_error_still_emits_none():
    decoder = StubDecoder(error=MemoryError("too large"))
    assert _run(decoder, 0) == [("t1", "a.jpg", None)]
