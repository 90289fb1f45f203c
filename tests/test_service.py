import threading
import time
from types import SimpleNamespace

import pytest

from photobooth.camera.mock_camera import MockCamera
from photobooth.grpc.server import BoothServiceImpl
from photobooth.pipeline.controller import PipelineController
from photobooth.pipeline.session import EventKind, SessionEvent

from conftest import STRIP_COLORS


@pytest.fixture
def service(config, clock):
    controller = PipelineController(
        frame_source=MockCamera(width=320, height=240, colors=STRIP_COLORS), config=config, clock=clock
    )
    yield BoothServiceImpl(controller)
    controller.shutdown()


def upload_request(files, filter_name="", save=False):
    return SimpleNamespace(
        files=[SimpleNamespace(name=name, data=data) for name, data in files],
        filter=filter_name,
        save=save,
    )


def test_select_filter(service):
    ok, msg = service.SelectFilter(SimpleNamespace(name="Vintage"))
    assert ok
    assert "vintage" in msg

    ok, msg = service.SelectFilter(SimpleNamespace(name="lomo"))
    assert not ok
    assert "Available" in msg


def test_sliders(service):
    assert service.SetIntensity(SimpleNamespace(value=0.4)) == (True, "Intensity set to 0.40")
    ok, _ = service.SetGrain(SimpleNamespace(value=3.0))
    assert not ok


def test_status(service):
    ok, msg, status = service.GetStatus(None)
    assert ok
    assert status["state"] == "idle"
    assert "fadedfilm" in status["available_filters"]


def test_compose_uploads(service, png_upload):
    files = [png_upload(f"{i}.png", color) for i, color in enumerate(STRIP_COLORS)]
    ok, msg, png, width, height, path, skipped = service.ComposeUploads(upload_request(files, "bw"))
    assert ok
    assert png.startswith(b"\x89PNG")
    assert (width, height) == (330, 945)
    assert path == ""
    assert skipped == []
    assert service.controller.context.filter.name == "bw"


def test_compose_uploads_can_save(service, png_upload):
    files = [png_upload("only.png", STRIP_COLORS[0])]
    ok, msg, png, width, height, path, skipped = service.ComposeUploads(upload_request(files, save=True))
    assert ok
    assert path.endswith(".png")


def test_compose_uploads_reports_every_failure(service):
    files = [("a.txt", b"hello"), ("b.gif", b"GIF89a")]
    ok, msg, png, width, height, path, skipped = service.ComposeUploads(upload_request(files))
    assert not ok
    assert png == b""
    assert skipped == ["a.txt", "b.gif"]


def test_last_strip(service, png_upload):
    ok, msg, *_ = service.GetLastStrip(None)
    assert not ok

    files = [png_upload(f"{i}.png", color) for i, color in enumerate(STRIP_COLORS)]
    service.ComposeUploads(upload_request(files))
    ok, msg, png, width, height, path, skipped = service.GetLastStrip(None)
    assert ok
    assert (width, height) == (330, 945)


def test_session_commands(service):
    ok, _ = service.CancelSession(None)
    assert not ok

    ok, _ = service.StartSession(SimpleNamespace(countdown_seconds=1))
    assert ok
    assert service.controller.wait(timeout=30)
    assert service.controller.last_strip is not None

    ok, _ = service.Retake(None)
    assert ok


def test_stream_events(service):
    event = SessionEvent(kind=EventKind.COUNTDOWN, state="counting_down", remaining=3)
    threading.Timer(0.2, service.controller._publish, args=(event,)).start()

    deadline = time.monotonic() + 10
    stream = service.StreamEvents(None, is_active=lambda: time.monotonic() < deadline)
    assert next(stream) == event
    stream.close()
    assert service.controller._subscribers == []


class StartRequest(SimpleNamespace):
    """Mimics a proto3 message with an optional countdown field."""

    def HasField(self, name):
        return name in vars(self)


def test_start_session_with_zero_countdown(service):
    events = service.controller.subscribe()
    ok, _ = service.StartSession(StartRequest(countdown_seconds=0))
    assert ok
    assert service.controller.wait(timeout=30)
    assert service.controller.session.countdown_seconds == 0

    kinds = []
    while not events.empty():
        kinds.append(events.get_nowait().kind)
    assert EventKind.COUNTDOWN not in kinds
    assert EventKind.READY in kinds


def test_start_session_without_countdown_keeps_config(service, config):
    ok, _ = service.StartSession(StartRequest())
    assert ok
    assert service.controller.wait(timeout=30)
    assert service.controller.session.countdown_seconds == config.countdown_seconds
