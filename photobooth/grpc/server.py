# photobooth/grpc/server.py
import logging
import queue
import time
from concurrent import futures
from typing import Callable, Iterator

import grpc

from photobooth.errors import UploadFailed
from photobooth.pipeline.controller import PipelineController
from photobooth.pipeline.presets import available_filters
from photobooth.pipeline.session import SessionEvent
from photobooth.pipeline.sink import encode_png

logger = logging.getLogger("GRPCServer")

try:
    from photobooth.grpc.generated import booth_pb2, booth_pb2_grpc
except ImportError as e:
    logger.warning(f"Protobuf modules not available ({e}); run: poetry run generate-protos")
    booth_pb2 = None
    booth_pb2_grpc = None

EVENT_POLL_SECONDS = 0.5


def _strip_result(strip, message: str, path: str = "", skipped=()):
    height, width = strip.shape[:2]
    return True, message, encode_png(strip), width, height, path, list(skipped)


def _strip_failure(message: str, skipped=()):
    return False, message, b"", 0, 0, "", list(skipped)


def _requested_countdown(request):
    """Countdown asked for by the client, or None to keep the configured one."""
    if request is None:
        return None
    if hasattr(request, "HasField"):
        return request.countdown_seconds if request.HasField("countdown_seconds") else None
    return getattr(request, "countdown_seconds", None)


class BoothServiceImpl:
    """
    Implementation wrapper that will be adapted to the generated servicer class below.
    Exposes methods that match proto names and return plain tuples.
    """

    def __init__(self, controller: PipelineController):
        self.controller = controller
        self.logger = logging.getLogger("BoothServiceImpl")

    def StartSession(self, request):
        """Start a capture session on the controller's worker thread."""
        try:
            self.logger.info("StartSession called")
            countdown = _requested_countdown(request)
            self.controller.start_session(background=True, countdown_seconds=countdown)
            return True, "Session started"
        except Exception as e:
            self.logger.error(f"StartSession failed: {e}")
            return False, f"Start failed: {e}"

    def CancelSession(self, request):
        try:
            self.logger.info("CancelSession called")
            if self.controller.cancel_session():
                return True, "Session cancelled"
            return False, f"No active session (state: {self.controller.current_state()})"
        except Exception as e:
            self.logger.error(f"CancelSession failed: {e}")
            return False, f"Cancel failed: {e}"

    def Retake(self, request):
        try:
            self.logger.info("Retake called")
            if self.controller.retake():
                return True, "Ready for a new strip"
            return False, f"Cannot retake in state: {self.controller.current_state()}"
        except Exception as e:
            self.logger.error(f"Retake failed: {e}")
            return False, f"Retake failed: {e}"

    def SelectFilter(self, request):
        try:
            selected = self.controller.select_filter(request.name)
            return True, f"Filter set to '{selected.name}'"
        except Exception as e:
            self.logger.error(f"SelectFilter failed: {e}")
            return False, f"Unknown filter '{request.name}'. Available: {', '.join(available_filters())}"

    def SetIntensity(self, request):
        try:
            self.controller.set_intensity(request.value)
            return True, f"Intensity set to {self.controller.context.intensity:.2f}"
        except Exception as e:
            self.logger.error(f"SetIntensity failed: {e}")
            return False, f"Invalid intensity: {e}"

    def SetGrain(self, request):
        try:
            self.controller.set_grain(request.value)
            return True, f"Grain set to {self.controller.context.grain:.2f}"
        except Exception as e:
            self.logger.error(f"SetGrain failed: {e}")
            return False, f"Invalid grain: {e}"

    def GetStatus(self, request):
        try:
            status = self.controller.status()
            status["available_filters"] = available_filters()
            return True, "", status
        except Exception as e:
            self.logger.error(f"GetStatus failed: {e}")
            return False, f"Error: {e}", {}

    def StreamEvents(self, request, is_active: Callable[[], bool] = lambda: True) -> Iterator[SessionEvent]:
        """Yield session events as they happen until ``is_active`` turns False."""
        events = self.controller.subscribe()
        self.logger.info("Event stream opened")
        try:
            while is_active():
                try:
                    event = events.get(timeout=EVENT_POLL_SECONDS)
                except queue.Empty:
                    continue
                yield event
        finally:
            self.controller.unsubscribe(events)
            self.logger.info("Event stream closed")

    def ComposeUploads(self, request):
        """Build a strip from uploaded files and return it as PNG bytes."""
        try:
            self.logger.info(f"ComposeUploads called with {len(request.files)} file(s)")
            if request.filter:
                self.controller.select_filter(request.filter)

            sources = [(f.name, f.data) for f in request.files]
            strip, errors = self.controller.render_uploads(sources)
            skipped = [name for name, _ in errors]
            path = self.controller.deliver(strip) if request.save else ""

            message = "Strip composed"
            if skipped:
                message += f" ({len(skipped)} file(s) skipped)"
            return _strip_result(strip, message, path, skipped)

        except UploadFailed as e:
            self.logger.error(f"ComposeUploads failed: {e}")
            return _strip_failure(str(e), [name for name, _ in e.errors])
        except Exception as e:
            self.logger.error(f"ComposeUploads failed: {e}", exc_info=True)
            return _strip_failure(f"Compose failed: {e}")

    def GetLastStrip(self, request):
        try:
            strip = self.controller.last_strip
            if strip is None:
                return _strip_failure("No strip rendered yet")
            return _strip_result(strip, "Last strip", self.controller.last_output or "")
        except Exception as e:
            self.logger.error(f"GetLastStrip failed: {e}")
            return _strip_failure(f"Error: {e}")


# If generated gRPC classes exist, map them to service implementation
if booth_pb2 is not None and booth_pb2_grpc is not None:

    def _strip_response(result):
        ok, msg, png, width, height, path, skipped = result
        return booth_pb2.StripResponse(
            success=ok,
            message=msg,
            png_data=png,
            width=width,
            height=height,
            path=path,
            skipped=skipped
        )

    class GRPCServer:
        def __init__(self, controller: PipelineController, host: str = "[::]", port: int = 50061):
            self.controller = controller
            self.host = host
            self.port = port
            self.server = grpc.server(futures.ThreadPoolExecutor(max_workers=6))
            self._impl = BoothServiceImpl(controller)

            # Define and attach the servicer dynamically
            class Servicer(booth_pb2_grpc.BoothServiceServicer):
                def StartSession(inner_self, request, context):
                    ok, msg = self._impl.StartSession(request)
                    return booth_pb2.BasicResponse(success=ok, message=msg)

                def CancelSession(inner_self, request, context):
                    ok, msg = self._impl.CancelSession(request)
                    return booth_pb2.BasicResponse(success=ok, message=msg)

                def Retake(inner_self, request, context):
                    ok, msg = self._impl.Retake(request)
                    return booth_pb2.BasicResponse(success=ok, message=msg)

                def SelectFilter(inner_self, request, context):
                    ok, msg = self._impl.SelectFilter(request)
                    return booth_pb2.BasicResponse(success=ok, message=msg)

                def SetIntensity(inner_self, request, context):
                    ok, msg = self._impl.SetIntensity(request)
                    return booth_pb2.BasicResponse(success=ok, message=msg)

                def SetGrain(inner_self, request, context):
                    ok, msg = self._impl.SetGrain(request)
                    return booth_pb2.BasicResponse(success=ok, message=msg)

                def GetStatus(inner_self, request, context):
                    ok, msg, status = self._impl.GetStatus(request)
                    return booth_pb2.StatusResponse(
                        success=ok,
                        message=msg,
                        state=status.get("state", "error"),
                        frame_count=status.get("frame_count", 0),
                        remaining=status.get("remaining", 0),
                        filter=status.get("filter", ""),
                        intensity=status.get("intensity", 0.0),
                        grain=status.get("grain", 0.0),
                        last_output=status.get("last_output") or "",
                        available_filters=status.get("available_filters", [])
                    )

                def StreamEvents(inner_self, request, context):
                    # Server streaming of session events until client cancels
                    try:
                        for event in self._impl.StreamEvents(request, is_active=context.is_active):
                            yield booth_pb2.SessionEventMessage(
                                kind=event.kind.value,
                                state=event.state,
                                remaining=event.remaining,
                                frame_index=event.frame_index,
                                frame_count=event.frame_count,
                                message=event.message,
                                timestamp=event.timestamp
                            )
                    except Exception as e:
                        logger.error(f"StreamEvents error: {e}")
                        return

                def ComposeUploads(inner_self, request, context):
                    return _strip_response(self._impl.ComposeUploads(request))

                def GetLastStrip(inner_self, request, context):
                    return _strip_response(self._impl.GetLastStrip(request))

            booth_pb2_grpc.add_BoothServiceServicer_to_server(Servicer(), self.server)
            self.server.add_insecure_port(f"{self.host}:{self.port}")

        def start(self):
            self.server.start()
            logger.info(f"gRPC server started on {self.host}:{self.port}")

        def stop(self, grace=5):
            self.server.stop(grace)
            logger.info("gRPC server stopped")

else:
    class GRPCServer:
        def __init__(self, controller, host="[::]", port=50061):
            raise RuntimeError("Generated protobuf modules not found. Run: poetry run generate-protos")


def run_server(controller: PipelineController, host: str = "[::]", port: int = 50061):
    server = GRPCServer(controller, host, port)
    server.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.stop(0)
        controller.shutdown()
