"""
Command line entry point.

    photobooth shoot --filter vintage --intensity 0.8
    photobooth shoot --single --camera mock
    photobooth compose a.jpg b.jpg c.jpg d.jpg --filter polaroid
    photobooth serve --port 50061
    photobooth filters
"""

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional

from photobooth.config import BoothConfig
from photobooth.errors import PhotoboothError
from photobooth.pipeline.controller import PipelineController
from photobooth.pipeline.presets import available_filters
from photobooth.pipeline.session import EventKind, SessionEvent

LOGGER = logging.getLogger("photobooth")
LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _configure_logging(level: str) -> None:
    numeric = LOG_LEVELS.get(level.lower())
    if numeric is None:
        raise ValueError(f"Unknown log level '{level}'. Choose from {list(LOG_LEVELS)}")

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
    LOGGER.debug("Logging configured at %s", level.upper())


def _load_config(args) -> BoothConfig:
    config = BoothConfig.from_yaml(args.config) if args.config else BoothConfig()

    overrides = {}
    for attr, key in (
        ("filter", "default_filter"),
        ("intensity", "intensity"),
        ("grain", "grain"),
        ("camera", "camera_backend"),
        ("countdown", "countdown_seconds"),
        ("output_dir", "output_dir"),
        ("seed", "seed"),
        ("host", "grpc_host"),
        ("port", "grpc_port"),
    ):
        value = getattr(args, attr, None)
        if value is not None:
            overrides[key] = value
    return dataclasses.replace(config, **overrides) if overrides else config


def _print_event(event: SessionEvent) -> None:
    if event.kind is EventKind.COUNTDOWN:
        print(f"{event.remaining}...", flush=True)
    elif event.kind is EventKind.FLASH:
        print(f"Click! ({event.frame_index + 1})", flush=True)
    elif event.kind is EventKind.CANCELLED:
        print("Cancelled.")
    elif event.kind is EventKind.FAILED:
        print(f"Capture failed: {event.message}")


def cmd_shoot(args) -> int:
    config = _load_config(args)
    controller = PipelineController(config=config, listeners=[_print_event])
    try:
        if args.single:
            image = controller.capture_single()
            print(f"Saved to {controller.sink.save(image, 'single')}")
            return 0

        strip = controller.start_session()
        if strip is None:
            return 1
        print(f"Strip saved to {controller.last_output}")
        return 0
    except KeyboardInterrupt:
        controller.cancel_session()
        return 130
    finally:
        controller.shutdown()


def cmd_compose(args) -> int:
    config = _load_config(args)
    controller = PipelineController(config=config)
    try:
        strip, errors = controller.render_uploads(args.files)
        for name, err in errors:
            print(f"Skipped {name}: {err}")
        print(f"Strip saved to {controller.deliver(strip)}")
        return 0
    finally:
        controller.shutdown()


def cmd_serve(args) -> int:
    from photobooth.grpc.server import run_server

    config = _load_config(args)
    controller = PipelineController(config=config)
    run_server(controller, host=config.grpc_host, port=config.grpc_port)
    return 0


def cmd_filters(args) -> int:
    for name in available_filters():
        print(name)
    return 0


def _add_look_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--filter", help="Look to apply (see 'photobooth filters')")
    parser.add_argument("--intensity", type=float, help="Filter strength, 0..1")
    parser.add_argument("--grain", type=float, help="Texture strength, 0..1")
    parser.add_argument("--output-dir", help="Where strips are saved")
    parser.add_argument("--seed", type=int, help="Seed for reproducible textures")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="photobooth", description="Photobooth strip maker")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS.keys(),
        default="info",
        help="Logging verbosity",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    shoot = sub.add_parser("shoot", help="Run a timed capture session")
    _add_look_options(shoot)
    shoot.add_argument("--camera", choices=["webcam", "picamera", "mock"], help="Frame source")
    shoot.add_argument("--countdown", type=int, help="Countdown seconds per photo")
    shoot.add_argument("--single", action="store_true", help="Take one full-frame photo with a date stamp")
    shoot.set_defaults(func=cmd_shoot)

    compose = sub.add_parser("compose", help="Build a strip from image files")
    _add_look_options(compose)
    compose.add_argument("files", nargs="+", help="Image files, in strip order")
    compose.set_defaults(func=cmd_compose)

    serve = sub.add_parser("serve", help="Run the gRPC booth service")
    serve.add_argument("--camera", choices=["webcam", "picamera", "mock"], help="Frame source")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")
    serve.set_defaults(func=cmd_serve)

    filters = sub.add_parser("filters", help="List available looks")
    filters.set_defaults(func=cmd_filters)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)
    try:
        return args.func(args)
    except PhotoboothError as e:
        LOGGER.error(f"{type(e).__name__}: {e}")
        return 2
    except ValueError as e:
        LOGGER.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
