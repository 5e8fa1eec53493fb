"""Entrypoint for running the exporter via `python -m domoticz_exporter`."""
from __future__ import annotations

import argparse
from typing import Any, Dict, Optional, Sequence

import uvicorn

from .api.app import create_app
from .config.settings import Settings, get_settings
from .logging.json_logger import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="domoticz-exporter", description="Expose Domoticz pushes as Prometheus metrics.")
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        help="Address on which to expose metrics and web interface.",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="metrics_path",
        help="Path under which to expose Prometheus metrics.",
    )
    parser.add_argument(
        "--web.domoticz-push-path",
        dest="push_path",
        help="Path under which to accept POST requests from domoticz.",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level.")
    return parser


def settings_from_args(argv: Optional[Sequence[str]] = None, base: Optional[Settings] = None) -> Settings:
    args = build_parser().parse_args(argv)
    base = base or get_settings()
    overrides: Dict[str, Any] = {key: value for key, value in vars(args).items() if value is not None}
    if not overrides:
        return base
    return Settings.model_validate({**base.model_dump(), **overrides})


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = settings_from_args(argv)
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    main()
