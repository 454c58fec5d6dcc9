from __future__ import annotations

import argparse
import logging
import os
import sys
import uuid

import uvicorn

from tracker.api.http_app import build_app
from tracker.logging_setup import configure_logging
from tracker.services.bootstrap import build_runtime_container
from tracker.settings import app_settings_from_env

SERVICE_NAME = "public-service-tracker"
DEFAULT_PORT = 8000


def _default_port() -> int:
    raw = os.getenv("APP_PORT")
    if raw is None:
        return DEFAULT_PORT
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_PORT
    return value if value > 0 else DEFAULT_PORT


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Submission tracker entrypoint")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=None)
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Validate startup and exit",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable code reload (dev mode)",
    )
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Insert one demo submission per status on startup",
    )
    return parser.parse_args(argv)


def create_runtime_app() -> object:
    run_id = str(uuid.uuid4())
    configure_logging()
    seed_demo = os.getenv("APP_SEED_DEMO", "").lower() in {"1", "true", "yes"}
    container = build_runtime_container(app_settings_from_env(), seed_demo=seed_demo)
    return build_app(
        service=SERVICE_NAME,
        run_id=run_id,
        api_deps=container.api_deps,
        mode=container.mode,
        initializer=container.initializer,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )


def run(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2

    port = args.port if args.port is not None else _default_port()
    if not 0 < port < 65536:
        sys.stderr.write(f"ERROR: invalid port: {port}\n")
        return 2

    configure_logging()
    run_id = str(uuid.uuid4())
    logger = logging.getLogger("runtime")
    settings = app_settings_from_env()

    logger.info(
        "runtime initialized",
        extra={"service": SERVICE_NAME, "run_id": run_id, "detail": f"environment={settings.environment}"},
    )

    container = build_runtime_container(settings, seed_demo=args.seed_demo)

    if args.dry_run_startup:
        logger.info(
            "dry-run startup complete",
            extra={"service": SERVICE_NAME, "run_id": run_id, "detail": f"mode={container.mode}"},
        )
        return 0

    if args.reload:
        if args.seed_demo:
            os.environ["APP_SEED_DEMO"] = "1"
        uvicorn.run(
            "tracker.main:create_runtime_app",
            host=args.host,
            port=port,
            log_level="warning",
            reload=True,
            factory=True,
        )
    else:
        app = build_app(
            service=SERVICE_NAME,
            run_id=run_id,
            api_deps=container.api_deps,
            mode=container.mode,
            initializer=container.initializer,
            on_startup=container.on_startup,
            on_shutdown=container.on_shutdown,
        )
        uvicorn.run(app, host=args.host, port=port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
