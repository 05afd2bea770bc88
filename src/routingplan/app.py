from __future__ import annotations

import argparse
import logging
from pathlib import Path

from nicegui import ui

from routingplan.core import messages
from routingplan.data.db import Db
from routingplan.data.repository import RoutingRepository
from routingplan.logging_conf import configure_logging
from routingplan.settings import Settings, default_db_path
from routingplan.ui.pages import register_pages

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Routing planner")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--db", type=str, default=None, help="sqlite database path")
    parser.add_argument("--log-level", type=str, default="INFO")
    return parser


def build_settings(argv: list[str] | None = None) -> Settings:
    args = build_arg_parser().parse_args(argv)
    return Settings(
        db_path=Path(args.db) if args.db else default_db_path(),
        host=args.host,
        port=args.port,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> None:
    settings = build_settings(argv)
    configure_logging(settings.log_level)

    db = Db(settings.db_path)
    db.ensure_schema()

    repo = RoutingRepository(db)
    messages.set_language(repo.get_config(key="language", default=messages.DEFAULT_LANGUAGE))
    planta = repo.get_config(key="planta", default="Routing planner") or "Routing planner"
    register_pages(repo, title=planta)

    logger.info("Starting on %s:%s (db=%s)", settings.host, settings.port, settings.db_path)
    ui.run(host=settings.host, port=settings.port, title=planta, reload=False)


if __name__ in {"__main__", "__mp_main__"}:
    main()
