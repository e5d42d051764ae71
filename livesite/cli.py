from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from .config import Settings, load_config, settings_from_args
from .render import THEME_NAME
from .server import create_app
from .utils import parse_bool, parse_int

DEFAULTS = Settings()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser(config: dict, config_path: str) -> argparse.ArgumentParser:
    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_bool(key: str, default: bool) -> bool:
        value = cfg_value(key, default)
        return parse_bool(value) if value is not None else default

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    parser = argparse.ArgumentParser(description="Serve a folder of Markdown posts, re-rendered live.")
    parser.add_argument("--config", default=config_path, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--posts", default=cfg_str("posts", str(DEFAULTS.posts_dir)), help="Directory containing Markdown posts.")
    parser.add_argument(
        "--themes",
        default=cfg_str("themes", str(DEFAULTS.themes_dir)),
        help=f"Directory containing highlighting themes (must define '{THEME_NAME}').",
    )
    parser.add_argument("--public", default=cfg_str("public", str(DEFAULTS.public_dir)), help="Directory of static assets served at /public.")
    parser.add_argument("--host", default=cfg_str("host", DEFAULTS.host), help="Address to bind.")
    parser.add_argument("--port", default=cfg_int("port", DEFAULTS.port), type=int, help="Port to bind.")
    parser.add_argument(
        "--watch",
        action=argparse.BooleanOptionalAction,
        default=cfg_bool("watch", DEFAULTS.watch),
        help="Watch the posts directory and re-render on changes.",
    )
    parser.add_argument("--log-level", default=cfg_str("log_level", DEFAULTS.log_level), help="Logging level.")
    return parser


def parse_settings(argv: list[str] | None = None) -> Settings:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default="site.toml", help="Path to site config file (TOML/YAML/JSON).")
    pre_args, _ = pre_parser.parse_known_args(argv)
    config = load_config(Path(pre_args.config))
    args = build_parser(config, pre_args.config).parse_args(argv)
    return settings_from_args(args)


def main(argv: list[str] | None = None) -> None:
    settings = parse_settings(argv)
    level = getattr(logging, settings.log_level, None)
    if not isinstance(level, int):
        print(f"Unknown log level: {settings.log_level}", file=sys.stderr)
        sys.exit(1)
    logging.basicConfig(level=level, format=LOG_FORMAT)

    if settings.posts_dir.exists() and not settings.posts_dir.is_dir():
        print(f"Posts path is not a directory: {settings.posts_dir}", file=sys.stderr)
        sys.exit(1)
    if not settings.themes_dir.is_dir():
        print(f"Themes directory not found: {settings.themes_dir}", file=sys.stderr)
        sys.exit(1)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
