from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from pathlib import Path

try:
    import tomllib as toml
except ImportError:
    try:
        import tomli as toml
    except ImportError:  # pragma: no cover - optional dependency
        toml = None

try:
    import yaml
except ImportError:  # pragma: no cover - optional dependency
    yaml = None

MAPPING_SUFFIXES = (".toml", ".yaml", ".yml", ".json")


class ConfigError(ValueError):
    pass


@dataclass
class Settings:
    posts_dir: Path = Path("posts")
    themes_dir: Path = Path("themes")
    public_dir: Path = Path("public")
    host: str = "127.0.0.1"
    port: int = 3443
    watch: bool = True
    log_level: str = "INFO"


def read_mapping(path: Path) -> dict:
    """Parse a TOML, YAML or JSON file that must hold a mapping."""
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        if toml is None:
            raise ConfigError("TOML files require tomllib (Python 3.11+) or tomli.")
        try:
            data = toml.loads(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    elif suffix in {".yml", ".yaml"}:
        if yaml is None:
            raise ConfigError("YAML files require PyYAML.")
        try:
            data = yaml.safe_load(text)
        except Exception as exc:  # pragma: no cover - depends on parser
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        if data is None:
            data = {}
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return data


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return read_mapping(path)
    except ConfigError as exc:
        print(f"Invalid config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)


def resolve_path(value: str, config_path: Path) -> Path:
    path = Path(value)
    if path.is_absolute():
        return path
    if not config_path.exists():
        return path
    return config_path.resolve().parent / path


def settings_from_args(args: object) -> Settings:
    config_path = Path(getattr(args, "config", "site.toml"))
    return Settings(
        posts_dir=resolve_path(args.posts, config_path),
        themes_dir=resolve_path(args.themes, config_path),
        public_dir=resolve_path(args.public, config_path),
        host=args.host,
        port=args.port,
        watch=args.watch,
        log_level=str(args.log_level).upper(),
    )
