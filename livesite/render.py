from __future__ import annotations

import logging
from pathlib import Path

import markdown
from markdown.extensions.toc import TocExtension, slugify
from pygments.style import Style
from pygments.token import string_to_tokentype

from .config import MAPPING_SUFFIXES, ConfigError, read_mapping
from .content import normalize_list_spacing

logger = logging.getLogger(__name__)

HEADER_ID_PREFIX = "header-"
THEME_NAME = "theme"


class ThemeError(RuntimeError):
    """The highlighting theme set could not be loaded."""


class RenderError(RuntimeError):
    """A single document could not be rendered."""


def header_slug(value: str, separator: str) -> str:
    return HEADER_ID_PREFIX + slugify(value, separator)


def build_style(name: str, data: dict) -> type[Style]:
    styles = data.get("styles")
    if not isinstance(styles, dict) or not styles:
        raise ThemeError(f"Theme {name!r} needs a non-empty 'styles' table")
    attrs = {
        "styles": {string_to_tokentype(str(token)): str(rule) for token, rule in styles.items()},
    }
    for key in ("background_color", "highlight_color"):
        if data.get(key):
            attrs[key] = str(data[key])
    try:
        return type(f"{name.title().replace('-', '')}Style", (Style,), attrs)
    except Exception as exc:
        raise ThemeError(f"Theme {name!r} is malformed: {exc}") from exc


def load_theme_set(themes_dir: Path) -> dict[str, type[Style]]:
    if not themes_dir.is_dir():
        raise ThemeError(f"Themes directory not found: {themes_dir}")
    themes = {}
    for path in sorted(themes_dir.iterdir(), key=lambda p: p.name):
        if not path.is_file() or path.suffix.lower() not in MAPPING_SUFFIXES:
            continue
        try:
            data = read_mapping(path)
        except (ConfigError, OSError, UnicodeDecodeError) as exc:
            raise ThemeError(f"Cannot read theme {path}: {exc}") from exc
        themes[path.stem] = build_style(path.stem, data)
    return themes


class MarkdownRenderer:
    """Markdown to HTML fragments with a fixed extension set."""

    def __init__(self, style: type[Style]):
        self.style = style

    @classmethod
    def from_themes(cls, themes_dir: Path, theme: str = THEME_NAME) -> "MarkdownRenderer":
        themes = load_theme_set(themes_dir)
        if theme not in themes:
            raise ThemeError(f"Theme {theme!r} not found in {themes_dir}")
        logger.info("Loaded %d highlighting theme(s) from %s", len(themes), themes_dir)
        return cls(themes[theme])

    def _markdown(self) -> markdown.Markdown:
        return markdown.Markdown(
            extensions=[
                "tables",
                "pymdownx.highlight",
                "pymdownx.superfences",
                TocExtension(slugify=header_slug),
                "pymdownx.magiclink",
                "pymdownx.tilde",
                "pymdownx.tasklist",
            ],
            extension_configs={
                "pymdownx.highlight": {
                    "guess_lang": False,
                    "noclasses": True,
                    "pygments_style": self.style,
                    "pygments_lang_class": True,
                },
            },
        )

    def render(self, text: str) -> str:
        # A fresh Markdown instance per call keeps rendering free of shared state.
        md = self._markdown()
        try:
            return md.convert(normalize_list_spacing(text))
        except Exception as exc:
            raise RenderError(f"Markdown conversion failed: {exc}") from exc
