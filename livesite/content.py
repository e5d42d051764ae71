from __future__ import annotations

import datetime as dt
import re
from pathlib import Path
from typing import Optional
from urllib.parse import quote_plus

MARKDOWN_SUFFIX = "md"
ABOUT_ID = "about"
SUMMARY_LIMIT = 200

LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
DOUBLE_QUOTE_RE = re.compile(r"^(?P<indent>[ \t]*)>>(?!>)(?P<rest>.*)$")
LINK_RE = re.compile(r"!?\[(?P<text>[^\]]*)\]\([^)]*\)")
TASK_RE = re.compile(r"^\[[ xX]\]\s+")
INLINE_MARK_RE = re.compile(r"(\*\*|__|~~|[*_`])")


class InvalidUpload(ValueError):
    """Raised when an uploaded file cannot become a post."""


def describe_path(path: Path) -> tuple[str, str]:
    """Return ``(id, encoded_id)`` for a post file."""
    post_id = path.stem
    if not post_id or post_id.startswith("."):
        raise ValueError(f"Cannot derive a post id from {path.name!r}")
    return post_id, quote_plus(post_id)


def is_markdown_path(path: Path) -> bool:
    return path.suffix.lstrip(".").lower() == MARKDOWN_SUFFIX


def markdown_file_name(filename: str) -> Optional[str]:
    """Return the bare file name when it names a markdown file, else None."""
    name = Path(filename.replace("\\", "/")).name
    if not name or not is_markdown_path(Path(name)):
        return None
    try:
        describe_path(Path(name))
    except ValueError:
        return None
    return name


def file_timestamp(path: Path) -> Optional[dt.datetime]:
    try:
        stat = path.stat()
    except OSError:
        return None
    # st_birthtime is only reported on some platforms.
    timestamp = getattr(stat, "st_birthtime", None) or stat.st_mtime
    return dt.datetime.fromtimestamp(timestamp, tz=dt.timezone.utc)


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        quote_match = DOUBLE_QUOTE_RE.match(line)
        if quote_match:
            rest = quote_match.group("rest").lstrip()
            line = f'{quote_match.group("indent")}> {rest}' if rest else f'{quote_match.group("indent")}>'
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)


def summarize(text: str, limit: int = SUMMARY_LIMIT) -> str:
    """Plain-text summary built from the first paragraph of a post."""
    paragraph: list[str] = []
    in_fence = False
    for line in text.lstrip("\ufeff").splitlines():
        if FENCE_RE.match(line):
            if paragraph:
                break
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            if paragraph:
                break
            continue
        stripped = LIST_MARKER_RE.sub("", stripped).lstrip("> ")
        stripped = TASK_RE.sub("", stripped)
        paragraph.append(stripped)
    summary = LINK_RE.sub(lambda m: m.group("text"), " ".join(paragraph))
    summary = INLINE_MARK_RE.sub("", summary).strip()
    if len(summary) > limit:
        return summary[:limit].rstrip() + "..."
    return summary
