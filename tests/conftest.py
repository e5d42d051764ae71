"""Shared fixtures for the livesite tests."""

import html
import threading
import time
from pathlib import Path

import pytest

from livesite.config import Settings
from livesite.pages import PageTemplate
from livesite.render import MarkdownRenderer, RenderError

REPO_ROOT = Path(__file__).parent.parent
THEMES_DIR = REPO_ROOT / "themes"


class FakeObserver:
    """Stands in for a watchdog observer; events are dispatched by hand."""

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


class EchoRenderer:
    """Cheap renderer: escapes the text, fails on request."""

    def render(self, text):
        if text == "bad":
            raise RenderError("cannot render 'bad'")
        return f"<p>{html.escape(text)}</p>"


class ProbeTemplate:
    """Wraps a PageTemplate and records how it is used."""

    def __init__(self, inner, fail_on=None):
        self.inner = inner
        self.fail_on = fail_on
        self.titles = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def render_page(self, kind, context):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if kind is self.fail_on:
                raise RuntimeError("template engine exploded")
            time.sleep(0.001)
            self.titles.append(context["title"])
            return self.inner.render_page(kind, context)
        finally:
            with self._lock:
                self.active -= 1


class GateTemplate(ProbeTemplate):
    """A ProbeTemplate that holds every render until ``opened`` is set."""

    def __init__(self, inner):
        super().__init__(inner)
        self.opened = threading.Event()
        self.waiting = threading.Event()

    def render_page(self, kind, context):
        self.waiting.set()
        self.opened.wait(timeout=10)
        return super().render_page(kind, context)


@pytest.fixture(scope="session")
def renderer():
    return MarkdownRenderer.from_themes(THEMES_DIR)


@pytest.fixture(scope="session")
def template():
    return PageTemplate.load()


@pytest.fixture
def posts_dir(tmp_path):
    path = tmp_path / "posts"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, posts_dir):
    return Settings(
        posts_dir=posts_dir,
        themes_dir=THEMES_DIR,
        public_dir=tmp_path / "public",
        watch=False,
    )


@pytest.fixture
def fake_observer():
    return FakeObserver()
