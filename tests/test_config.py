"""Tests for config files and command-line settings."""

from pathlib import Path

import pytest

from livesite.cli import parse_settings
from livesite.config import ConfigError, load_config, read_mapping, resolve_path


@pytest.mark.parametrize(
    "name, text",
    [
        ("site.toml", 'posts = "notes"\nport = 8000\n'),
        ("site.yaml", "posts: notes\nport: 8000\n"),
        ("site.json", '{"posts": "notes", "port": 8000}'),
    ],
)
def test_read_mapping_formats(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    assert read_mapping(path) == {"posts": "notes", "port": 8000}


def test_empty_yaml_is_an_empty_mapping(tmp_path):
    path = tmp_path / "site.yml"
    path.write_text("", encoding="utf-8")
    assert read_mapping(path) == {}


def test_read_mapping_rejects_non_mapping(tmp_path):
    path = tmp_path / "site.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigError, match="must contain a mapping"):
        read_mapping(path)


def test_read_mapping_rejects_bad_json(tmp_path):
    path = tmp_path / "site.json"
    path.write_text("{nope", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        read_mapping(path)


def test_load_config_missing_file(tmp_path):
    assert load_config(tmp_path / "absent.toml") == {}


def test_load_config_invalid_file_exits(tmp_path, capsys):
    path = tmp_path / "site.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        load_config(path)
    assert excinfo.value.code == 1
    assert "Invalid config file" in capsys.readouterr().err


def test_resolve_path_relative_to_config(tmp_path):
    config_path = tmp_path / "site.toml"
    assert resolve_path("posts", config_path) == Path("posts")
    config_path.write_text("", encoding="utf-8")
    assert resolve_path("posts", config_path) == tmp_path.resolve() / "posts"
    assert resolve_path(str(tmp_path / "abs"), config_path) == tmp_path / "abs"


def test_parse_settings_defaults_without_config(tmp_path):
    settings = parse_settings(["--config", str(tmp_path / "absent.toml")])
    assert settings.posts_dir == Path("posts")
    assert settings.port == 3443
    assert settings.watch is True
    assert settings.log_level == "INFO"


def test_parse_settings_reads_config_and_flags(tmp_path):
    config_path = tmp_path / "site.toml"
    config_path.write_text(
        'posts = "notes"\nport = "8080"\nwatch = "yes"\nlog_level = "debug"\n',
        encoding="utf-8",
    )

    settings = parse_settings(["--config", str(config_path)])
    assert settings.posts_dir == tmp_path.resolve() / "notes"
    assert settings.port == 8080
    assert settings.watch is True
    assert settings.log_level == "DEBUG"

    overridden = parse_settings(["--config", str(config_path), "--port", "9000", "--no-watch"])
    assert overridden.port == 9000
    assert overridden.watch is False
