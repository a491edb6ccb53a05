"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from toygrep.core.config import BufferConfig, Config, CrawlConfig, SearchConfig


def test_defaults():
    config = Config()

    assert config.buffers.start_size_bytes == 8 * 1024
    assert config.buffers.max_size_bytes == 2_000_000
    assert config.crawl.worker_count == 16
    assert config.search.binary_sample_bytes == 512
    assert config.search.stdin_line_numbers is False
    assert config.printer.group_by_target is None
    assert config.printer.line_numbers is True


def test_load_partial_yaml(tmp_path):
    path = tmp_path / "toygrep.yaml"
    path.write_text(
        "crawl:\n"
        "  worker_count: 3\n"
        "printer:\n"
        "  color: false\n"
        "  match_style: underline\n"
    )

    config = Config.load(path)

    assert config.crawl.worker_count == 3
    assert config.printer.color is False
    assert config.printer.match_style == "underline"
    assert config.buffers.start_size_bytes == 8 * 1024


def test_load_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert Config.load(path) == Config()


def test_load_without_any_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    assert Config.load() == Config()


def test_load_from_working_directory(tmp_path, monkeypatch):
    (tmp_path / "toygrep.yaml").write_text("search:\n  binary_sample_bytes: 64\n")
    monkeypatch.chdir(tmp_path)

    assert Config.load().search.binary_sample_bytes == 64


def test_save_then_load(tmp_path):
    config = Config(crawl=CrawlConfig(worker_count=2), search=SearchConfig(stdin_line_numbers=True))
    path = tmp_path / "nested" / "config.yaml"

    config.save(path)

    assert Config.load(path) == config


@pytest.mark.parametrize("kwargs", [
    {"start_size_bytes": -1},
    {"prewarm": -1},
    {"max_size_bytes": 0},
    {"start_size_bytes": 100, "max_size_bytes": 10},
])
def test_invalid_buffer_config(kwargs):
    with pytest.raises(ValidationError):
        BufferConfig(**kwargs)


def test_invalid_worker_count():
    with pytest.raises(ValidationError):
        CrawlConfig(worker_count=0)


def test_invalid_yaml_values(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("search:\n  binary_sample_bytes: -5\n")

    with pytest.raises(ValidationError):
        Config.load(path)
