import json
from pathlib import Path

import pytest

from urltree import main as app_main
from urltree.errors import UpstreamTimeout


def test_load_settings_defaults_when_file_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("URLTREE_UPSTREAM_URL", raising=False)
    monkeypatch.delenv("URLTREE_CACHE_TTL_MS", raising=False)
    settings = app_main.load_settings(tmp_path / "missing.toml")
    assert settings["cache"]["ttl_ms"] == 60_000
    assert settings["app"]["port"] == 3000
    assert settings["upstream"]["url"].startswith("https://")


def test_load_settings_merges_file_and_env(tmp_path, monkeypatch):
    config = tmp_path / "settings.toml"
    config.write_text(
        '[upstream]\nurl = "https://file.test/items"\n\n[cache]\nttl_ms = 5000\n',
        encoding="utf-8",
    )
    monkeypatch.delenv("URLTREE_UPSTREAM_URL", raising=False)
    monkeypatch.setenv("URLTREE_CACHE_TTL_MS", "1500")

    settings = app_main.load_settings(config)
    assert settings["upstream"]["url"] == "https://file.test/items"
    assert settings["upstream"]["user_agent"] == "urltree/0.1"
    assert settings["cache"]["ttl_ms"] == 1500

    monkeypatch.setenv("URLTREE_UPSTREAM_URL", "https://env.test/items")
    assert app_main.load_settings(config)["upstream"]["url"] == "https://env.test/items"


def test_shipped_settings_file_is_valid(monkeypatch):
    monkeypatch.delenv("URLTREE_CACHE_TTL_MS", raising=False)
    path = Path(__file__).resolve().parents[1] / "config" / "settings.toml"
    settings = app_main.load_settings(path)
    assert settings["cache"]["ttl_ms"] == 60_000


def test_arg_parser_commands():
    parser = app_main.build_arg_parser()
    args = parser.parse_args(["serve", "--port", "8080"])
    assert args.command == "serve"
    assert args.port == 8080
    args = parser.parse_args(["tree", "--url", "https://feed.test"])
    assert args.url == "https://feed.test"


def test_build_app_exposes_files_route(tmp_path):
    settings = app_main.load_settings(tmp_path / "missing.toml")
    app = app_main.build_app(settings)
    paths = {route.path for route in app.routes}
    assert "/api/files" in paths
    assert app.state.cache.ttl_ms == settings["cache"]["ttl_ms"]


def test_tree_command_prints_json(tmp_path, monkeypatch, capsys):
    seen = {}

    async def fake_fetch_tree(session, url, **kwargs):
        seen["url"] = url
        return {"ex.com": [{"docs": ["readme.txt"]}, "img.png"]}

    monkeypatch.setattr(app_main, "fetch_tree", fake_fetch_tree)
    monkeypatch.chdir(tmp_path)
    app_main.main(["--config", str(tmp_path / "none.toml"), "tree", "--url", "https://feed.test"])

    out = capsys.readouterr().out
    assert json.loads(out) == {"ex.com": [{"docs": ["readme.txt"]}, "img.png"]}
    assert seen["url"] == "https://feed.test"


def test_tree_command_exits_on_upstream_error(tmp_path, monkeypatch):
    async def failing_fetch_tree(session, url, **kwargs):
        raise UpstreamTimeout("upstream timed out")

    monkeypatch.setattr(app_main, "fetch_tree", failing_fetch_tree)
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit):
        app_main.main(["--config", str(tmp_path / "none.toml"), "tree"])
