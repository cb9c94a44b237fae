"""Command-line entrypoints for the urltree service."""
from __future__ import annotations

import argparse
import asyncio
import functools
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import tomllib
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from urltree.api.server import create_app
from urltree.cache.manager import DEFAULT_TTL_MS, TreeCache
from urltree.errors import UrlTreeError
from urltree.fetch.fetcher import fetch_items, fetch_tree
from urltree.fetch.session import UpstreamSession, build_client, create_upstream_session
from urltree.observability.log import configure_logging
from urltree.observability.metrics import MetricsRegistry

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
DEFAULT_LOGGING_PATH = Path("config/logging.yaml")

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "app": {"host": "127.0.0.1", "port": 3000},
    "upstream": {
        "url": "https://rest-test-eight.vercel.app/api/test",
        "timeout_seconds": 30.0,
        "user_agent": "urltree/0.1",
        "max_connections": 4,
    },
    "cache": {"ttl_ms": DEFAULT_TTL_MS},
}

ENV_OVERRIDES = {
    "URLTREE_UPSTREAM_URL": ("upstream", "url", str),
    "URLTREE_CACHE_TTL_MS": ("cache", "ttl_ms", int),
}


def load_settings(path: Path) -> Dict[str, Dict[str, Any]]:
    """Read the TOML configuration file on top of the defaults, then apply env overrides."""
    settings = {section: dict(values) for section, values in DEFAULT_SETTINGS.items()}
    if path.exists():
        with path.open("rb") as handle:
            loaded = tomllib.load(handle)
        for section, values in loaded.items():
            settings.setdefault(section, {}).update(values)
    for env_name, (section, key, cast) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw:
            settings[section][key] = cast(raw)
    return settings


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="urltree", description="Directory tree view of a URL feed")
    parser.add_argument("--config", type=Path, default=DEFAULT_SETTINGS_PATH, help="Path to settings TOML")
    parser.add_argument("--logging", type=Path, default=DEFAULT_LOGGING_PATH, help="Path to logging YAML")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Serve the cached tree over HTTP")
    serve.add_argument("--host", help="Interface to bind (overrides settings)")
    serve.add_argument("--port", type=int, help="Port to bind (overrides settings)")

    tree = sub.add_parser("tree", help="Fetch the feed once and print the tree")
    tree.add_argument("--url", help="Upstream feed URL (overrides settings)")

    return parser


def build_app(settings: Dict[str, Dict[str, Any]]) -> FastAPI:
    """Wire the upstream session, cache and HTTP app from settings."""
    upstream = settings["upstream"]
    session = UpstreamSession(
        build_client(
            user_agent=upstream["user_agent"],
            timeout=float(upstream["timeout_seconds"]),
            max_connections=int(upstream["max_connections"]),
        )
    )
    metrics = MetricsRegistry()
    cache = TreeCache(
        functools.partial(fetch_items, session, upstream["url"], metrics=metrics),
        ttl_ms=int(settings["cache"]["ttl_ms"]),
        metrics=metrics,
    )
    return create_app(cache, on_shutdown=[session.aclose])


async def print_tree(settings: Dict[str, Dict[str, Any]], url: Optional[str] = None) -> None:
    """Fetch the feed once and print the resulting tree."""
    upstream = settings["upstream"]
    async with create_upstream_session(
        user_agent=upstream["user_agent"],
        timeout=float(upstream["timeout_seconds"]),
        max_connections=int(upstream["max_connections"]),
    ) as session:
        tree = await fetch_tree(session, url or upstream["url"])
    print(json.dumps(tree, indent="\t", ensure_ascii=False))


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    configure_logging(args.logging)

    if args.command == "serve":
        app = build_app(settings)
        uvicorn.run(
            app,
            host=args.host or settings["app"]["host"],
            port=args.port or int(settings["app"]["port"]),
            log_config=None,
        )
        return

    if args.command == "tree":
        try:
            asyncio.run(print_tree(settings, args.url))
        except UrlTreeError as exc:
            raise SystemExit(f"Failed to build tree: {exc}")


if __name__ == "__main__":
    main()
