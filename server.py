#!/usr/bin/env python3
"""An HTML index of a directory tree, confined to a single root directory."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence
from urllib.parse import unquote

from aiohttp import web

from yadex.config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from yadex.errors import RenderFailure, error_middleware
from yadex.listing import list_directory
from yadex.sandbox import SandboxError, confine
from yadex.template_store import INDEX, CompiledTemplates, LoadError, RenderError

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
LOGLEVEL_ENV = "YADEX_LOGLEVEL"

logger = logging.getLogger(__name__)


class DirectoryIndexServer:
    """Serve directory listings below ``root``.

    ``templates`` and ``limit`` are shared by every request and never change
    after construction.
    """

    def __init__(self, templates: CompiledTemplates, limit: int, root: Path = Path("/")) -> None:
        self.templates = templates
        self.limit = limit
        self.root = root

    # ------------------------------------------------------------------
    # HTTP handlers
    # ------------------------------------------------------------------
    async def handle_listing(self, request: web.Request) -> web.Response:
        raw_path = request.rel_url.raw_path
        if not raw_path.endswith("/"):
            # A leading "//" would make the Location protocol-relative.
            raise web.HTTPMovedPermanently(location="/" + raw_path.lstrip("/") + "/")

        # Undecodable bytes survive as surrogates, matching the generated hrefs.
        request_path = unquote(raw_path, errors="surrogateescape")
        model = await list_directory(self.root, request_path, self.limit)
        try:
            html = self.templates.render(INDEX, model.to_template_data())
        except RenderError as exc:
            raise RenderFailure(exc) from exc
        return web.Response(text=html, content_type="text/html")

    # ------------------------------------------------------------------
    # Server bootstrap helpers
    # ------------------------------------------------------------------
    def create_app(self) -> web.Application:
        app = web.Application(middlewares=[error_middleware])
        app.router.add_get("/{tail:.*}", self.handle_listing)
        return app


def configure_logging() -> None:
    level_name = os.environ.get(LOGLEVEL_ENV, "INFO").upper()
    level = logging.getLevelName(level_name)
    unknown = not isinstance(level, int)
    logging.basicConfig(level=logging.INFO if unknown else level, format=LOG_FORMAT, stream=sys.stderr)
    if unknown:
        logger.warning("Unknown %s value %r, using INFO", LOGLEVEL_ENV, level_name)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve an HTML index of a directory tree")
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="path to configuration file",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)
    logger.info("cmdline: %s", args)

    try:
        config = load_config(args.config)
        # Template files live outside the served root, so load them first.
        templates = CompiledTemplates.from_config(config.config_dir, config.template)
        confine(config.service.root)
    except (ConfigError, LoadError, SandboxError) as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    server = DirectoryIndexServer(templates, config.service.limit)
    logger.info("Yadex listening on %s:%s", config.network.address, config.network.port)
    web.run_app(server.create_app(), host=config.network.address, port=config.network.port, print=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
