"""Syndicate backend server.

Mounts the syndicate hierarchy router under a FastAPI application at
``/api/syndicate/``. An organisation can be preloaded from a JSON file
holding the nested tree accepted by ``Hierarchy.from_dict``; otherwise one
is loaded through ``POST /api/syndicate/hierarchy``.

Usage::

    # Development (auto-reload)
    uvicorn syndicate_server:app --reload --port 8420

    # Or run directly, optionally with an organisation file
    python syndicate_server.py organisation.json
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from fastapi import FastAPI

from syndicate.src.server import init_hierarchy, router

logger = logging.getLogger("syndicate")

app = FastAPI(
    title="Syndicate API",
    description="Succession-preserving organisation hierarchy.",
    version="0.1.0",
)

app.include_router(router, prefix="/api/syndicate", tags=["syndicate"])


def load_organisation(path: str | Path) -> None:
    """Load the served hierarchy from a JSON file.

    Args:
        path: File containing a nested member tree.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    hierarchy = init_hierarchy(data)
    logger.info("Loaded organisation from %s: %r", path, hierarchy)


def run_server(host: str = "127.0.0.1", port: int = 8420) -> None:
    """Start the syndicate server via uvicorn.

    Args:
        host: Bind address. Defaults to localhost.
        port: Port number. Defaults to 8420.
    """
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    if len(sys.argv) > 1:
        load_organisation(sys.argv[1])
    run_server()
