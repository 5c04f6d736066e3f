"""
LegalVibes - server entry point.

Run with:
    legalvibes-api
or:
    python -m legalvibes.main
"""

from __future__ import annotations

import logging

import uvicorn

from legalvibes.config import get_settings


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "legalvibes.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
    )


if __name__ == "__main__":
    main()
