"""Process-wide logging setup."""

from __future__ import annotations

import logging


def configure_logging(level: str | None = None) -> None:
    """Install a single console handler at the given level (default INFO)."""

    level_value = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
