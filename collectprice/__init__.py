"""Collectible listing resolution and price caching engine."""

from __future__ import annotations

import logging
from typing import Optional

LOGGER_NAME = "collectprice"

__version__ = "0.3.0"


def get_logger(component: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger(LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    if component:
        return root.getChild(component)
    return root
