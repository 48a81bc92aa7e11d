"""Utility helpers shared by :mod:`pdfannotx` modules."""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def ensure_path(path: PathLike) -> Path:
    """Return a :class:`~pathlib.Path` instance for *path*."""

    resolved = Path(path).expanduser()
    try:
        return resolved.resolve(strict=False)
    except FileNotFoundError:  # pragma: no cover
        return resolved


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def to_camel_case(name: str) -> str:
    head, *tail = name.split("_")
    return head + "".join(part.title() for part in tail)


def to_snake_case(key: str) -> str:
    """Turn ``fontSize`` into ``font_size``; snake_case input is unchanged."""

    return _CAMEL_BOUNDARY.sub("_", key).lower()


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``page-1f3a...``."""

    return f"{prefix}-{uuid.uuid4().hex[:12]}"


__all__ = [
    "PathLike",
    "ensure_path",
    "get_logger",
    "new_id",
    "to_camel_case",
    "to_snake_case",
]
