"""
File size and token estimation.

Token counts are a coarse proxy for how much of a language model's
context a file would consume: one token per four bytes, rounded up.
This is not a tokenizer and is not meant to be one.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


BYTES_PER_TOKEN = 4


@dataclass(frozen=True)
class SizeEstimate:
    """Byte size and approximate token count of a file."""

    size_bytes: int = 0
    token_estimate: int = 0

    @property
    def size_kb(self) -> float:
        return round(self.size_bytes / 1024, 2)


def tokens_for_bytes(size_bytes: int) -> int:
    """Return ``ceil(size_bytes / 4)`` without going through floats."""
    if size_bytes <= 0:
        return 0
    return (size_bytes + BYTES_PER_TOKEN - 1) // BYTES_PER_TOKEN


def estimate(path: Union[str, Path]) -> SizeEstimate:
    """Estimate the size of the file at ``path``.

    Missing or unreadable files yield ``SizeEstimate(0, 0)``.
    """
    try:
        size_bytes = os.stat(path).st_size
    except OSError as exc:
        logger.debug("Cannot stat %s: %s", path, exc)
        return SizeEstimate()
    if not os.path.isfile(path):
        return SizeEstimate()
    return SizeEstimate(size_bytes=size_bytes, token_estimate=tokens_for_bytes(size_bytes))
