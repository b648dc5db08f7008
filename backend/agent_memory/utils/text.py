"""Text processing helpers."""

from __future__ import annotations

import re

TOKEN_RE = re.compile(r"\w+")


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens shared by lexical ranking and hashed embeddings."""
    return TOKEN_RE.findall(text.lower())
