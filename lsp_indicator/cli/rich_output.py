"""Rich or plain output, decided per stream.

Tables go to stdout and log records to stderr, so each is checked on its
own: ``lsp-indicator replay file.jsonl > frames.txt`` writes plain frames
while warnings on the terminal stay colored.

``LSP_INDICATOR_RICH`` (``1``/``0``, ``true``/``false``, ``yes``/``no``)
forces the choice for every stream. Otherwise ``NO_COLOR`` and ``CI``
turn Rich off, and a stream that is not a terminal gets plain text.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO

_ON = ("1", "true", "yes")
_OFF = ("0", "false", "no")


def _forced() -> bool | None:
    value = os.environ.get("LSP_INDICATOR_RICH", "").strip().lower()
    if value in _ON:
        return True
    if value in _OFF:
        return False
    return None


def _is_terminal(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except ValueError:  # closed stream
        return False


def should_use_rich(stream: TextIO | None = None) -> bool:
    """Whether output written to ``stream`` should use Rich.

    Args:
        stream: Target stream (default: ``sys.stdout``, read at call time)
    """
    forced = _forced()
    if forced is not None:
        return forced
    if "NO_COLOR" in os.environ or os.environ.get("CI"):
        return False
    return _is_terminal(sys.stdout if stream is None else stream)
