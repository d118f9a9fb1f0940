# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""ANSI escape stripping for pattern matching.

Game text is matched against regexes and message templates after colour and
cursor codes are removed. Rendering the colours is a presentation concern and
works from the original text instead.
"""

from __future__ import annotations

import re

# Order matters: complete sequences first, then a CSI cut off by the end of the
# text, then a lone ESC (dropped on its own so the rest of the line survives).
_ANSI_ESCAPE_RE = re.compile(
    r"\x1b(?:"
    r"\[[0-?]*[ -/]*[@-~]"  # CSI / SGR
    r"|[()*+][ -~]"  # charset select, e.g. ESC ( B
    r"|[@-Z\\-_]"  # single-character Fe escapes
    r"|\[[0-?]*[ -/]*\Z"  # truncated CSI at end of text
    r")?"
)


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from ``text``.

    Never raises on malformed input: an ESC that does not start a recognised
    sequence is removed and scanning resumes at the next character.
    """
    if "\x1b" not in text:
        return text
    return _ANSI_ESCAPE_RE.sub("", text)
