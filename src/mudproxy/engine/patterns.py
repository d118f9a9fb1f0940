# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Message templates with a ``{target}`` placeholder.

Configured cast messages look like ``"You cast bless on {target}!"``. They are
compiled to case-insensitive regexes once and cached.
"""

from __future__ import annotations

import re
from functools import lru_cache

PLACEHOLDER = "{target}"

# Target at the end of a template runs up to trailing punctuation.
_TRAILING_TARGET = r"(.+?)(?:[!.,?;:]|$)"
_INNER_TARGET = r"(.+?)"
# Buff messages only ever name a single word.
_WORD_TARGET = r"(\w+)"

_TARGET_TRIM = "!.,?;: \t"


@lru_cache(maxsize=512)
def compile_template(template: str, *, word_target: bool = False) -> re.Pattern[str]:
    """Compile a ``{target}`` template to a regex with one capture group."""
    escaped = re.escape(template.replace(PLACEHOLDER, "\x00"))
    if word_target:
        group = _WORD_TARGET
    elif template.rstrip().endswith(PLACEHOLDER):
        group = _TRAILING_TARGET
    else:
        group = _INNER_TARGET
    return re.compile(escaped.replace("\x00", group), re.IGNORECASE)


def extract_target(message: str, template: str, *, word_target: bool = False) -> str | None:
    """Match ``message`` against ``template``.

    Returns:
        The captured target name, ``""`` for a match on a template without a
        placeholder, or None when the message does not match.
    """
    if not template:
        return None
    if PLACEHOLDER not in template:
        return "" if template.lower() in message.lower() else None

    match = compile_template(template, word_target=word_target).search(message)
    if not match:
        return None
    return match.group(1).strip(_TARGET_TRIM)


def contains(message: str, fragment: str) -> bool:
    """Case-insensitive substring test; empty fragments never match."""
    return bool(fragment) and fragment.lower() in message.lower()
