"""Ordered regex rewrites turning scraped hOCR text into SRT-ready text."""

from __future__ import annotations

import re
from typing import Iterable, NamedTuple

# Entities tesseract emits for quotes; each stands for a single character
_ENTITY = r"&(?:#39|quot);"


class RewriteRule(NamedTuple):
    pattern: re.Pattern[str]
    replacement: str

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def rule(pattern: str, replacement: str) -> RewriteRule:
    return RewriteRule(re.compile(pattern), replacement)


DEFAULT_RULES: tuple[RewriteRule, ...] = (
    # tesseract's <em> becomes the SRT italic tag
    rule(r"<(/?)em>", r"<\1i>"),
    # a lone styled punctuation mark is OCR noise
    rule(rf"<i>(\W|\.\.\.|{_ENTITY})</i>", r"\1"),
    rule(r"</?(?:strong|b)>", ""),
    rule(r"</i>(\s+)<i>", r"\1"),
    rule(r"&#39;", "’"),
    rule(r"&quot;", "'"),
    rule(r"\.\.\.", "…"),
)


def _apply_once(text: str, rules: tuple[RewriteRule, ...]) -> str:
    for r in rules:
        text = r.apply(text)
    return text


def clean_text(text: str, rules: Iterable[RewriteRule] = DEFAULT_RULES) -> str:
    """Apply each rule in *rules*, in order, as a global substitution.

    The whole chain is repeated until the text stops changing, so a later
    rule exposing a match for an earlier one (``<em><b>,</b></em>``) is still
    handled and cleaning cleaned text is a no-op. Every default rule shortens
    the text it changes, so at most ``len(text) + 1`` passes are needed; the
    same bound stops caller rules that keep growing the text.
    """
    rules = tuple(rules)
    for _ in range(len(text) + 1):
        cleaned = _apply_once(text, rules)
        if cleaned == text:
            break
        text = cleaned
    return text
