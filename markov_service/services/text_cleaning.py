"""
Chat message cleanup before Markov training.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, Tuple

USER_MENTION = re.compile(r"<@!?(\d+)>")
URL = re.compile(r"https?://\S+")
WHITESPACE = re.compile(r"\s+")


class TextPreprocessor:
    """
    Normalizes Discord message content.

    User mentions become "@display_name" when the user is known and are
    dropped otherwise; URLs are removed; whitespace is collapsed.
    """

    def __init__(self, min_length: int = 10):
        self.min_length = min_length
        self.user_mappings: Dict[str, str] = {}

    def set_user(self, user_id: str, name: str):
        if user_id and name:
            self.user_mappings[str(user_id)] = name

    def set_users(self, users: Iterable[Tuple[str, str]]) -> int:
        for user_id, name in users:
            self.set_user(user_id, name)
        return len(self.user_mappings)

    def knows(self, user_id: str) -> bool:
        return str(user_id) in self.user_mappings

    def _render_mention(self, match: re.Match) -> str:
        name = self.user_mappings.get(match.group(1))
        return f"@{name}" if name else ""

    def clean(self, text: str) -> str:
        """Cleaned text, or "" if too short to be worth training on."""
        cleaned = USER_MENTION.sub(self._render_mention, text)
        cleaned = URL.sub("", cleaned)
        cleaned = WHITESPACE.sub(" ", cleaned).strip()
        if len(cleaned) < self.min_length:
            return ""
        return cleaned

    def strip_mentions(self, text: str) -> str:
        """Remove raw mention markup that slipped into generated output."""
        return WHITESPACE.sub(" ", USER_MENTION.sub("", text)).strip()


def looks_like_ascii_art(text: str, min_lines: int = 3, symbol_ratio: float = 0.5) -> bool:
    """
    Heuristic: several lines where most non-space characters are symbols.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < min_lines:
        return False

    chars = [c for c in text if not c.isspace()]
    if not chars:
        return False
    symbols = sum(1 for c in chars if not c.isalnum())
    return symbols / len(chars) >= symbol_ratio
