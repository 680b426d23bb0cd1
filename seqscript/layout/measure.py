import re
from typing import List

from wcwidth import wcwidth

_MARKUP_PATTERNS = (
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"//([^/]+)//"), r"\1"),
    (re.compile(r'""([^"]+)""'), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"~~([^~]+)~~"), r"\1"),
    (re.compile(r"<color\s+[^>]+>([^<]*)</color>"), r"\1"),
    (re.compile(r"<bgcolor\s+[^>]+>([^<]*)</bgcolor>"), r"\1"),
)

# Labels carry line breaks as a literal backslash-n; display names may hold real ones.
_LINE_BREAK = re.compile(r"\\n|\n")


def strip_markup(text: str) -> str:
    if not text:
        return ""
    for pattern, replacement in _MARKUP_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def split_lines(text: str) -> List[str]:
    return _LINE_BREAK.split(text or "")


def line_count(text: str) -> int:
    return len(split_lines(text)) if text else 1


def display_width(text: str) -> int:
    # Zero-width and non-printable characters still take one cell.
    return sum(max(wcwidth(char), 1) for char in text)


def widest_line(text: str, markup: bool = True) -> int:
    widths = [display_width(strip_markup(line) if markup else line) for line in split_lines(text)]
    return max(widths) if widths else 0
