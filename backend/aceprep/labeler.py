from __future__ import annotations
import re
from typing import List, Optional

from .chunker import ROMAN_NUMERALS, Unit, format_label

DEFAULT_LABEL = "Problem"

_ROMAN = "|".join(sorted(ROMAN_NUMERALS, key=len, reverse=True))
_LABEL_LINE = re.compile(r"^\[(\d{1,3}(?:\([a-z]\))?(?:\((?:" + _ROMAN + r")\))?)\]$")
_PHRASE = re.compile(
    r"\b(?:problem|question|exercise)[ \t]*(?:#[ \t]*)?(\d{1,3}(?:[ \t]*\([a-z]\))?(?:[ \t]*\((?:" + _ROMAN + r")\))?)",
    re.IGNORECASE,
)

_SCAN_TOP = re.compile(r"^\s*(?:(?:problem|question|exercise|q)\s*)?(\d{1,3})\s*(?:[.):](?=\s|$)|(?=\([a-z]\)))", re.IGNORECASE)
_SCAN_LETTER = re.compile(r"\(([a-z])\)")


def label(unit: Unit) -> str:
    """Human-readable label for a unit. Never raises."""
    first_line = (unit.body or "").lstrip().split("\n", 1)[0].strip()
    m = _LABEL_LINE.match(first_line)
    if m:
        return m.group(1)
    if unit.ordinal_path:
        return format_label(unit.ordinal_path)
    return label_from_text(unit.body)


def label_from_text(text: Optional[str]) -> str:
    m = _PHRASE.search(text or "")
    if m:
        return re.sub(r"\s+", "", m.group(1))
    return DEFAULT_LABEL


def detect_labels(raw: Optional[str], limit: Optional[int] = None) -> List[str]:
    """
    Scan raw material for problem markers, independently of the chunker.

    Returns leaf labels in document order ("1(a)", "1(b)", "2"). Lettered
    markers replace the bare number of their problem. Repeats are dropped.
    """
    labels: List[str] = []
    current: Optional[str] = None
    last_letter = ""
    for line in (raw or "").replace("\r", "").split("\n"):
        top = _SCAN_TOP.match(line)
        rest = line
        if top:
            current = top.group(1)
            last_letter = ""
            rest = line[top.end():]
            if current not in labels:
                labels.append(current)
        if current is None:
            continue
        letter = _SCAN_LETTER.match(rest.lstrip())
        if letter is None:
            continue
        value = letter.group(1)
        if value in ROMAN_NUMERALS and (not last_letter or ord(value) != ord(last_letter) + 1):
            continue
        last_letter = value
        leaf = f"{current}({value})"
        if current in labels:
            labels.remove(current)
        if leaf not in labels:
            labels.append(leaf)
    return labels[:limit] if limit is not None else labels
