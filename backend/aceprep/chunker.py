"""
Problem Unit Chunker

Splits pasted or PDF-extracted homework text into self-contained units that
can each be explained by a separate model call.

Structure is detected top-down and only as deep as it exists:

    1. / 2) / Problem 3:        top-level problems
    (a) (b) (c)                 lettered parts of a problem
    (i) (ii) (iii)              roman sub-parts of a lettered part

Text that precedes the first marker of a level (the problem stem) is copied
into every child unit so each unit reads on its own. Every structured unit
starts with a label line such as ``[2(b)(ii)]``.

Units whose content is smaller than ``min_unit_chars`` non-whitespace
characters are dropped, so the nested split only shows for parts at least that
large: with the default threshold a toy input such as "1. Foo / (a) Bar"
falls back to a single window. Pass a smaller ``min_unit_chars`` to split it.

Documents without numbered problems fall back to line-preserving character
windows, so any non-blank input produces at least one unit. Every step is
linear in the input length.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

PathSegment = Union[int, str]

DEFAULT_MAX_CHARS = 2400
DEFAULT_MIN_UNIT_CHARS = 24

ROMAN_NUMERALS: Tuple[str, ...] = ("i", "ii", "iii", "iv", "v", "vi", "vii", "viii", "ix", "x")

_TOP_MARKER = re.compile(
    r"^\s*(?:(?:problem|question|exercise|q)\s*)?(\d{1,3})\s*[.):](?=\s|$)",
    re.IGNORECASE,
)
_LETTER_MARKER = re.compile(r"^\s*\(([a-z])\)")
_ROMAN_MARKER = re.compile(r"^\s*\((" + "|".join(sorted(ROMAN_NUMERALS, key=len, reverse=True)) + r")\)")

# "1(a) text" -> "1." + "(a) text"; "(a)(i) text" -> "(a)" + "(i) text"
_INLINE_TOP_LETTER = re.compile(
    r"^([ \t]*(?:(?i:problem|question|exercise|q)[ \t]*)?\d{1,3})[ \t]*(\([a-z]\))",
    re.MULTILINE,
)
_INLINE_LETTER_ROMAN = re.compile(
    r"^([ \t]*\([a-z]\))[ \t]*(\((?:" + "|".join(ROMAN_NUMERALS) + r")\))",
    re.MULTILINE,
)


@dataclass(frozen=True)
class Unit:
    ordinal_path: Tuple[PathSegment, ...]
    body: str

    @property
    def label_path(self) -> str:
        return format_label(self.ordinal_path)


def format_label(path: Tuple[PathSegment, ...]) -> str:
    if not path:
        return ""
    head, rest = str(path[0]), path[1:]
    return head + "".join(f"({segment})" for segment in rest)


def content_size(text: str) -> int:
    """Number of non-whitespace characters."""
    return len(re.sub(r"\s", "", text or ""))


def normalize(raw: str) -> str:
    text = (raw or "").replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip(" \t") for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = _INLINE_TOP_LETTER.sub(lambda m: f"{m.group(1)}.\n{m.group(2)}", text)
    text = _INLINE_LETTER_ROMAN.sub(lambda m: f"{m.group(1)}\n{m.group(2)}", text)
    return text.strip()


def _split(
    lines: List[str], match: Callable[[str], Optional[PathSegment]]
) -> Tuple[List[str], List[Tuple[PathSegment, List[str]]]]:
    stem: List[str] = []
    segments: List[Tuple[PathSegment, List[str]]] = []
    for line in lines:
        key = match(line)
        if key is not None:
            segments.append((key, [line]))
        elif segments:
            segments[-1][1].append(line)
        else:
            stem.append(line)
    return stem, segments


def _top_level(line: str) -> Optional[int]:
    m = _TOP_MARKER.match(line)
    return int(m.group(1)) if m else None


def _letter_matcher() -> Callable[[str], Optional[str]]:
    previous: List[str] = []

    def match(line: str) -> Optional[str]:
        m = _LETTER_MARKER.match(line)
        if not m:
            return None
        letter = m.group(1)
        if letter in ROMAN_NUMERALS:
            # (i), (v), (x) are letters only when they continue the sequence
            if not previous or ord(letter) != ord(previous[-1]) + 1:
                return None
        previous.append(letter)
        return letter

    return match


def _roman(line: str) -> Optional[str]:
    m = _ROMAN_MARKER.match(line)
    return m.group(1) if m else None


def _join_lines(*blocks: List[str]) -> str:
    return "\n".join(line for block in blocks for line in block).strip()


def _structured_units(text: str) -> List[Tuple[Tuple[PathSegment, ...], str]]:
    _, problems = _split(text.split("\n"), _top_level)
    units: List[Tuple[Tuple[PathSegment, ...], str]] = []
    for number, problem_lines in problems:
        # a segment's own marker line always belongs to its stem
        stem, parts = _split(problem_lines[1:], _letter_matcher())
        stem = problem_lines[:1] + stem
        if not parts:
            units.append(((number,), _join_lines(problem_lines)))
            continue
        for letter, part_lines in parts:
            part_stem, subparts = _split(part_lines[1:], _roman)
            part_stem = part_lines[:1] + part_stem
            if not subparts:
                units.append(((number, letter), _join_lines(stem, part_lines)))
                continue
            for numeral, sub_lines in subparts:
                units.append(((number, letter, numeral), _join_lines(stem, part_stem, sub_lines)))
    return units


def chunk_by_chars(
    text: str,
    max_chars: int = DEFAULT_MAX_CHARS,
    min_chars: int = DEFAULT_MIN_UNIT_CHARS,
) -> List[str]:
    """Line-preserving windows of at most ``max_chars`` (a window can overrun by one line)."""
    text = (text or "").strip()
    if not text:
        return []
    windows: List[str] = []
    current: List[str] = []
    size = 0

    def flush() -> None:
        nonlocal current, size
        block = "\n".join(current).strip()
        if not block:
            current, size = [], 0
            return
        if content_size(block) >= min_chars:
            windows.append(block)
        elif windows:
            windows[-1] = windows[-1] + "\n" + block
        else:
            # too small to stand alone and nothing to merge into: keep accumulating
            return
        current, size = [], 0

    for line in text.split("\n"):
        if current and size + len(line) + 1 > max_chars:
            flush()
        current.append(line)
        size += len(line) + 1
    flush()
    if current:
        block = "\n".join(current).strip()
        if windows:
            windows[-1] = windows[-1] + "\n" + block
        else:
            windows.append(block)
    return windows or [text[:max_chars]]


def chunk(
    raw: str,
    *,
    max_chars: int = DEFAULT_MAX_CHARS,
    min_unit_chars: int = DEFAULT_MIN_UNIT_CHARS,
) -> List[Unit]:
    text = normalize(raw)
    if not text:
        return []

    units = [
        Unit(ordinal_path=path, body=f"[{format_label(path)}]\n{body}")
        for path, body in _structured_units(text)
        if content_size(body) >= min_unit_chars
    ]
    if units:
        return units
    return [Unit(ordinal_path=(), body=window) for window in chunk_by_chars(text, max_chars, min_unit_chars)]
