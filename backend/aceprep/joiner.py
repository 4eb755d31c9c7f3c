"""End-of-document sentinel handling and the final join of generated pieces."""

from typing import Iterable, List, Optional

SENTINEL = "---END---"


def strip_end_marker(text: Optional[str]) -> str:
    """Remove trailing sentinel(s) and surrounding whitespace."""
    body = (text or "").strip()
    while body.endswith(SENTINEL):
        body = body[: -len(SENTINEL)].rstrip()
    return body


def ensure_end_marker(text: Optional[str]) -> str:
    # Empty output stays empty so callers still see the failure.
    body = (text or "").rstrip()
    if not body:
        return ""
    if body.endswith(SENTINEL):
        return body
    return body + "\n" + SENTINEL


def _without_sentinels(text: str) -> str:
    lines: List[str] = []
    blank = False
    for line in text.split("\n"):
        line = line.rstrip(" \t")
        if line.strip() == SENTINEL:
            continue
        if SENTINEL in line:
            # inline marker: keep the words on either side apart
            head, *rest = line.split(SENTINEL)
            line = head.rstrip(" \t")
            for part in rest:
                part = part.strip(" \t")
                if part:
                    line = f"{line} {part}" if line.strip() else line + part
        if not line.strip():
            if blank:
                continue
            blank = True
        else:
            blank = False
        lines.append(line)
    return "\n".join(lines).strip()


def join(outputs: Iterable[Optional[str]]) -> str:
    pieces = []
    for output in outputs:
        cleaned = _without_sentinels(output or "")
        if cleaned:
            pieces.append(cleaned)
    if not pieces:
        return SENTINEL
    return "\n\n".join(pieces) + "\n" + SENTINEL
