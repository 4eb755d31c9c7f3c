from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Sequence, Tuple

from .joiner import strip_end_marker

DEFAULT_SECTIONS: Tuple[str, ...] = (
    "What the problem is asking",
    "Method / steps",
    "Common pitfalls",
)

_BULLET = re.compile(r"^[ \t]*(?:[-*•▪‣]|\d{1,2}[.)])[ \t]+\S", re.MULTILINE)


def _fold(text: str) -> str:
    text = " ".join(text.lower().split())
    return text.replace(" /", "/").replace("/ ", "/")


def count_bullets(text: str) -> int:
    return len(_BULLET.findall(text or ""))


@dataclass(frozen=True)
class QualityGate:
    """
    Structural acceptance check for generated text.

    An output passes only if it names every required section, carries at
    least ``min_bullets`` bullet lines and is at least ``min_chars`` long once
    the end marker is removed.
    """

    required_sections: Tuple[str, ...] = DEFAULT_SECTIONS
    min_bullets: int = 6
    min_chars: int = 240

    @classmethod
    def relaxed(cls, min_bullets: int = 3, min_chars: int = 240) -> "QualityGate":
        """Non-triviality only: no section requirements."""
        return cls(required_sections=(), min_bullets=min_bullets, min_chars=min_chars)

    def missing_sections(self, output: str) -> Sequence[str]:
        folded = _fold(strip_end_marker(output))
        return [name for name in self.required_sections if _fold(name) not in folded]

    def accepts(self, output: str) -> bool:
        body = strip_end_marker(output)
        if not body:
            return False
        if self.missing_sections(body):
            return False
        if count_bullets(body) < self.min_bullets:
            return False
        return len(body) >= self.min_chars
