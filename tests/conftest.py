"""
Pytest configuration and fixtures.

The generation backend is replaced by ``StubGenerator``: it records every
call and answers through a plain function, so no test touches the network.
"""

import asyncio
import os
import re
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite://")

from aceprep.options import PipelineConfig
from aceprep.prompts import RoleSegment

SECTIONS = ("What the problem is asking", "Method / steps", "Common pitfalls")


class StubGenerator:
    """Stand-in for GeminiClient.invoke."""

    def __init__(self, respond: Callable[[Sequence[RoleSegment], int], str], delay: float = 0.0):
        self.respond = respond
        self.delay = delay
        self.calls: List[Tuple[Tuple[RoleSegment, ...], int]] = []
        self.active = 0
        self.max_active = 0
        self.closed = False

    async def invoke(self, segments: Sequence[RoleSegment], output_budget: int) -> str:
        self.calls.append((tuple(segments), output_budget))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return self.respond(segments, output_budget)
        finally:
            self.active -= 1

    async def aclose(self) -> None:
        self.closed = True


def segment_text(segments: Sequence[RoleSegment], role: str) -> str:
    return "\n\n".join(s.text for s in segments if s.role == role)


def requested_label(segments: Sequence[RoleSegment]) -> Optional[str]:
    m = re.search(r"First line MUST be: \[([^\]]+)\]", segment_text(segments, "developer"))
    return m.group(1) if m else None


def unit_text(segments: Sequence[RoleSegment]) -> str:
    m = re.search(r"<<<BEGIN\n(.*)\nEND>>>", segment_text(segments, "user"), re.S)
    return m.group(1) if m else ""


def well_formed_answer(label: str, reference: str, sections: Sequence[str] = SECTIONS) -> str:
    reference = " ".join(reference.split())[:60]
    return "\n".join(
        [
            f"[{label}]",
            sections[0],
            f'- The problem states "{reference}" and asks what follows from it.',
            "- Identify which quantity must be found and which are given.",
            sections[1],
            "- Write the governing definition for this topic before computing.",
            f'- Apply it to "{reference}" step by step, keeping symbols until the end.',
            sections[2],
            "- Dropping a factor or sign while differentiating.",
            "- Confusing the outer and inner function when composing.",
            "---END---",
        ]
    )


def echo_well_formed(segments: Sequence[RoleSegment], output_budget: int) -> str:
    """Answers every unit request with a gate-passing explanation of that unit."""
    label = requested_label(segments) or "Problem"
    return well_formed_answer(label, unit_text(segments))


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(call_timeout_seconds=2.0, unit_concurrency=3)


@pytest.fixture
def stub_factory():
    return StubGenerator
