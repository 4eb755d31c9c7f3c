"""
Per-unit generation: prompt, call, gate, and at most one escalated retry.

A unit that still fails after the retry is dropped (``None``); it never
raises for backend trouble, so one bad unit cannot block the others.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .chunker import Unit
from .errors import GenerationError
from .joiner import ensure_end_marker
from .options import GenerationOptions, PipelineConfig
from .prompts import GenerationRequest, RoleSegment, build_homework_request, escalate, extract_anchors
from .quality import QualityGate

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def invoke(self, segments: Sequence[RoleSegment], output_budget: int) -> str:
        ...


@dataclass(frozen=True)
class AcceptedOutput:
    label: str
    text: str


@dataclass(frozen=True)
class RequestContext:
    options: GenerationOptions
    config: PipelineConfig


async def call_generator(generator: TextGenerator, request: GenerationRequest, timeout: float) -> str:
    """Invoke the backend; failures and timeouts come back as an empty string."""
    try:
        text = await asyncio.wait_for(generator.invoke(request.segments, request.output_budget), timeout)
    except asyncio.TimeoutError:
        logger.warning("Generation call timed out after %.1fs", timeout)
        return ""
    except GenerationError as err:
        logger.warning("Generation call failed: %s", err.message)
        return ""
    return ensure_end_marker(text or "")


class UnitPipeline:
    def __init__(self, generator: TextGenerator, gate: QualityGate) -> None:
        self.generator = generator
        self.gate = gate

    async def process(self, unit: Unit, label: str, context: RequestContext) -> Optional[AcceptedOutput]:
        config = context.config
        request = build_homework_request(
            unit.body,
            label,
            context.options,
            output_budget=config.unit_output_budget,
            sections=self.gate.required_sections,
            min_bullets=self.gate.min_bullets,
            anchors=extract_anchors(unit.body),
        )
        output = await call_generator(self.generator, request, config.call_timeout_seconds)
        if self.gate.accepts(output):
            return AcceptedOutput(label=label, text=output)

        logger.info("Unit %s rejected by quality gate, retrying with escalated prompt", label)
        retry = escalate(request, output_budget=config.retry_output_budget, sections=self.gate.required_sections)
        output = await call_generator(self.generator, retry, config.call_timeout_seconds)
        if self.gate.accepts(output):
            return AcceptedOutput(label=label, text=output)

        logger.info("Unit %s dropped after retry", label)
        return None
