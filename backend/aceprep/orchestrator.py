"""
Study Material Orchestrator

Drives one generation request through an explicit, linear state machine:

    CHUNK -> FANOUT -> JOIN                     units accepted
                    -> SALVAGE -> JOIN          whole-document answer accepted
                               -> FALLBACK -> JOIN

Homework explanations enter at CHUNK and fan out one model call per problem
unit. Single-pass tools (study guide, formula sheet, exam pack) enter at
SALVAGE, which for them is the normal whole-document call. FALLBACK builds a
template document without the model and always succeeds, so a valid input
always produces a document.

All working state lives in a per-request ``_Run``; the orchestrator itself
holds only configuration and the generator, and can serve concurrent
requests.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from .chunker import Unit, chunk, content_size
from .errors import AcePrepError, GenerationError, MaterialError, ToolAccessError
from .fallback import document_fallback, homework_fallback
from .joiner import join, strip_end_marker
from .labeler import label
from .options import PRO_ONLY_TOOLS, GenerationOptions, PipelineConfig, Tier, Tool
from .prompts import build_document_request, build_salvage_request, escalate_document
from .quality import QualityGate
from .unit_pipeline import AcceptedOutput, RequestContext, TextGenerator, UnitPipeline, call_generator

logger = logging.getLogger(__name__)

EMPTY_MATERIAL_MESSAGE = "Paste notes or upload a PDF first."
SHORT_MATERIAL_MESSAGE = "The material is too short to work with. Paste more of the assignment or notes."
LONG_MATERIAL_MESSAGE = "The material is too long. Paste at most {limit} characters or split it into parts."


def validate_material(material: Optional[str], min_chars: int, max_chars: Optional[int] = None) -> str:
    """Stripped material, or MaterialError when it is blank, too short or too long."""
    text = (material or "").strip()
    if not text:
        raise MaterialError(EMPTY_MATERIAL_MESSAGE, error_code="MATERIAL_EMPTY")
    if max_chars is not None and len(text) > max_chars:
        raise MaterialError(LONG_MATERIAL_MESSAGE.format(limit=max_chars), error_code="MATERIAL_TOO_LONG")
    if content_size(text) < min_chars:
        raise MaterialError(SHORT_MATERIAL_MESSAGE, error_code="MATERIAL_TOO_SHORT")
    return text


class Stage(str, Enum):
    CHUNK = "chunk"
    FANOUT = "fanout"
    SALVAGE = "salvage"
    FALLBACK = "fallback"
    JOIN = "join"


@dataclass
class GenerationOutcome:
    output: str
    strategy: str
    stages: List[Stage]
    accepted_labels: List[str] = field(default_factory=list)
    units_detected: int = 0
    units_processed: int = 0


@dataclass
class _Run:
    material: str
    tool: Tool
    tier: Tier
    context: RequestContext
    units: List[Unit] = field(default_factory=list)
    accepted: List[AcceptedOutput] = field(default_factory=list)
    pieces: List[str] = field(default_factory=list)
    stages: List[Stage] = field(default_factory=list)
    strategy: str = ""
    units_processed: int = 0
    output: str = ""


class StudyOrchestrator:
    def __init__(self, generator: TextGenerator, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig.from_settings()
        self.generator = generator
        self.gate = QualityGate(
            required_sections=self.config.required_sections,
            min_bullets=self.config.gate_min_bullets,
            min_chars=self.config.gate_min_chars,
        )
        self.document_gate = QualityGate.relaxed(
            min_bullets=max(1, self.config.gate_min_bullets // 2),
            min_chars=self.config.gate_min_chars,
        )
        self.pipeline = UnitPipeline(generator, self.gate)
        self._handlers: Dict[Stage, Callable[[_Run], Awaitable[Optional[Stage]]]] = {
            Stage.CHUNK: self._chunk,
            Stage.FANOUT: self._fanout,
            Stage.SALVAGE: self._salvage,
            Stage.FALLBACK: self._fallback,
            Stage.JOIN: self._join,
        }

    # ------------------------------------------------------------------
    # Boundary checks
    # ------------------------------------------------------------------

    def validate_material(self, material: Optional[str]) -> str:
        return validate_material(material, self.config.min_unit_chars, self.config.max_material_chars)

    @staticmethod
    def resolve_tool(tool: Union[Tool, str, None]) -> Tool:
        if isinstance(tool, Tool):
            return tool
        try:
            return Tool.parse(tool)
        except ValueError as err:
            raise AcePrepError(str(err), error_code="UNKNOWN_TOOL", status_code=400) from err

    @staticmethod
    def check_access(tool: Tool, tier: Tier) -> None:
        if tool in PRO_ONLY_TOOLS and tier != Tier.PRO:
            raise ToolAccessError(tool.value)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def generate(
        self,
        material: Optional[str],
        tool: Union[Tool, str, None] = Tool.STUDY_GUIDE,
        options: Union[GenerationOptions, Mapping[str, Any], None] = None,
        tier: Tier = Tier.FREE,
    ) -> GenerationOutcome:
        tool = self.resolve_tool(tool)
        self.check_access(tool, tier)
        text = self.validate_material(material)
        if not isinstance(options, GenerationOptions):
            options = GenerationOptions.model_validate(dict(options or {}))

        run = _Run(
            material=text,
            tool=tool,
            tier=tier,
            context=RequestContext(options=options, config=self.config),
        )
        stage: Optional[Stage] = Stage.CHUNK if tool == Tool.HOMEWORK_EXPLAIN else Stage.SALVAGE
        while stage is not None:
            run.stages.append(stage)
            stage = await self._handlers[stage](run)

        if not strip_end_marker(run.output):
            # FALLBACK always has content; reaching this means a template bug
            raise GenerationError("Could not generate a document for this material.")
        logger.info(
            "Generated %s via %s (stages=%s, accepted=%d/%d)",
            tool.value,
            run.strategy,
            "->".join(s.value for s in run.stages),
            len(run.accepted),
            run.units_processed,
        )
        return GenerationOutcome(
            output=run.output,
            strategy=run.strategy,
            stages=list(run.stages),
            accepted_labels=[a.label for a in run.accepted],
            units_detected=len(run.units),
            units_processed=run.units_processed,
        )

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _chunk(self, run: _Run) -> Stage:
        run.units = chunk(
            run.material,
            max_chars=self.config.chunk_max_chars,
            min_unit_chars=self.config.min_unit_chars,
        )
        logger.info("Chunked material into %d unit(s)", len(run.units))
        return Stage.FANOUT

    async def _fanout(self, run: _Run) -> Stage:
        batch = run.units[: self.config.unit_cap(run.tier)]
        run.units_processed = len(batch)
        semaphore = asyncio.Semaphore(self.config.unit_concurrency)

        async def worker(unit: Unit) -> Optional[AcceptedOutput]:
            async with semaphore:
                return await self.pipeline.process(unit, label(unit), run.context)

        tasks = [asyncio.ensure_future(worker(unit)) for unit in batch]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        # gather keeps chunk order regardless of completion order
        run.accepted = [r for r in results if r is not None]
        if not run.accepted:
            logger.warning("No unit passed the quality gate (%d processed); trying whole-document salvage", len(batch))
            return Stage.SALVAGE
        run.pieces = [a.text for a in run.accepted]
        run.strategy = "units"
        return Stage.JOIN

    async def _salvage(self, run: _Run) -> Stage:
        options = run.context.options
        timeout = self.config.call_timeout_seconds
        budget = self.config.whole_document_budget(run.tool)

        if run.tool == Tool.HOMEWORK_EXPLAIN:
            request = build_salvage_request(
                run.material,
                options,
                output_budget=budget,
                sections=self.gate.required_sections,
            )
            output = await call_generator(self.generator, request, timeout)
            if self.gate.accepts(output):
                run.pieces = [output]
                run.strategy = "salvage"
                return Stage.JOIN
            logger.warning("Whole-document salvage rejected; using template fallback")
            return Stage.FALLBACK

        request = build_document_request(run.tool, run.material, options, output_budget=budget)
        output = await call_generator(self.generator, request, timeout)
        if not self.document_gate.accepts(output):
            logger.info("%s output rejected by quality gate, retrying with escalated prompt", run.tool.value)
            output = await call_generator(
                self.generator,
                escalate_document(request, output_budget=budget),
                timeout,
            )
        if self.document_gate.accepts(output):
            run.pieces = [output]
            run.strategy = "document"
            return Stage.JOIN
        logger.warning("%s generation failed twice; using template fallback", run.tool.value)
        return Stage.FALLBACK

    async def _fallback(self, run: _Run) -> Stage:
        options = run.context.options
        if run.tool == Tool.HOMEWORK_EXPLAIN:
            run.pieces = homework_fallback(
                run.material,
                options,
                limit=self.config.unit_cap(run.tier),
                sections=self.gate.required_sections,
            )
        else:
            run.pieces = document_fallback(run.tool, run.material, options)
        run.strategy = "fallback"
        return Stage.JOIN

    async def _join(self, run: _Run) -> None:
        run.output = join(run.pieces)
        return None
