"""Tests for per-unit generation with one escalated retry."""

import pytest

from aceprep.chunker import Unit
from aceprep.errors import GenerationError
from aceprep.options import GenerationOptions
from aceprep.quality import QualityGate
from aceprep.unit_pipeline import RequestContext, UnitPipeline, call_generator
from aceprep.prompts import GenerationRequest, RoleSegment

from conftest import StubGenerator, echo_well_formed, segment_text

UNIT = Unit(ordinal_path=(1, "a"), body="[1(a)]\n1. Let f(x) = x^2 sin(x).\n(a) Find f'(x).")


@pytest.fixture
def context(config):
    return RequestContext(options=GenerationOptions(), config=config)


class TestUnitPipeline:

    @pytest.mark.asyncio
    async def test_accepted_on_first_call(self, context):
        generator = StubGenerator(echo_well_formed)

        result = await UnitPipeline(generator, QualityGate()).process(UNIT, "1(a)", context)

        assert result is not None
        assert result.label == "1(a)"
        assert result.text.startswith("[1(a)]")
        assert result.text.endswith("---END---")
        assert len(generator.calls) == 1
        assert generator.calls[0][1] == 600

    @pytest.mark.asyncio
    async def test_retry_uses_escalated_prompt_and_bigger_budget(self, context):
        def respond(segments, budget):
            if "CRITICAL:" in segment_text(segments, "developer"):
                return echo_well_formed(segments, budget)
            return "---END---"

        generator = StubGenerator(respond)

        result = await UnitPipeline(generator, QualityGate()).process(UNIT, "1(a)", context)

        assert result is not None
        assert [budget for _, budget in generator.calls] == [600, 800]

    @pytest.mark.asyncio
    async def test_dropped_after_exactly_one_retry(self, context):
        generator = StubGenerator(lambda segments, budget: "- one bullet\n---END---")

        result = await UnitPipeline(generator, QualityGate()).process(UNIT, "1(a)", context)

        assert result is None
        assert len(generator.calls) == 2

    @pytest.mark.asyncio
    async def test_backend_errors_count_as_empty_output(self, context):
        def respond(segments, budget):
            raise GenerationError("upstream 500")

        generator = StubGenerator(respond)

        assert await UnitPipeline(generator, QualityGate()).process(UNIT, "1(a)", context) is None
        assert len(generator.calls) == 2


class TestCallGenerator:

    REQUEST = GenerationRequest(segments=(RoleSegment("user", "hi"),), output_budget=10)

    @pytest.mark.asyncio
    async def test_timeout_returns_empty(self):
        generator = StubGenerator(lambda segments, budget: "late", delay=0.5)
        assert await call_generator(generator, self.REQUEST, timeout=0.05) == ""

    @pytest.mark.asyncio
    async def test_appends_end_marker(self):
        generator = StubGenerator(lambda segments, budget: "answer")
        assert await call_generator(generator, self.REQUEST, timeout=1) == "answer\n---END---"

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        def respond(segments, budget):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            await call_generator(StubGenerator(respond), self.REQUEST, timeout=1)

    @pytest.mark.asyncio
    async def test_empty_output_stays_empty(self):
        generator = StubGenerator(lambda segments, budget: None)
        assert await call_generator(generator, self.REQUEST, timeout=1) == ""
