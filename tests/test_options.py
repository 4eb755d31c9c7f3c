"""Tests for request options, tool parsing and pipeline configuration."""

import pytest
from pydantic import ValidationError

from aceprep.options import GenerationOptions, PipelineConfig, Tier, Tool
from aceprep.settings import Settings


class TestTool:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, Tool.STUDY_GUIDE),
            ("", Tool.STUDY_GUIDE),
            ("Homework Explain", Tool.HOMEWORK_EXPLAIN),
            ("  formula sheet ", Tool.FORMULA_SHEET),
            ("EXAM_PACK", Tool.EXAM_PACK),
        ],
    )
    def test_parse(self, raw, expected):
        assert Tool.parse(raw) is expected

    def test_unknown(self):
        with pytest.raises(ValueError):
            Tool.parse("Flashcards")


class TestGenerationOptions:

    def test_defaults(self):
        options = GenerationOptions()
        assert options.exam_type == "unspecified"
        assert options.prof_emphasis == "unspecified"

    def test_aliases_and_cleanup(self):
        options = GenerationOptions.model_validate({"examType": "  Final\n exam ", "profEmphasis": None, "other": 1})
        assert options.exam_type == "Final exam"
        assert options.prof_emphasis == "unspecified"

    def test_clamped(self):
        assert len(GenerationOptions(exam_type="x" * 500).exam_type) == 200


class TestPipelineConfig:

    def test_defaults(self):
        config = PipelineConfig()
        assert config.unit_cap(Tier.FREE) == 6
        assert config.unit_cap(Tier.PRO) == 30
        assert config.whole_document_budget(Tool.HOMEWORK_EXPLAIN) == 1500
        assert config.whole_document_budget(Tool.STUDY_GUIDE) == 1800
        assert config.whole_document_budget(Tool.FORMULA_SHEET) == 1600
        assert config.whole_document_budget(Tool.EXAM_PACK) == 2400

    def test_retry_budget_cannot_shrink(self):
        with pytest.raises(ValidationError):
            PipelineConfig(unit_output_budget=900, retry_output_budget=800)

    def test_pro_cap_not_below_free(self):
        with pytest.raises(ValidationError):
            PipelineConfig(free_unit_cap=10, pro_unit_cap=5)

    def test_from_settings(self, monkeypatch):
        monkeypatch.setenv("FREE_UNIT_CAP", "4")
        monkeypatch.setenv("UNIT_CONCURRENCY", "2")
        monkeypatch.setenv("MAX_MATERIAL_CHARS", "5000")

        config = PipelineConfig.from_settings(Settings())

        assert config.free_unit_cap == 4
        assert config.unit_concurrency == 2
        assert config.max_material_chars == 5000

    def test_frozen(self):
        with pytest.raises(ValidationError):
            PipelineConfig().free_unit_cap = 3
