from __future__ import annotations
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .settings import Settings, settings as default_settings


class Tool(str, Enum):
    STUDY_GUIDE = "Study Guide"
    FORMULA_SHEET = "Formula Sheet"
    HOMEWORK_EXPLAIN = "Homework Explain"
    EXAM_PACK = "Exam Pack"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Tool":
        raw = (value or "").strip()
        if not raw:
            return cls.STUDY_GUIDE
        for tool in cls:
            if raw.lower() == tool.value.lower() or raw.lower() == tool.name.lower():
                return tool
        raise ValueError(f"Unknown tool: {raw}")


class Tier(str, Enum):
    FREE = "free"
    PRO = "pro"


PRO_ONLY_TOOLS = frozenset({Tool.EXAM_PACK})

_OPTION_MAX_CHARS = 200


class GenerationOptions(BaseModel):
    """Per-request knobs sent by the client alongside the material."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    exam_type: str = Field(default="unspecified", alias="examType")
    prof_emphasis: str = Field(default="unspecified", alias="profEmphasis")

    @field_validator("exam_type", "prof_emphasis", mode="before")
    @classmethod
    def _clean(cls, value):
        text = " ".join(str(value if value is not None else "").split())
        return text[:_OPTION_MAX_CHARS] or "unspecified"


class PipelineConfig(BaseModel):
    """Every tunable of the generation pipeline, validated once per orchestrator."""

    model_config = ConfigDict(frozen=True)

    free_unit_cap: int = Field(default=6, ge=1)
    pro_unit_cap: int = Field(default=30, ge=1)
    unit_concurrency: int = Field(default=3, ge=1)
    call_timeout_seconds: float = Field(default=45.0, gt=0)
    unit_output_budget: int = Field(default=600, ge=1)
    retry_output_budget: int = Field(default=800, ge=1)
    salvage_output_budget: int = Field(default=1500, ge=1)
    study_guide_output_budget: int = Field(default=1800, ge=1)
    formula_sheet_output_budget: int = Field(default=1600, ge=1)
    exam_pack_output_budget: int = Field(default=2400, ge=1)
    gate_min_bullets: int = Field(default=6, ge=0)
    gate_min_chars: int = Field(default=240, ge=0)
    min_unit_chars: int = Field(default=24, ge=1)
    chunk_max_chars: int = Field(default=2400, ge=200)
    max_material_chars: int = Field(default=100_000, ge=1)
    required_sections: Tuple[str, ...] = (
        "What the problem is asking",
        "Method / steps",
        "Common pitfalls",
    )

    @model_validator(mode="after")
    def _check_budgets(self):
        if self.retry_output_budget < self.unit_output_budget:
            raise ValueError("retry_output_budget must be >= unit_output_budget")
        if self.pro_unit_cap < self.free_unit_cap:
            raise ValueError("pro_unit_cap must be >= free_unit_cap")
        return self

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "PipelineConfig":
        s = s or default_settings
        return cls(
            free_unit_cap=s.free_unit_cap,
            pro_unit_cap=s.pro_unit_cap,
            unit_concurrency=s.unit_concurrency,
            call_timeout_seconds=s.call_timeout_seconds,
            unit_output_budget=s.unit_output_budget,
            retry_output_budget=s.retry_output_budget,
            salvage_output_budget=s.salvage_output_budget,
            study_guide_output_budget=s.study_guide_output_budget,
            formula_sheet_output_budget=s.formula_sheet_output_budget,
            exam_pack_output_budget=s.exam_pack_output_budget,
            gate_min_bullets=s.gate_min_bullets,
            gate_min_chars=s.gate_min_chars,
            min_unit_chars=s.min_unit_chars,
            chunk_max_chars=s.chunk_max_chars,
            max_material_chars=s.max_material_chars,
        )

    def unit_cap(self, tier: Tier) -> int:
        return self.pro_unit_cap if tier == Tier.PRO else self.free_unit_cap

    def whole_document_budget(self, tool: Tool) -> int:
        if tool == Tool.FORMULA_SHEET:
            return self.formula_sheet_output_budget
        if tool == Tool.EXAM_PACK:
            return self.exam_pack_output_budget
        if tool == Tool.HOMEWORK_EXPLAIN:
            return self.salvage_output_budget
        return self.study_guide_output_budget
