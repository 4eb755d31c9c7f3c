from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Model to use, default to Gemini 2.5 Flash
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Optional: stronger model for per-problem homework explanations
	gemini_model_homework: str | None = Field(default=None, validation_alias="GEMINI_MODEL_HOMEWORK")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	# Thinking tokens count against maxOutputTokens on 2.5 models; 0 disables thinking
	gemini_thinking_budget: int | None = Field(default=0, validation_alias="GEMINI_THINKING_BUDGET")
	gemini_timeout_seconds: float = Field(default=60.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="AcePrep", validation_alias="OPENROUTER_TITLE")

	# Comma separated keys that unlock the pro tier via the X-AcePrep-Key header
	pro_access_keys: str = Field(default="", validation_alias="PRO_ACCESS_KEYS")
	rate_limit_per_minute: int = Field(default=20, validation_alias="RATE_LIMIT_PER_MINUTE")

	# Pipeline
	free_unit_cap: int = Field(default=6, validation_alias="FREE_UNIT_CAP")
	pro_unit_cap: int = Field(default=30, validation_alias="PRO_UNIT_CAP")
	unit_concurrency: int = Field(default=3, validation_alias="UNIT_CONCURRENCY")
	call_timeout_seconds: float = Field(default=45.0, validation_alias="CALL_TIMEOUT_SECONDS")
	unit_output_budget: int = Field(default=600, validation_alias="UNIT_OUTPUT_BUDGET")
	retry_output_budget: int = Field(default=800, validation_alias="RETRY_OUTPUT_BUDGET")
	salvage_output_budget: int = Field(default=1500, validation_alias="SALVAGE_OUTPUT_BUDGET")
	study_guide_output_budget: int = Field(default=1800, validation_alias="STUDY_GUIDE_OUTPUT_BUDGET")
	formula_sheet_output_budget: int = Field(default=1600, validation_alias="FORMULA_SHEET_OUTPUT_BUDGET")
	exam_pack_output_budget: int = Field(default=2400, validation_alias="EXAM_PACK_OUTPUT_BUDGET")
	gate_min_bullets: int = Field(default=6, validation_alias="GATE_MIN_BULLETS")
	gate_min_chars: int = Field(default=240, validation_alias="GATE_MIN_CHARS")
	min_unit_chars: int = Field(default=24, validation_alias="MIN_UNIT_CHARS")
	min_pdf_chars: int = Field(default=200, validation_alias="MIN_PDF_CHARS")
	max_material_chars: int = Field(default=100000, validation_alias="MAX_MATERIAL_CHARS")
	chunk_max_chars: int = Field(default=2400, validation_alias="CHUNK_MAX_CHARS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

	def pro_keys(self) -> set[str]:
		return {k.strip() for k in self.pro_access_keys.split(",") if k.strip()}

settings = Settings()
