from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from starlette.datastructures import UploadFile

from ..db import SessionLocal
from ..gemini_client import GeminiClient
from ..options import PipelineConfig, Tier, Tool
from ..orchestrator import StudyOrchestrator, validate_material
from ..pdf_extract import material_from_pdf
from ..settings import settings
from ..unit_pipeline import TextGenerator
from ..usage import RateLimiter, SqlUsageStore, UsageStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])

PRO_KEY_HEADER = "X-AcePrep-Key"
SESSION_HEADER = "X-Session-Id"

_usage_store = SqlUsageStore(SessionLocal)


class GenerateResponse(BaseModel):
	output: str


@dataclass
class GeneratePayload:
	tool: str = Tool.STUDY_GUIDE.value
	notes: str = ""
	options: Dict[str, Any] = field(default_factory=dict)
	pdf: Optional[bytes] = None


def get_usage_store() -> UsageStore:
	return _usage_store


def get_pipeline_config() -> PipelineConfig:
	return PipelineConfig.from_settings(settings)


def get_client_factory() -> Callable[[Tool], TextGenerator]:
	def make(tool: Tool) -> TextGenerator:
		model = None
		if tool == Tool.HOMEWORK_EXPLAIN:
			model = settings.gemini_model_homework
		return GeminiClient(model=model)

	return make


def get_tier(request: Request) -> Tier:
	key = (request.headers.get(PRO_KEY_HEADER) or "").strip()
	if key and key in settings.pro_keys():
		return Tier.PRO
	return Tier.FREE


def _client_key(request: Request) -> str:
	session = (request.headers.get(SESSION_HEADER) or "").strip()
	if session:
		return session[:128]
	return request.client.host if request.client else "anonymous"


def _parse_options(raw: Any) -> Dict[str, Any]:
	if isinstance(raw, dict):
		return raw
	if isinstance(raw, str) and raw.strip():
		try:
			parsed = json.loads(raw)
		except ValueError:
			return {}
		return parsed if isinstance(parsed, dict) else {}
	return {}


async def _read_request(request: Request) -> GeneratePayload:
	content_type = request.headers.get("content-type", "")
	if "multipart/form-data" in content_type or "application/x-www-form-urlencoded" in content_type:
		form = await request.form()
		pdf = form.get("pdf")
		pdf_bytes = await pdf.read() if isinstance(pdf, UploadFile) else None
		return GeneratePayload(
			tool=str(form.get("tool") or Tool.STUDY_GUIDE.value),
			notes=str(form.get("notes") or "").strip(),
			options=_parse_options(form.get("options")),
			pdf=pdf_bytes or None,
		)
	try:
		body = await request.json()
	except ValueError:
		body = {}
	if not isinstance(body, dict):
		body = {}
	return GeneratePayload(
		tool=str(body.get("tool") or Tool.STUDY_GUIDE.value),
		notes=str(body.get("notes") or "").strip(),
		options=_parse_options(body.get("options")),
	)


@router.post("/generate", response_model=GenerateResponse)
async def generate(
	request: Request,
	tier: Tier = Depends(get_tier),
	store: UsageStore = Depends(get_usage_store),
	config: PipelineConfig = Depends(get_pipeline_config),
	make_client: Callable[[Tool], TextGenerator] = Depends(get_client_factory),
):
	RateLimiter(store, settings.rate_limit_per_minute).hit(_client_key(request))
	payload = await _read_request(request)
	tool = StudyOrchestrator.resolve_tool(payload.tool)
	StudyOrchestrator.check_access(tool, tier)

	material = payload.notes
	if payload.pdf is not None:
		material = material_from_pdf(payload.pdf, payload.notes, settings.min_pdf_chars)
	# Reject bad input before a client (and its credentials) is even created
	material = validate_material(material, config.min_unit_chars, config.max_material_chars)

	client = make_client(tool)
	try:
		outcome = await StudyOrchestrator(client, config).generate(material, tool, payload.options, tier)
	finally:
		aclose = getattr(client, "aclose", None)
		if aclose is not None:
			await aclose()
	logger.info("Served %s for %s tier via %s", tool.value, tier.value, outcome.strategy)
	return GenerateResponse(output=outcome.output)
