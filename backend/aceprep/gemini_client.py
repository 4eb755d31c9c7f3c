from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional, Sequence
from .errors import ConfigurationError, GenerationError
from .prompts import RoleSegment
from .settings import settings

logger = logging.getLogger(__name__)

class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		thinking_budget: Optional[int] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise ConfigurationError("Missing GEMINI_API_KEY. Set it in .env or the service environment.")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		self.thinking_budget = settings.gemini_thinking_budget if thinking_budget is None else thinking_budget
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		timeout = timeout or settings.gemini_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def invoke(self, segments: Sequence[RoleSegment], output_budget: int) -> str:
		"""Send role-tagged segments and return the generated text (possibly empty)."""
		system_text = "\n\n".join(s.text for s in segments if s.role in ("system", "developer"))
		user_parts = [{"text": s.text} for s in segments if s.role == "user"]
		if not user_parts:
			raise GenerationError("Generation request has no user segment")
		payload: Dict[str, Any] = {
			"contents": [{"role": "user", "parts": user_parts}],
			"generationConfig": {"maxOutputTokens": int(output_budget)},
		}
		if system_text:
			payload["systemInstruction"] = {"parts": [{"text": system_text}]}
		return await self._post_payload(payload, segments=segments, output_budget=output_budget)

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		segments: Sequence[RoleSegment],
		output_budget: int,
	) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		if self.thinking_budget is not None:
			config = dict(payload["generationConfig"])
			config["thinkingConfig"] = {"thinkingBudget": int(self.thinking_budget)}
			payload = {**payload, "generationConfig": config}
		last_error: Optional[Exception] = None
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			if "thinkingConfig" in payload["generationConfig"]:
				# Older models reject thinkingConfig; retry once without it
				config = dict(payload["generationConfig"])
				config.pop("thinkingConfig", None)
				try:
					r = await self._client.post(self.base_url, params=params, headers=headers, json={**payload, "generationConfig": config})
					r.raise_for_status()
				except httpx.HTTPError as err:
					last_error = err
			else:
				last_error = http_err
		except httpx.RequestError as net_err:
			last_error = net_err
		if last_error is None:
			try:
				return _candidate_text(r.json())
			except (ValueError, KeyError, IndexError, TypeError):
				last_error = GenerationError(f"Unexpected Gemini response: {r.text[:300]}")
		logger.warning("Gemini call failed: %s", last_error)
		if not self._fallback_enabled:
			raise _as_generation_error(last_error)
		return await self._fallback_generate(segments, output_budget, last_error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(
		self,
		segments: Sequence[RoleSegment],
		output_budget: int,
		primary_error: Optional[Exception],
	) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise _as_generation_error(primary_error)
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		messages: List[Dict[str, str]] = [
			{"role": "system" if s.role == "developer" else s.role, "content": s.text}
			for s in segments
		]
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": messages,
			"max_tokens": int(output_budget),
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"] or ""
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			raise GenerationError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed"
			) from fallback_err


def _candidate_text(data: Dict[str, Any]) -> str:
	candidate = data["candidates"][0]
	parts = (candidate.get("content") or {}).get("parts") or []
	# Thought summaries are flagged with "thought": true
	return "".join(p.get("text", "") for p in parts if not p.get("thought"))


def _as_generation_error(err: Optional[Exception]) -> GenerationError:
	if isinstance(err, GenerationError):
		return err
	if err is None:
		return GenerationError("Gemini call failed and no fallback configured")
	return GenerationError(f"Gemini call failed: {err}")
