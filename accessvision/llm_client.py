"""
Analysis Client for AccessVision

Sends a captured frame plus a mode/verbosity instruction to a vision LLM
and turns the answer into a NarrationResult:
- Connection pooling (one aiohttp.ClientSession)
- Optional retries on timeouts / HTTP errors
- Urgency classification of the answer
- Deterministic fallback on any failure (never raises to the caller)

Usage:
    from accessvision.llm_client import AnalysisClient

    client = AnalysisClient()
    result = await client.analyze(jpeg_bytes, Mode.TEXT, Verbosity.STANDARD)
    await client.aclose()
"""

import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from .config import config
from .exceptions import AnalysisError
from .models import Mode, NarrationResult, Priority, Verbosity
from .prompts import CAUTION_TOKEN, URGENT_MARKER, build_instruction, system_instruction

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "Connection error. Please try again."
EMPTY_RESPONSE_TEXT = "I couldn't analyze the scene."

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def classify_priority(text: str) -> Priority:
    """Urgent if the text mentions the urgency marker or the caution token."""
    upper = (text or "").upper()
    if URGENT_MARKER in upper or CAUTION_TOKEN in upper:
        return Priority.URGENT
    return Priority.NORMAL


@dataclass
class AnalysisMetrics:
    """Track analysis performance metrics."""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_time_ms: float = 0

    @property
    def avg_time_ms(self) -> float:
        return self.total_time_ms / max(1, self.total_calls)

    @property
    def success_rate(self) -> float:
        return self.successful_calls / max(1, self.total_calls)

    def to_dict(self) -> dict:
        return {
            "total_calls": self.total_calls,
            "successful": self.successful_calls,
            "failed": self.failed_calls,
            "avg_time_ms": round(self.avg_time_ms, 1),
            "success_rate": f"{self.success_rate:.1%}",
        }


@dataclass
class AnalysisConfig:
    """Analysis client configuration."""
    provider: str = "gemini"
    model: str = "gemini-2.5-flash"
    gemini_api_key: str = ""
    openai_api_key: str = ""
    ollama_url: str = "http://localhost:11434"
    timeout: float = 30
    max_retries: int = 0
    temperature: float = 0.4

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        """Load config from environment/.env"""
        return cls(
            provider=config.get("AV_LLM_PROVIDER", "gemini").lower(),
            model=config.get("AV_MODEL", "gemini-2.5-flash"),
            gemini_api_key=config.get("AV_GEMINI_API_KEY", ""),
            openai_api_key=config.get("AV_OPENAI_API_KEY", ""),
            ollama_url=config.get("AV_OLLAMA_URL", "http://localhost:11434"),
            timeout=config.get_float("AV_LLM_TIMEOUT", 30),
            max_retries=config.get_int("AV_LLM_RETRIES", 0),
            temperature=config.get_float("AV_LLM_TEMPERATURE", 0.4),
        )


class AnalysisClient:
    """Vision analysis client with connection pooling and metrics."""

    def __init__(
        self,
        analysis_config: Optional[AnalysisConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = analysis_config or AnalysisConfig.from_env()
        self.metrics = AnalysisMetrics()
        self._session = session
        self._owns_session = session is None

    async def analyze(self, frame: bytes, mode: Mode, verbosity: Verbosity) -> NarrationResult:
        """Describe ``frame`` (JPEG bytes) for the given mode and verbosity.

        Any transport or service failure becomes the fixed fallback result.
        """
        start_time = time.time()
        self.metrics.total_calls += 1
        instruction = build_instruction(mode, verbosity)

        try:
            text = await self._request(base64.b64encode(frame).decode(), instruction)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.metrics.failed_calls += 1
            self.metrics.total_time_ms += (time.time() - start_time) * 1000
            logger.warning(f"Analysis failed ({self.config.provider}): {e}")
            return NarrationResult(text=FALLBACK_TEXT, priority=Priority.NORMAL)

        time_ms = (time.time() - start_time) * 1000
        self.metrics.successful_calls += 1
        self.metrics.total_time_ms += time_ms

        text = text.strip() or EMPTY_RESPONSE_TEXT
        result = NarrationResult(text=text, priority=classify_priority(text))
        logger.debug(f"Analysis ({mode.value}/{verbosity.value}) took {time_ms:.0f}ms: {text[:80]}")
        return result

    async def _request(self, image_b64: str, instruction: str) -> str:
        """Call the configured provider, retrying timeouts and HTTP errors."""
        if self.config.provider == "gemini":
            call = self._call_gemini
        elif self.config.provider == "ollama":
            call = self._call_ollama
        elif self.config.provider == "openai":
            call = self._call_openai
        else:
            raise AnalysisError(f"Unknown provider: {self.config.provider}")

        for attempt in range(self.config.max_retries + 1):
            try:
                return await call(image_b64, instruction)
            except (asyncio.TimeoutError, aiohttp.ClientResponseError) as e:
                if attempt < self.config.max_retries:
                    logger.debug(f"Retrying analysis after: {e!r}")
                    continue
                raise AnalysisError(f"{type(e).__name__}: {e}") from e

        raise AnalysisError("Max retries exceeded")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                headers={"Content-Type": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def _post_json(self, url: str, payload: Dict[str, Any], **kwargs) -> Dict[str, Any]:
        session = self._get_session()
        async with session.post(url, json=payload, **kwargs) as response:
            response.raise_for_status()
            return await response.json()

    async def _call_gemini(self, image_b64: str, instruction: str) -> str:
        """Call Gemini generateContent."""
        if not self.config.gemini_api_key:
            raise AnalysisError("AV_GEMINI_API_KEY not set")

        data = await self._post_json(
            GEMINI_URL.format(model=self.config.model),
            {
                "contents": [{
                    "parts": [
                        {"inline_data": {"mime_type": "image/jpeg", "data": image_b64}},
                        {"text": instruction},
                    ],
                }],
                "system_instruction": {"parts": [{"text": system_instruction()}]},
                "generationConfig": {"temperature": self.config.temperature},
            },
            params={"key": self.config.gemini_api_key},
        )

        if not isinstance(data, dict):
            raise AnalysisError(f"Malformed Gemini response: {str(data)[:200]}")

        # Blocked answers carry no candidate content; they read as empty text
        candidate = (data.get("candidates") or [{}])[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        if not parts:
            reason = (data.get("promptFeedback") or {}).get("blockReason") or candidate.get("finishReason")
            logger.warning(f"Gemini returned no text (reason: {reason})")
        return "".join(part.get("text", "") for part in parts)

    async def _call_ollama(self, image_b64: str, instruction: str) -> str:
        """Call Ollama vision API."""
        data = await self._post_json(
            f"{self.config.ollama_url}/api/generate",
            {
                "model": self.config.model,
                "system": system_instruction(),
                "prompt": instruction,
                "images": [image_b64],
                "stream": False,
                "options": {"temperature": self.config.temperature},
            },
        )
        resp_text = data.get("response", "")
        if not resp_text:
            logger.warning(f"Ollama returned empty response. Raw data: {str(data)[:200]}")
        return resp_text

    async def _call_openai(self, image_b64: str, instruction: str) -> str:
        """Call OpenAI vision API."""
        if not self.config.openai_api_key:
            raise AnalysisError("AV_OPENAI_API_KEY not set")

        data = await self._post_json(
            OPENAI_URL,
            {
                "model": self.config.model,
                "messages": [
                    {"role": "system", "content": system_instruction()},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": instruction},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:image/jpeg;base64,{image_b64}"},
                            },
                        ],
                    },
                ],
                "temperature": self.config.temperature,
                "max_tokens": 300,
            },
            headers={"Authorization": f"Bearer {self.config.openai_api_key}"},
        )
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise AnalysisError(f"Malformed OpenAI response: {str(data)[:200]}") from e

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics."""
        return self.metrics.to_dict()

    async def aclose(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
