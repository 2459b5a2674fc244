import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings


logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


class AIClientError(RuntimeError):
    pass


class AIClientTimeout(AIClientError):
    pass


class AIClientHTTPError(AIClientError):
    def __init__(self, *, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class AICallMeta:
    model: str
    latency_ms: int
    status_code: int | None
    retries: int


def _safe_truncate(s: str, n: int = 800) -> str:
    s = s or ""
    if len(s) <= n:
        return s
    return s[:n] + "…"


def _openrouter_text(data: dict[str, Any]) -> str:
    # { choices: [ { message: { content: "..." } } ] }
    return (
        ((data.get("choices") or [{}])[0].get("message") or {}).get("content")
        or ""
    )


def _gemini_text(data: dict[str, Any]) -> str:
    # { candidates: [ { content: { parts: [ { text: "..." } ] } } ] }
    return (
        (data.get("candidates") or [{}])[0]
        .get("content", {})
        .get("parts", [{}])[0]
        .get("text", "")
    )


async def _post_with_retries(
    *,
    url: str,
    body: dict[str, Any],
    headers: dict[str, str],
    model: str,
    timeout_s: float,
    max_retries: int,
    log_payloads: bool,
) -> tuple[dict[str, Any], AICallMeta]:
    start = time.perf_counter()

    for attempt in range(max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout_s) as client:
                if log_payloads:
                    logger.info(
                        "AI request model=%s url=%s body=%s",
                        model,
                        url,
                        _safe_truncate(json.dumps(body, ensure_ascii=False)),
                    )
                r = await client.post(url, json=body, headers=headers)

            if r.status_code >= 400:
                # Retry only on transient server errors / rate limits.
                if r.status_code in _RETRYABLE_STATUS and attempt < max_retries:
                    backoff = 0.5 * (2**attempt)
                    logger.warning("AI HTTP %s; retrying in %.1fs", r.status_code, backoff)
                    await asyncio.sleep(backoff)
                    continue
                raise AIClientHTTPError(status_code=r.status_code, message=_safe_truncate(r.text, 1000))

            try:
                data = r.json() or {}
            except ValueError as e:
                raise AIClientError("AI provider returned a non-JSON body") from e

            meta = AICallMeta(
                model=model,
                latency_ms=int((time.perf_counter() - start) * 1000),
                status_code=r.status_code,
                retries=attempt,
            )
            logger.info(
                "AI ok model=%s status=%s latency_ms=%s retries=%s",
                meta.model,
                meta.status_code,
                meta.latency_ms,
                meta.retries,
            )
            return data, meta
        except (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.PoolTimeout):
            if attempt < max_retries:
                backoff = 0.5 * (2**attempt)
                logger.warning("AI timeout; retrying in %.1fs", backoff)
                await asyncio.sleep(backoff)
                continue
            raise AIClientTimeout("AI request timed out") from None
        except httpx.RequestError as e:
            if attempt < max_retries:
                backoff = 0.5 * (2**attempt)
                logger.warning("AI network error (%s); retrying in %.1fs", type(e).__name__, backoff)
                await asyncio.sleep(backoff)
                continue
            raise AIClientError(f"AI request failed: {type(e).__name__}") from e

    # Should be unreachable
    raise AIClientError("AI request failed")


async def openrouter_chat_completion(
    *,
    api_key: str,
    api_url: str,
    model: str,
    prompt: str,
    timeout_s: float = 60.0,
    max_retries: int = 0,
    log_payloads: bool = False,
) -> tuple[str, AICallMeta]:
    """
    Calls an OpenAI-compatible chat completions endpoint (OpenRouter by default).

    Endpoint:
      POST {api_url}
    Auth:
      Authorization: Bearer {api_key}
    """
    if not api_key:
        raise AIClientError("Missing AI_API_KEY")
    if not api_url:
        raise AIClientError("Missing AI_API_URL")

    body = {
        "model": model,
        "messages": [{"role": "user", "content": prompt or ""}],
    }
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "X-Title": "ChainHire",
    }
    data, meta = await _post_with_retries(
        url=api_url,
        body=body,
        headers=headers,
        model=model,
        timeout_s=timeout_s,
        max_retries=max_retries,
        log_payloads=log_payloads,
    )
    return (_openrouter_text(data) or "").strip(), meta


async def gemini_generate_content(
    *,
    api_key: str,
    base_url: str,
    api_version: str = "v1",
    model: str,
    prompt: str,
    temperature: float = 0.0,
    timeout_s: float = 60.0,
    max_retries: int = 0,
    log_payloads: bool = False,
) -> tuple[str, AICallMeta]:
    """
    Calls Gemini Generative Language API (API key auth) and returns the model text.

    Endpoint:
      POST {base_url}/{api_version}/models/{model}:generateContent
    Auth:
      x-goog-api-key: {api_key}
    """
    if not api_key:
        raise AIClientError("Missing GEMINI_API_KEY")
    if not model:
        raise AIClientError("Missing GEMINI_MODEL")
    api_v = (api_version or "v1").strip().lstrip("/")
    base = (base_url or "").rstrip("/")
    model_path = model.strip()
    if model_path.startswith("models/"):
        model_path = model_path[len("models/") :]
    url = f"{base}/{api_v}/models/{model_path}:generateContent"

    body = {
        "contents": [
            {"role": "user", "parts": [{"text": prompt or ""}]},
        ],
        "generationConfig": {
            "temperature": float(temperature),
        },
    }
    headers = {
        "x-goog-api-key": api_key,
        "content-type": "application/json",
    }
    data, meta = await _post_with_retries(
        url=url,
        body=body,
        headers=headers,
        model=model,
        timeout_s=timeout_s,
        max_retries=max_retries,
        log_payloads=log_payloads,
    )
    return (_gemini_text(data) or "").strip(), meta


class AIClient:
    """Text-completion collaborator configured from Settings at construction."""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.ai_enabled

    @property
    def model(self) -> str:
        s = self.settings
        return s.gemini_model if s.ai_provider == "gemini" else s.ai_model

    async def complete(self, prompt: str) -> str:
        """Send one prompt, return the free-text completion. Raises AIClientError on any failure."""
        s = self.settings
        if not self.enabled:
            raise AIClientError(f"AI disabled: no API key configured for provider {s.ai_provider!r}")

        if s.ai_provider == "gemini":
            text, _ = await gemini_generate_content(
                api_key=s.gemini_api_key,
                base_url=s.gemini_base_url,
                api_version=s.gemini_api_version,
                model=s.gemini_model,
                prompt=prompt,
                timeout_s=s.ai_timeout_s,
                max_retries=s.ai_max_retries,
                log_payloads=s.ai_log_payloads,
            )
            return text

        text, _ = await openrouter_chat_completion(
            api_key=s.ai_api_key,
            api_url=s.ai_api_url,
            model=s.ai_model,
            prompt=prompt,
            timeout_s=s.ai_timeout_s,
            max_retries=s.ai_max_retries,
            log_payloads=s.ai_log_payloads,
        )
        return text
