"""
Ollama Cloud client for LLM text generation.

Handles bearer authentication, error classification, and retries with
exponential backoff. Auth failures and unknown models are not retried.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from draftdesk.config import AppConfig, config as default_config
from draftdesk.errors import ProviderError
from draftdesk.utils.logging import provider_logger as logger


NON_RETRYABLE_CODES = {"AUTH_ERROR", "MODEL_NOT_FOUND"}


@dataclass
class GenerateResponse:
    """Parsed /api/generate response."""
    model: str
    response: str
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_duration_ms: Optional[float] = None

    @classmethod
    def from_json(cls, data: Any) -> "GenerateResponse":
        if not isinstance(data, dict):
            raise ProviderError(
                f"Generate response is not a JSON object: {type(data).__name__}",
                code="UNKNOWN"
            )
        total_duration = data.get("total_duration")
        return cls(
            model=data.get("model", ""),
            response=data.get("response") or "",
            prompt_tokens=data.get("prompt_eval_count"),
            completion_tokens=data.get("eval_count"),
            total_duration_ms=total_duration / 1_000_000 if total_duration else None
        )


class OllamaCloudClient:
    """
    Thin async client for the Ollama-compatible HTTP API.

    Usage:
        client = OllamaCloudClient.from_config(config)
        result = await client.generate(prompt, system=SYSTEM_PROMPT)
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.ollama.com",
        model: str = "deepseek-v3.2",
        timeout: float = 60.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        app_config: Optional[AppConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "OllamaCloudClient":
        cfg = app_config or default_config
        return cls(
            api_key=cfg.OLLAMA_CLOUD_API_KEY,
            base_url=cfg.OLLAMA_CLOUD_URL,
            model=cfg.OLLAMA_CLOUD_MODEL,
            timeout=cfg.PROVIDER_TIMEOUT_SECONDS,
            max_retries=cfg.PROVIDER_MAX_RETRIES,
            retry_delay=cfg.PROVIDER_RETRY_DELAY_SECONDS,
            transport=transport
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=self._transport,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            }
        )

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """Single HTTP exchange. Raises ProviderError with a classified code."""
        if not self.is_configured:
            raise ProviderError("OLLAMA_CLOUD_API_KEY not configured", code="AUTH_ERROR")

        try:
            async with self._client(timeout or self.timeout) as client:
                response = await client.request(method, path, json=json_body)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request timed out: {e}", code="TIMEOUT") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Network error: {e}", code="NETWORK_ERROR") from e

        if response.status_code in (401, 403):
            raise ProviderError("Invalid or expired API key", code="AUTH_ERROR")

        if response.status_code == 429:
            try:
                retry_after = int(response.headers.get("Retry-After", "60"))
            except ValueError:
                retry_after = 60
            raise ProviderError("Rate limit exceeded", code="RATE_LIMITED", retry_after=retry_after)

        if response.status_code == 404:
            raise ProviderError(f"Model {self.model} not found", code="MODEL_NOT_FOUND")

        if not response.is_success:
            raise ProviderError(
                f"API error: {response.status_code} {response.reason_phrase}",
                code="UNKNOWN"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Provider returned invalid JSON: {e}", code="UNKNOWN") from e

        if not isinstance(data, dict):
            raise ProviderError(
                f"Provider returned {type(data).__name__} instead of a JSON object",
                code="UNKNOWN"
            )
        return data

    async def list_models(self, timeout: Optional[float] = None) -> List[Dict[str, Any]]:
        """List models available to this credential (no retries)."""
        data = await self._request("GET", "/api/tags", timeout=timeout)
        models = data.get("models")
        if not isinstance(models, list):
            raise ProviderError("Model list response has no 'models' array", code="UNKNOWN")
        return models

    async def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 2048
    ) -> GenerateResponse:
        """
        Generate text with automatic retry.

        Raises:
            ProviderError: after the last failed attempt, or immediately
                for non-retryable errors.
        """
        body: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "max_tokens": max_tokens,
            },
        }
        if system:
            body["system"] = system

        last_error: Optional[ProviderError] = None
        for attempt in range(1, self.max_retries + 1):
            start_time = time.time()
            try:
                data = await self._request("POST", "/api/generate", json_body=body)
                result = GenerateResponse.from_json(data)
                logger.info(
                    "Generation completed",
                    model=result.model,
                    prompt_tokens=result.prompt_tokens,
                    completion_tokens=result.completion_tokens,
                    elapsed=round(time.time() - start_time, 2)
                )
                return result
            except ProviderError as e:
                last_error = e
                if e.code in NON_RETRYABLE_CODES:
                    logger.error(f"Non-retryable provider error: {e.message}", code=e.code)
                    raise

                if attempt < self.max_retries:
                    delay = self.retry_delay * (2 ** (attempt - 1))
                    logger.warning(
                        f"Retrying after {delay}s (attempt {attempt}/{self.max_retries})",
                        code=e.code
                    )
                    await asyncio.sleep(delay)

        logger.error("All provider attempts exhausted", attempts=self.max_retries)
        raise last_error
