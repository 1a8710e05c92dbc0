"""Claude Messages API as the engine's text generator.

The engine depends only on the `TextGenerator` protocol. `ClaudeClient`
implements it over httpx:

- one HTTP request per `generate_text` call, never retried here
- a circuit breaker refuses calls while the API keeps failing
- timeouts, rate limits (429), auth failures (401/403) and API errors all
  surface as `TextGenerationError`
- the API key is never logged
"""

import time
from typing import Any, Protocol

import httpx

from content_clusters.core.circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from content_clusters.core.config import get_settings
from content_clusters.core.logging import claude_logger, get_logger

logger = get_logger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com"
ANTHROPIC_API_VERSION = "2023-06-01"

GROUNDING_SYSTEM_PROMPT = """You are the SEO content strategist of an online stationery store that sells personalized notebooks, planners and corporate gifts.
Only reference products and blog posts that appear in the CONTEXT block, using their exact ids.
Write in the same language as the request.
When asked for JSON, respond ONLY with valid JSON and no commentary."""


class TextGenerator(Protocol):
    """Text-generation capability consumed by the cluster engine."""

    async def generate_text(self, prompt: str, grounding_context: str) -> str: ...


class TextGenerationError(Exception):
    """The text generator could not produce output."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_id = request_id


def _api_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or "Request failed"
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return str(body["error"].get("message", body))
    return str(body)


class ClaudeClient:
    """Async Claude client implementing `TextGenerator`."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.7,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.anthropic_api_key
        self._model = model or settings.claude_model
        self._timeout = timeout or settings.claude_timeout
        self._max_tokens = max_tokens or settings.claude_max_tokens
        self._temperature = temperature
        self._available = bool(self._api_key)
        self._circuit_breaker = CircuitBreaker(
            CircuitBreakerConfig(
                failure_threshold=settings.claude_circuit_failure_threshold,
                recovery_timeout=settings.claude_circuit_recovery_timeout,
            ),
            name="claude",
        )
        self._client: httpx.AsyncClient | None = None

    @property
    def available(self) -> bool:
        return self._available

    @property
    def model(self) -> str:
        return self._model

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=ANTHROPIC_API_URL,
                headers={
                    "Content-Type": "application/json",
                    "anthropic-version": ANTHROPIC_API_VERSION,
                    "x-api-key": self._api_key or "",
                },
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate_text(self, prompt: str, grounding_context: str) -> str:
        """Generate text for `prompt`, grounded on `grounding_context`.

        Raises:
            TextGenerationError: if the call fails, is refused by the open
                circuit, or returns no text.
        """
        if not self._available:
            raise TextGenerationError("Claude not configured (missing API key)")
        if not await self._circuit_breaker.can_execute():
            claude_logger.graceful_fallback("generate_text", "Circuit breaker open")
            raise TextGenerationError("Circuit breaker is open", status_code=503)

        user_prompt = f"CONTEXT:\n{grounding_context}\n\nTASK:\n{prompt}"
        payload: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "system": GROUNDING_SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        claude_logger.api_call_start(self._model, len(user_prompt))
        claude_logger.request_body(self._model, GROUNDING_SYSTEM_PROMPT, user_prompt)

        started = time.monotonic()
        try:
            response = await self._http().post("/v1/messages", json=payload)
        except httpx.TimeoutException as e:
            claude_logger.timeout(self._model, self._timeout)
            await self._circuit_breaker.record_failure()
            raise TextGenerationError(
                f"Request timed out after {self._timeout}s"
            ) from e
        except httpx.RequestError as e:
            claude_logger.api_call_error(
                self._model,
                (time.monotonic() - started) * 1000,
                None,
                str(e),
                type(e).__name__,
            )
            await self._circuit_breaker.record_failure()
            raise TextGenerationError(f"Request failed: {e}") from e

        duration_ms = (time.monotonic() - started) * 1000
        request_id = response.headers.get("request-id")
        if response.status_code >= 400:
            await self._raise_for_status(response, duration_ms, request_id)

        try:
            data = response.json()
        except ValueError as e:
            claude_logger.api_call_error(
                self._model,
                duration_ms,
                response.status_code,
                "Response body is not valid JSON",
                type(e).__name__,
                request_id=request_id,
            )
            await self._circuit_breaker.record_failure()
            raise TextGenerationError(
                "Invalid JSON in API response",
                status_code=response.status_code,
                request_id=request_id,
            ) from e
        if not isinstance(data, dict):
            await self._circuit_breaker.record_failure()
            raise TextGenerationError(
                "Unexpected API response shape",
                status_code=response.status_code,
                request_id=request_id,
            )
        blocks = data.get("content") or []
        text = "".join(b.get("text", "") for b in blocks if b.get("type", "text") == "text")
        usage = data.get("usage", {})
        claude_logger.api_call_success(
            self._model,
            duration_ms,
            input_tokens=usage.get("input_tokens"),
            output_tokens=usage.get("output_tokens"),
            request_id=request_id,
        )
        claude_logger.response_body(self._model, text, duration_ms)
        await self._circuit_breaker.record_success()

        if not text.strip():
            raise TextGenerationError(
                "Text generation returned an empty response", request_id=request_id
            )
        return text

    async def _raise_for_status(
        self, response: httpx.Response, duration_ms: float, request_id: str | None
    ) -> None:
        status = response.status_code
        if status == 429:
            retry_after = response.headers.get("retry-after")
            claude_logger.rate_limit(
                self._model,
                retry_after=float(retry_after) if retry_after else None,
                request_id=request_id,
            )
            message = "Rate limit exceeded"
        elif status in (401, 403):
            claude_logger.auth_failure(status)
            message = f"Authentication failed ({status})"
        else:
            detail = _api_error_message(response)
            claude_logger.api_call_error(
                self._model,
                duration_ms,
                status,
                detail,
                "ServerError" if status >= 500 else "ClientError",
                request_id=request_id,
            )
            message = f"API error ({status}): {detail}"

        # Malformed requests are our bug, not an outage: the API answered
        if status == 429 or status in (401, 403) or status >= 500:
            await self._circuit_breaker.record_failure()
        else:
            await self._circuit_breaker.record_success()
        raise TextGenerationError(message, status_code=status, request_id=request_id)


claude_client: ClaudeClient | None = None


async def init_claude() -> ClaudeClient:
    global claude_client
    if claude_client is None:
        claude_client = ClaudeClient()
        logger.info(
            "Claude client initialized",
            extra={"model": claude_client.model, "available": claude_client.available},
        )
    return claude_client


async def close_claude() -> None:
    global claude_client
    if claude_client is not None:
        await claude_client.close()
        claude_client = None
        logger.info("Claude client closed")


async def get_text_generator() -> TextGenerator:
    """FastAPI dependency returning the process-wide text generator."""
    return await init_claude()
