"""
Veo video generation provider.
Talks to the Gemini REST API: one call starts a long-running operation,
later calls read the operation until it reports `done`.
"""
from typing import Any, Dict, Optional
import logging
import time

import httpx

from reelforge.providers.base import (
    GenerationProvider,
    GenerationHandle,
    GenerationStatus,
    ProviderError,
    ProviderTransientError,
)
from reelforge.config import settings
from reelforge.utils.metrics import (
    provider_requests_total,
    provider_failures_total,
    provider_latency_seconds,
)
from reelforge.utils.logging import log_provider_request, log_provider_failure

logger = logging.getLogger(__name__)

# Fields that may carry the operation handle in a start response
HANDLE_FIELDS = ("name", "operationId", "jobId")

# Fields that may carry the video location in a finished operation's response
RESULT_URL_FIELDS = ("videoUri", "uri", "outputUrl")


def extract_operation_id(data: Dict[str, Any]) -> Optional[str]:
    """First non-empty handle field of a start response."""
    for field in HANDLE_FIELDS:
        value = data.get(field)
        if value:
            return str(value)
    return None


def extract_result_url(response: Dict[str, Any]) -> Optional[str]:
    """
    Locate the video URL in a finished operation's `response` object.

    Flat fields are checked first, then the nested
    generateVideoResponse.generatedSamples[0].video.uri layout.
    """
    for field in RESULT_URL_FIELDS:
        value = response.get(field)
        if value:
            return str(value)

    samples = (response.get("generateVideoResponse") or {}).get("generatedSamples") or []
    if samples:
        video = samples[0].get("video") or {}
        if video.get("uri"):
            return str(video["uri"])
    return None


def parse_operation(data: Dict[str, Any]) -> GenerationStatus:
    """Translate an operation body into a GenerationStatus."""
    if not data.get("done"):
        return GenerationStatus(done=False)

    error = data.get("error")
    if error:
        if isinstance(error, dict):
            message = error.get("message") or "Unknown generation error"
        else:
            message = str(error)
        return GenerationStatus(done=True, error_message=message)

    result_url = extract_result_url(data.get("response") or {})
    if not result_url:
        return GenerationStatus(done=True, error_message="Generation finished without a video location")
    return GenerationStatus(done=True, result_url=result_url)


class VeoProvider(GenerationProvider):
    """
    Veo provider implementation.

    API keys are stored in environment variables and never exposed to clients.
    """

    name = "veo"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Veo provider, defaulting to values from settings."""
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.base_url = (base_url or settings.veo_base_url).rstrip("/")
        self.model = model or settings.veo_model
        self.timeout = timeout if timeout is not None else settings.provider_timeout_seconds
        self._transport = transport

    def is_configured(self) -> bool:
        """Check if Gemini API key is configured."""
        return bool(self.api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _operation_url(self, operation_id: str) -> str:
        # Handles may be stored as a full URL or as an operation name
        if operation_id.startswith("http"):
            return operation_id
        return f"{self.base_url}/{operation_id.lstrip('/')}"

    async def start_generation(self, prompt: str, duration_seconds: int) -> GenerationHandle:
        """
        Start a video generation operation.

        Args:
            prompt: Normalized prompt
            duration_seconds: Requested video length

        Returns:
            GenerationHandle with the operation name

        Raises:
            ProviderError: If not configured, on network errors, non-2xx
                responses, or a response without an operation handle
        """
        if not self.is_configured():
            raise ProviderError("GEMINI_API_KEY is not set")

        operation = "start_generation"
        start_time = time.time()
        provider_requests_total.labels(provider=self.name, operation=operation).inc()

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"durationSeconds": duration_seconds},
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self.base_url}/models/{self.model}:generateVideo",
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            self._record_failure(operation, start_time, f"request failed: {e}")
            raise ProviderError(f"Veo request failed: {e}") from e

        if not response.is_success:
            message = f"Veo API error: {response.status_code} {response.text[:500]}"
            self._record_failure(operation, start_time, message)
            raise ProviderError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            self._record_failure(operation, start_time, "invalid JSON in response")
            raise ProviderError("Veo API returned invalid JSON") from e

        operation_id = extract_operation_id(data) if isinstance(data, dict) else None
        if not operation_id:
            self._record_failure(operation, start_time, "no operation handle in response")
            raise ProviderError("Veo API response did not include an operation handle")

        self._record_success(operation, start_time, operation_id=operation_id)
        return GenerationHandle(operation_id=operation_id)

    async def poll_generation(self, operation_id: str) -> GenerationStatus:
        """
        Read an operation once.

        Raises:
            ProviderTransientError: On any failure to obtain a readable status
        """
        if not self.is_configured():
            raise ProviderTransientError("GEMINI_API_KEY is not set")

        operation = "poll_generation"
        start_time = time.time()
        provider_requests_total.labels(provider=self.name, operation=operation).inc()

        try:
            async with self._client() as client:
                response = await client.get(
                    self._operation_url(operation_id),
                    params={"key": self.api_key},
                )
        except httpx.HTTPError as e:
            self._record_failure(operation, start_time, f"request failed: {e}")
            raise ProviderTransientError(f"Veo polling failed: {e}") from e

        if not response.is_success:
            message = f"Veo polling error: {response.status_code} {response.text[:500]}"
            self._record_failure(operation, start_time, message)
            raise ProviderTransientError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            self._record_failure(operation, start_time, "invalid JSON in response")
            raise ProviderTransientError("Veo polling returned invalid JSON") from e

        if not isinstance(data, dict):
            self._record_failure(operation, start_time, "unexpected response shape")
            raise ProviderTransientError("Veo polling returned an unexpected body")

        self._record_success(operation, start_time, operation_id=operation_id)
        return parse_operation(data)

    def _record_success(self, operation: str, start_time: float, **kwargs):
        latency = time.time() - start_time
        provider_latency_seconds.labels(provider=self.name, operation=operation).observe(latency)
        log_provider_request(
            logger,
            provider=self.name,
            operation=operation,
            duration_ms=latency * 1000,
            **kwargs
        )

    def _record_failure(self, operation: str, start_time: float, error: str):
        latency = time.time() - start_time
        provider_failures_total.labels(provider=self.name, operation=operation).inc()
        provider_latency_seconds.labels(provider=self.name, operation=operation).observe(latency)
        log_provider_failure(
            logger,
            provider=self.name,
            operation=operation,
            error=error,
            duration_ms=latency * 1000,
        )
