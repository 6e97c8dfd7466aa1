"""
Provider Adapters for text generation.

Each adapter wraps one external endpoint behind a uniform ``invoke`` call:
- OpenRouter: chat completions (medium tier)
- HuggingFace: Inference API text generation (small tier)
- Puter: hosted AI scripts (high tier)

``invoke`` never raises for expected upstream failures. It returns either a
ProviderSuccess or a ProviderFailure classified as RETRYABLE (429, 5xx,
timeouts, connection errors) or FATAL (other 4xx, malformed responses).
"""

import asyncio
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Union

import httpx
import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from prompt_router.errors import ProviderConfigurationError, ResponseSchemaError
from prompt_router.models.routing import ProviderRequest

logger = structlog.get_logger(__name__)


class FailureKind(str, Enum):
    """How the router should treat a failed attempt."""

    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass(frozen=True)
class ProviderSuccess:
    """Generated text from one provider attempt."""

    text: str
    provider_name: str
    model_id: str
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ProviderFailure:
    """A classified failure from one provider attempt."""

    kind: FailureKind
    provider_name: str
    model_id: str
    message: str
    status_code: Optional[int] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return False

    @property
    def retryable(self) -> bool:
        return self.kind == FailureKind.RETRYABLE


ProviderOutcome = Union[ProviderSuccess, ProviderFailure]


def is_retryable_status(status_code: int) -> bool:
    """Rate limiting and upstream server errors are worth another candidate."""
    return status_code == 429 or status_code >= 500


class StickyModelIndex:
    """
    Last successful position in an adapter's model catalog.

    Only a hint for where to start when a request names no model. The router
    always names a candidate, so it only writes the index; direct adapter
    callers that omit ``model_id`` are the ones that read it. Writes happen
    after a confirmed success and are guarded by a lock so concurrent routing
    calls on worker threads do not race.
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError("sticky index needs a non-empty model catalog")
        self._size = size
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def record(self, index: int) -> None:
        """Remember a successful catalog position."""
        if not 0 <= index < self._size:
            raise IndexError(f"sticky index {index} out of range 0..{self._size - 1}")
        with self._lock:
            self._value = index

    def reset(self) -> None:
        """Forget the last success and start from the top of the catalog."""
        with self._lock:
            self._value = 0


class ProviderAdapter(ABC):
    """
    Base class for text-generation provider adapters.

    Subclasses describe their upstream protocol: URL, payload and response
    schema. Transport, timeouts and failure classification live here.
    """

    name: str = "provider"
    default_timeout: float = 30.0
    default_max_tokens: int = 1000

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        timeout: Optional[float] = None,
        models: Optional[Sequence[str]] = None,
        sticky: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize adapter.

        Args:
            api_key: Provider credential (required)
            endpoint: Provider URL (required)
            timeout: Per-call timeout in seconds
            models: Model catalog used when a request names no model
            sticky: Keep a sticky index over the catalog
            transport: Optional httpx transport (used by tests)

        Raises:
            ProviderConfigurationError: If the credential or endpoint is missing
        """
        missing = [field for field, value in (("api_key", api_key), ("endpoint", endpoint)) if not value]
        if missing:
            raise ProviderConfigurationError(self.name, missing)

        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout = timeout or self.default_timeout
        self.models = list(models or [])
        self.sticky: Optional[StickyModelIndex] = (
            StickyModelIndex(len(self.models)) if sticky and self.models else None
        )
        self._transport = transport

        self.total_calls = 0
        self.total_failures = 0
        self.total_latency_ms = 0.0

        logger.info(
            "provider_adapter_initialized",
            provider=self.name,
            endpoint=endpoint,
            timeout=self.timeout,
            models=len(self.models),
            sticky=self.sticky is not None,
        )

    def resolve_model(self, request: ProviderRequest) -> Optional[str]:
        """Pick the model for a request: explicit id, then sticky position, then catalog head."""
        if request.model_id:
            return request.model_id
        if self.sticky is not None:
            return self.models[self.sticky.value]
        return self.models[0] if self.models else None

    def record_success(self, model_id: str) -> None:
        """Update the sticky index after a confirmed success; no-op without one."""
        if self.sticky is not None and model_id in self.models:
            self.sticky.record(self.models.index(model_id))

    def reset_sticky(self) -> None:
        if self.sticky is not None:
            self.sticky.reset()

    async def invoke(self, request: ProviderRequest) -> ProviderOutcome:
        """
        Call the upstream once.

        Args:
            request: Generic provider request

        Returns:
            ProviderSuccess or a classified ProviderFailure
        """
        self.total_calls += 1
        model = self.resolve_model(request)
        if not model:
            return self._failure(FailureKind.FATAL, "", "no model requested and no catalog configured")

        start_time = time.monotonic()

        try:
            data = await asyncio.wait_for(self._post(model, request), timeout=self.timeout)
            text = self.parse_response(data)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._failure(
                FailureKind.RETRYABLE, model, f"timed out after {self.timeout}s", start=start_time
            )
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            kind = FailureKind.RETRYABLE if is_retryable_status(status) else FailureKind.FATAL
            return self._failure(
                kind,
                model,
                f"HTTP {status}: {e.response.reason_phrase}",
                status_code=status,
                start=start_time,
            )
        except httpx.TransportError as e:
            return self._failure(FailureKind.RETRYABLE, model, f"connection error: {e}", start=start_time)
        except ResponseSchemaError as e:
            return self._failure(FailureKind.FATAL, model, str(e), start=start_time)
        except ValueError as e:
            # Body was not JSON
            return self._failure(FailureKind.FATAL, model, f"invalid JSON response: {e}", start=start_time)

        latency_ms = (time.monotonic() - start_time) * 1000
        self.total_latency_ms += latency_ms

        logger.debug(
            "provider_call_completed",
            provider=self.name,
            model=model,
            latency_ms=latency_ms,
            chars=len(text),
        )

        return ProviderSuccess(
            text=text,
            provider_name=self.name,
            model_id=model,
            latency_ms=latency_ms,
        )

    async def _post(self, model: str, request: ProviderRequest) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.url_for(model),
                json=self.build_payload(model, request),
                headers=self.headers(),
            )
            response.raise_for_status()
            return response.json()

    def url_for(self, model: str) -> str:
        return self.endpoint

    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def max_tokens(self, request: ProviderRequest) -> int:
        return request.params.max_tokens or self.default_max_tokens

    @abstractmethod
    def build_payload(self, model: str, request: ProviderRequest) -> dict[str, Any]:
        """Translate a generic request into the provider's JSON body."""

    @abstractmethod
    def parse_response(self, data: Any) -> str:
        """
        Extract generated text from the provider's JSON body.

        Raises:
            ResponseSchemaError: If the body does not match the declared schema
        """

    def _failure(
        self,
        kind: FailureKind,
        model: str,
        message: str,
        status_code: Optional[int] = None,
        start: Optional[float] = None,
    ) -> ProviderFailure:
        latency_ms = (time.monotonic() - start) * 1000 if start is not None else 0.0
        self.total_failures += 1
        self.total_latency_ms += latency_ms

        logger.warning(
            "provider_call_failed",
            provider=self.name,
            model=model,
            kind=kind.value,
            status_code=status_code,
            error=message,
            latency_ms=latency_ms,
        )

        return ProviderFailure(
            kind=kind,
            provider_name=self.name,
            model_id=model,
            message=message,
            status_code=status_code,
            latency_ms=latency_ms,
        )

    def get_stats(self) -> dict[str, Any]:
        """Get adapter statistics."""
        avg_latency = self.total_latency_ms / self.total_calls if self.total_calls > 0 else 0

        return {
            "provider": self.name,
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
            "total_latency_ms": self.total_latency_ms,
            "avg_latency_ms": avg_latency,
            "sticky_index": self.sticky.value if self.sticky is not None else None,
        }


def _validate(schema: Any, data: Any, provider: str) -> Any:
    try:
        return schema.validate_python(data) if isinstance(schema, TypeAdapter) else schema.model_validate(data)
    except ValidationError as e:
        raise ResponseSchemaError(
            f"{provider} response does not match schema: {e.error_count()} error(s)"
        ) from e


def _require_text(text: str, provider: str) -> str:
    text = text.strip()
    if not text:
        raise ResponseSchemaError(f"{provider} returned an empty completion")
    return text


# --- OpenRouter ---


class _ChatMessage(BaseModel):
    content: str


class _ChatChoice(BaseModel):
    message: _ChatMessage


class OpenRouterCompletion(BaseModel):
    """Subset of the OpenAI-compatible chat completion body we rely on."""

    choices: list[_ChatChoice] = Field(min_length=1)


class OpenRouterAdapter(ProviderAdapter):
    """
    OpenRouter chat completions adapter.

    Keeps a sticky index over its model catalog so requests without an
    explicit model start at the last model that answered.
    """

    name = "OpenRouter"
    default_timeout = 30.0
    default_max_tokens = 2000

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://openrouter.ai/api/v1/chat/completions",
        timeout: Optional[float] = None,
        models: Optional[Sequence[str]] = None,
        site_url: str = "http://localhost:5000",
        app_title: str = "Flamingo AI Chat",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            api_key=api_key,
            endpoint=endpoint,
            timeout=timeout,
            models=models,
            sticky=True,
            transport=transport,
        )
        self.site_url = site_url
        self.app_title = app_title

    def headers(self) -> dict[str, str]:
        return {
            **super().headers(),
            "HTTP-Referer": self.site_url,
            "X-Title": self.app_title,
        }

    def build_payload(self, model: str, request: ProviderRequest) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": request.prompt}],
            "temperature": request.params.temperature,
            "max_tokens": self.max_tokens(request),
        }

    def parse_response(self, data: Any) -> str:
        completion = _validate(OpenRouterCompletion, data, self.name)
        return _require_text(completion.choices[0].message.content, self.name)


# --- HuggingFace ---


class HuggingFaceGeneration(BaseModel):
    generated_text: str


_HF_RESPONSE = TypeAdapter(Union[list[HuggingFaceGeneration], HuggingFaceGeneration])


class HuggingFaceAdapter(ProviderAdapter):
    """HuggingFace Inference API text-generation adapter."""

    name = "HuggingFace"
    default_timeout = 45.0
    default_max_tokens = 1000

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://api-inference.huggingface.co/models",
        timeout: Optional[float] = None,
        models: Optional[Sequence[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            api_key=api_key,
            endpoint=endpoint,
            timeout=timeout,
            models=models,
            transport=transport,
        )

    def url_for(self, model: str) -> str:
        return f"{self.endpoint.rstrip('/')}/{model}"

    def build_payload(self, model: str, request: ProviderRequest) -> dict[str, Any]:
        return {
            "inputs": request.prompt,
            "parameters": {
                "temperature": request.params.temperature,
                "max_new_tokens": self.max_tokens(request),
                "return_full_text": False,
            },
        }

    def parse_response(self, data: Any) -> str:
        parsed = _validate(_HF_RESPONSE, data, self.name)
        if isinstance(parsed, list):
            if not parsed:
                raise ResponseSchemaError(f"{self.name} returned no generations")
            parsed = parsed[0]
        return _require_text(parsed.generated_text, self.name)


# --- Puter ---


class PuterScriptResult(BaseModel):
    result: str
    model: Optional[str] = None


class PuterAdapter(ProviderAdapter):
    """Puter hosted AI script adapter for heavy prompts."""

    name = "Puter"
    default_timeout = 60.0
    default_max_tokens = 1500

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://api.puter.com/v1/scripts",
        timeout: Optional[float] = None,
        models: Optional[Sequence[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            api_key=api_key,
            endpoint=endpoint,
            timeout=timeout,
            models=models,
            transport=transport,
        )

    def build_payload(self, model: str, request: ProviderRequest) -> dict[str, Any]:
        return {
            "prompt": request.prompt,
            "task_type": request.task,
            "model": model,
            "parameters": {
                "temperature": request.params.temperature,
                "max_tokens": self.max_tokens(request),
            },
        }

    def parse_response(self, data: Any) -> str:
        result = _validate(PuterScriptResult, data, self.name)
        return _require_text(result.result, self.name)
