"""Error taxonomy for the prompt router."""

from typing import Any


class RouterError(Exception):
    """Base class for all prompt router errors."""


class ConfigurationError(RouterError):
    """Required configuration is missing or invalid at startup."""


class ProviderConfigurationError(RouterError):
    """A provider adapter cannot be constructed (missing credentials or endpoint)."""

    def __init__(self, provider_name: str, missing: list[str]):
        self.provider_name = provider_name
        self.missing = missing
        super().__init__(
            f"{provider_name} adapter is not configured: missing {', '.join(missing)}"
        )


class ResponseSchemaError(RouterError):
    """An upstream response did not match the provider's declared schema."""


class AllProvidersFailed(RouterError):
    """
    Terminal routing failure.

    Raised once per request when every candidate attempt failed. Carries the
    request identifier so the failure can be matched with the attempt logs.
    """

    def __init__(self, request_id: str, last_failure: Any = None, attempts: int = 0):
        self.request_id = request_id
        self.last_failure = last_failure
        self.attempts = attempts
        cause = getattr(last_failure, "message", None) or str(last_failure or "no candidates attempted")
        super().__init__(f"All providers failed for request {request_id}: {cause}")
