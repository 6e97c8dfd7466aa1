"""Prompt orchestration router: tiered provider selection with model fallback."""

# Configuration
from prompt_router.config.settings import (
    Settings,
    get_settings,
    reload_settings,
    validate_environment,
)

# Errors
from prompt_router.errors import (
    AllProvidersFailed,
    ConfigurationError,
    ProviderConfigurationError,
    ResponseSchemaError,
    RouterError,
)

# Logging
from prompt_router.logging.logger import bind_request, configure_logging, get_logger

# Models
from prompt_router.models.routing import (
    ComplexityTier,
    GenerationParams,
    Prompt,
    ProviderRequest,
    RouteOptions,
    RouteRequest,
    RouteResult,
)

# Routing
from prompt_router.inference import (
    PromptClassifier,
    PromptEnhancer,
    PromptRouter,
    create_router,
)

from prompt_router.communication.concurrency import (
    ExecutorPool,
    cleanup_executors,
    get_executor_pool,
    run_io_bound,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "reload_settings",
    "validate_environment",
    # Errors
    "RouterError",
    "ConfigurationError",
    "ProviderConfigurationError",
    "ResponseSchemaError",
    "AllProvidersFailed",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_request",
    # Models
    "ComplexityTier",
    "GenerationParams",
    "Prompt",
    "ProviderRequest",
    "RouteOptions",
    "RouteRequest",
    "RouteResult",
    # Routing
    "PromptClassifier",
    "PromptEnhancer",
    "PromptRouter",
    "create_router",
    # Concurrency
    "ExecutorPool",
    "get_executor_pool",
    "run_io_bound",
    "cleanup_executors",
]
