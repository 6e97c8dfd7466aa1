"""Prompt Router - route one prompt from the command line."""

import argparse
import asyncio
import sys

from prompt_router import (
    AllProvidersFailed,
    ConfigurationError,
    RouteOptions,
    cleanup_executors,
    configure_logging,
    create_router,
    get_logger,
    get_settings,
    validate_environment,
)
from prompt_router.communication.concurrency import install_uvloop

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Route a prompt to a text-generation provider.")
    parser.add_argument("prompt", help="Prompt text (append '!no enhance' to skip enhancement)")
    parser.add_argument("--user-id", default=None, help="Caller identifier for log correlation")
    parser.add_argument("--pre-enhanced", default=None, help="Already-enhanced prompt to send instead")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Main entry point for the prompt router."""
    args = parse_args(argv)
    configure_logging()

    try:
        settings = validate_environment(get_settings())
    except ConfigurationError as e:
        logger.error("startup_failed", error=str(e))
        return 2

    router = create_router(settings)
    try:
        result = await router.route(
            args.prompt,
            RouteOptions(user_id=args.user_id, pre_enhanced_prompt=args.pre_enhanced),
        )
    except AllProvidersFailed as e:
        logger.error("route_failed", request_id=e.request_id, error=str(e))
        return 1
    finally:
        await cleanup_executors()

    print(result.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    if sys.platform != "win32":  # uvloop doesn't support Windows
        install_uvloop()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("shutdown_requested")
        sys.exit(0)
