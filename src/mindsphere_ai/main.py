"""Operator entry point: initialize the AI layer and report provider status."""

import asyncio

from mindsphere_ai.config import get_settings
from mindsphere_ai.logging import get_logger, setup_logging
from mindsphere_ai.orchestration.service import UnifiedAIService


async def main() -> None:
    """Initialize every provider, run one health sweep and log the result."""
    setup_logging()
    log = get_logger("mindsphere_ai.main")

    settings = get_settings()
    log.info(
        "starting_mindsphere_ai",
        environment=settings.environment,
        use_stub_adapter=settings.use_stub_adapter,
    )

    service = UnifiedAIService(settings)
    try:
        await service.initialize()
        await service.health_monitor.check_all()
        for provider in await service.list_providers():
            log.info("provider_status", **provider)
        log.info("provider_health", providers=await service.provider_health())
    except KeyboardInterrupt:
        log.info("shutdown_requested")
    finally:
        await service.close()
        log.info("mindsphere_ai_stopped")


def run() -> None:
    """Run the status check."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
