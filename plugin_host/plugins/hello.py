"""
Example plugin demonstrating async initialization and service access.

Registers GET <API_PREFIX>/hello.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


async def plugin(routes, services):
    logger.info("Plugin 'hello' activated")

    if "settings" in services:
        logger.info("   - settings service is available")

    # Simulated async setup (database connection, API client, ...)
    await asyncio.sleep(0.1)

    available_services = sorted(services)
    path = f"{services['config'].api_prefix}/hello"

    @routes.get(path)
    async def hello():
        return {
            "message": "The plugin system is working!",
            "availableServices": available_services,
        }

    logger.info(f"   - Registered route: GET {path}")
