"""
Standalone relay server for local testing without a sandbox.
"""
import asyncio
import sys
import os

# Add project to path
sys.path.insert(0, os.path.dirname(__file__))

from dotenv import load_dotenv
load_dotenv()

from aiohttp import web
from backend.agent_server.api import create_app
from backend.agent_server.config import ServerConfig
from backend.utils.logger import configure_logging, get_logger


async def main():
    config = ServerConfig.from_env()
    config.host = os.environ.get("AGENT_SERVER_HOST", "localhost")
    config.validate()

    configure_logging(log_level=config.log_level, log_to_file=False, force=True)
    logger = get_logger("standalone")

    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.port)

    await site.start()
    logger.info(
        "Standalone agent server started",
        url=f"http://{config.host}:{config.port}",
        workspace=config.workspace_dir,
    )

    try:
        # Keep running
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
