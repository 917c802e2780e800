"""Run the headless reminder client: ``python -m src.client``."""
import asyncio
import logging
import signal
from pathlib import Path

from src.client.api import ReminderApiClient
from src.client.poller import ReminderPoller
from src.client.state import NotificationClientState
from src.client.storage import JsonFileStore
from src.client.timers import AsyncioTimers
from src.core.config import settings
from src.core.logging import setup_logging


logger = logging.getLogger(__name__)


async def main() -> None:
    setup_logging()
    config = settings.client
    if not config.token:
        raise SystemExit("CLIENT__TOKEN is required")

    store = JsonFileStore(Path(config.store_path).expanduser())
    state = NotificationClientState(store, AsyncioTimers())

    async with ReminderApiClient(config.api_url, config.token) as api:
        poller = ReminderPoller(api, state)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, poller.stop)
            except NotImplementedError:
                logger.debug(f"Signal handlers are not supported here; {sig.name} ignored")
        logger.info(f"Polling {config.api_url} every {poller.interval:.0f}s")
        await poller.run()


if __name__ == "__main__":
    asyncio.run(main())
