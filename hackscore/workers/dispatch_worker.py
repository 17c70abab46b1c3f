"""
Standalone dispatch loop.

Run with ``python -m hackscore.workers.dispatch_worker``. Keeps calling the
dispatcher while there is work and sleeps the poll interval otherwise.
"""

import asyncio
import signal
from typing import Optional

from dotenv import load_dotenv

from hackscore.core.config import settings
from hackscore.core.supabase_client import create_supabase_client
from hackscore.services.dispatch import Dispatcher, DispatchOutcome
from hackscore.services.factory import ServiceFactory
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


async def run_forever(dispatcher: Dispatcher, interval: float, stop_event: asyncio.Event, max_cycles: Optional[int] = None) -> int:
    """
    Drive ``dispatch_once`` until ``stop_event`` is set. Returns the number of
    jobs handed off.
    """
    dispatched = 0
    cycles = 0
    while not stop_event.is_set():
        if max_cycles is not None and cycles >= max_cycles:
            break
        cycles += 1

        result = await dispatcher.dispatch_once()
        if result.outcome is DispatchOutcome.DISPATCHED:
            dispatched += 1
            continue
        if not result.ok:
            logger.warning(f"Dispatch cycle ended with {result.outcome.value}: {result.error}")

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
    return dispatched


async def main():
    load_dotenv()
    supabase = await create_supabase_client()
    services = ServiceFactory.create(supabase, settings)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops.
            pass

    logger.info(f"Dispatch worker polling {settings.QUEUE_NAME} every {settings.DISPATCH_POLL_INTERVAL_SECONDS}s")
    try:
        dispatched = await run_forever(services.dispatcher, settings.DISPATCH_POLL_INTERVAL_SECONDS, stop_event)
        logger.info(f"Dispatch worker stopping after {dispatched} hand-off(s)")
    finally:
        await services.shutdown(settings.HANDOFF_DRAIN_TIMEOUT_SECONDS)


if __name__ == "__main__":
    asyncio.run(main())
