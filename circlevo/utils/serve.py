import asyncio
from collections.abc import Awaitable, Iterable
import contextlib
import signal

from loguru import logger


async def serve_until_signal(
    *,
    stop_coros: Iterable[Awaitable] = (),
    on_stop: Iterable[asyncio.Future | None] = (),
) -> None:
    """
    Wait until SIGINT/SIGTERM or any task in on_stop finishes, then:
      1) await all stop coroutines (e.g., driver.stop())
      2) cancel & await the remaining task handles
    """
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _set() -> None:
        if not stop_event.is_set():
            logger.info("[serve] Stop requested")
            stop_event.set()

    loop.add_signal_handler(signal.SIGINT, _set)
    loop.add_signal_handler(signal.SIGTERM, _set)

    handles = [h for h in on_stop if h is not None]
    try:
        watched = [h for h in handles if not h.done()]
        if watched:
            waiter = asyncio.create_task(stop_event.wait())
            await asyncio.wait([waiter, *watched], return_when=asyncio.FIRST_COMPLETED)
            if not waiter.done():
                waiter.cancel()
        else:
            await stop_event.wait()

        stop_coros = list(stop_coros)
        if stop_coros:
            await asyncio.gather(*stop_coros, return_exceptions=True)

        pending = [h for h in handles if not h.done()]
        for h in pending:
            h.cancel()
        if pending:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.gather(*pending, return_exceptions=True)
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)
