# tradequest/runner.py
import asyncio
from typing import Callable, Optional
from .session import GameSession
from .utils import get_logger

log = get_logger(__name__)

async def _every(seconds: float, fn: Callable[[], object], stop: asyncio.Event) -> None:
    while not stop.is_set():
        try:
            await asyncio.wait_for(stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            fn()

async def run_session(session: GameSession, stop: Optional[asyncio.Event] = None, max_ticks: Optional[int] = None,
                      on_tick: Optional[Callable[[GameSession], None]] = None) -> GameSession:
    """
    Drives the price tick, event check and book refresh on one event loop at their own
    intervals. Each callback runs to completion before the loop switches, so orders
    submitted from other coroutines always see whole ticks. Set ``stop`` (or reach
    ``max_ticks``) to halt.
    """
    stop = stop or asyncio.Event()
    cfg = session.config
    start = session.market.tick

    def price_tick():
        session.tick()
        if on_tick is not None: on_tick(session)
        if max_ticks is not None and session.market.tick - start >= max_ticks: stop.set()

    tasks = [
        asyncio.create_task(_every(cfg.tick_ms / 1000.0, price_tick, stop)),
        asyncio.create_task(_every(cfg.tick_ms * cfg.event_every_ticks / 1000.0, session.check_events, stop)),
        asyncio.create_task(_every(cfg.book_refresh_ms / 1000.0, session.refresh_books, stop)),
    ]
    log.info("session started: tick %dms, events every %d ticks, book every %dms",
             cfg.tick_ms, cfg.event_every_ticks, cfg.book_refresh_ms)
    try:
        await asyncio.gather(*tasks)
    finally:
        for t in tasks: t.cancel()
        log.info("session stopped at tick %d", session.market.tick)
    return session
