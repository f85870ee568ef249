# app/bootstrap.py
import asyncio
import signal

from app.config import settings
from app.database import ConnectionManager
from app.utils.logger import logger


def install_interrupt_handler(
    loop: asyncio.AbstractEventLoop, stop: asyncio.Event
) -> None:
    """Turn SIGINT into ``stop`` being set on the running loop."""
    try:
        loop.add_signal_handler(signal.SIGINT, stop.set)
    except NotImplementedError:
        # Windows event loops have no add_signal_handler
        signal.signal(signal.SIGINT, lambda *_: loop.call_soon_threadsafe(stop.set))


async def main(manager: ConnectionManager = None, stop: asyncio.Event = None) -> None:
    """
    Connect, provision indexes, then hold the connection open until SIGINT.

    Exits with status 1 if the initial connection fails and 0 after the
    interrupt-driven shutdown.
    """
    manager = manager or ConnectionManager(settings)
    stop = stop or asyncio.Event()

    handle = await manager.connect()
    report = handle.index_report
    if report is not None and not report.ok:
        for result in report.failed:
            logger.warning(
                f"Missing index {result.collection}.{result.name}: {result.error}"
            )

    install_interrupt_handler(asyncio.get_running_loop(), stop)
    logger.info(f"Connected to {handle.host}/{handle.name}; press Ctrl+C to exit")

    await stop.wait()
    await manager.shutdown(0)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
