"""Thermal printer notification service: scheduler + print job runner."""

import argparse
import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

import config
from printer import JobStatus, PrintJobRunner, print_test_page
from scheduler import NotificationScheduler, NotifiedLedger
from stores import SqliteStore
from transport import NullTransport, SerialTransport, Transport, suggested_ports

logger = logging.getLogger(__name__)


def configure_logging(log_dir: str = config.LOG_DIR, level: str = config.LOG_LEVEL) -> None:
    """Rotating file log plus console output."""
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        str(Path(log_dir) / "app.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    logging.basicConfig(
        handlers=[file_handler, logging.StreamHandler()],
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_transport(mock: bool) -> Transport:
    if mock:
        logger.info("Development mode: using simulated printer")
        return NullTransport()
    return SerialTransport(
        config.SERIAL_PORT,
        config.BAUDRATE,
        bytesize=config.SERIAL_BYTESIZE,
        parity=config.SERIAL_PARITY,
        stopbits=config.SERIAL_STOPBITS,
        timeout=config.SERIAL_TIMEOUT,
        write_timeout=config.PRINT_TIMEOUT_SECONDS,
        dsrdtr=config.SERIAL_DSRDTR,
        codepage_id=config.CODEPAGE_ID,
    )


def build_scheduler(runner: PrintJobRunner, database: str, dedupe: bool) -> NotificationScheduler:
    store = SqliteStore(database)
    return NotificationScheduler(
        store,
        store,
        runner,
        reminders=store,
        ledger=NotifiedLedger() if dedupe else None,
    )


def log_printer_setup() -> List[str]:
    """Log the configured destination and the serial ports worth trying."""
    logger.info("Printer configured on %s at %d baud", config.SERIAL_PORT, config.BAUDRATE)
    ports = suggested_ports()
    logger.info("Suggested serial ports: %s", ", ".join(ports))
    if config.SERIAL_PORT not in ports:
        logger.warning("Configured port %s was not found among the serial ports", config.SERIAL_PORT)
    return ports


async def watch_transport(transport: Transport, interval_seconds: float) -> None:
    """Poll the transport so a dead device is noticed between print jobs."""
    while True:
        await asyncio.sleep(interval_seconds)
        await asyncio.get_running_loop().run_in_executor(None, transport.poll)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Household task thermal printer service")
    parser.add_argument("--database", default=config.DATABASE_PATH, help="Household SQLite database")
    parser.add_argument("--mock", action="store_true", help="Simulate the printer (development mode)")
    parser.add_argument("--once", action="store_true", help="Run a single upcoming-task scan and exit")
    parser.add_argument("--test-page", action="store_true", help="Print a test page and exit")
    parser.add_argument(
        "--list-ports", action="store_true", help="List serial ports that may hold the printer and exit"
    )
    parser.add_argument(
        "--dedupe",
        action="store_true",
        default=config.DEDUPE_NOTIFICATIONS,
        help="Print each task at most once per day",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.list_ports:
        for port in log_printer_setup():
            print(port)
        return 0

    mock = args.mock or config.MOCK_PRINTER
    transport = build_transport(mock)
    runner = PrintJobRunner(transport, simulate=mock)
    runner.start()

    try:
        if args.test_page:
            if not mock:
                log_printer_setup()
            outcome = await print_test_page(runner)
            logger.info("Test page %s%s", outcome.status.value, f": {outcome.reason}" if outcome.reason else "")
            return 1 if outcome.status is JobStatus.FAILED else 0

        scheduler = build_scheduler(runner, args.database, args.dedupe)
        if args.once:
            outcomes = await scheduler.run_tick()
            logger.info("Scan finished: %d print jobs", len(outcomes))
            return 0

        watchdog = asyncio.create_task(watch_transport(transport, config.TRANSPORT_POLL_SECONDS))
        try:
            await scheduler.run_forever()
        finally:
            watchdog.cancel()
        return 0
    finally:
        await runner.stop()
        transport.disconnect()


def run() -> None:
    configure_logging()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
