"""Serial transport for the thermal printer.

Owns exactly one pyserial handle and the connection state. Every failure is
reported to the caller as a boolean; nothing here raises for device problems.
"""

from __future__ import annotations

import enum
import logging
import os
import sys
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

import serial
from serial.tools import list_ports

from encoder import initialize_sequence

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class PrinterError(Exception):
    """Base class for printer device errors."""


class PrinterConnectionError(PrinterError):
    """Device absent, or misconfigured path/baud rate."""


class PrinterWriteError(PrinterError):
    """I/O failure mid-transmission."""


class Transport(Protocol):
    """Capabilities the job runner needs from a printer link."""

    @property
    def state(self) -> ConnectionState: ...

    @property
    def is_connected(self) -> bool: ...

    @property
    def last_error(self) -> Optional[str]: ...

    def connect(self) -> bool: ...

    def write(self, data: bytes) -> bool: ...

    def disconnect(self) -> None: ...

    def handle_error(self, exc: BaseException) -> None: ...

    def poll(self) -> ConnectionState: ...


class SerialTransport:
    """Serial link to an ESC/POS printer (9600 8N1 by default)."""

    def __init__(
        self,
        path: str,
        baudrate: int = 9600,
        *,
        bytesize: int = 8,
        parity: str = "N",
        stopbits: int = 1,
        timeout: Optional[float] = 1.0,
        write_timeout: Optional[float] = 5.0,
        dsrdtr: bool = False,
        codepage_id: Optional[int] = None,
        serial_factory: Callable[..., Any] = serial.Serial,
    ) -> None:
        self.path = path
        self.baudrate = baudrate
        self._settings = {
            "bytesize": bytesize,
            "parity": parity,
            "stopbits": stopbits,
            "timeout": timeout,
            "write_timeout": write_timeout,
            "dsrdtr": dsrdtr,
        }
        self._codepage_id = codepage_id
        self._serial_factory = serial_factory
        self._handle: Any = None
        self._state = ConnectionState.DISCONNECTED
        self._last_error: Optional[str] = None
        # Guards the handle and state; write + drain happen under it as one unit
        self._lock = threading.RLock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def _set_state(self, state: ConnectionState, reason: Optional[str] = None) -> None:
        if state is not self._state:
            logger.info("Printer %s: %s -> %s%s", self.path, self._state.value, state.value,
                        f" ({reason})" if reason else "")
        self._state = state
        if state is ConnectionState.FAILED:
            self._last_error = reason
        elif state is ConnectionState.CONNECTED:
            self._last_error = None

    def _close_handle(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            handle.close()
        except (serial.SerialException, OSError) as e:
            logger.debug("Ignoring error while closing %s: %s", self.path, e)

    def _open(self) -> None:
        try:
            handle = self._serial_factory(port=self.path, baudrate=self.baudrate, **self._settings)
        except (serial.SerialException, OSError, ValueError) as e:
            raise PrinterConnectionError(f"cannot open {self.path} at {self.baudrate} baud: {e}") from e
        self._handle = handle
        if self._codepage_id is not None:
            self._write_and_drain(initialize_sequence(self._codepage_id))

    def _write_and_drain(self, data: bytes) -> None:
        try:
            self._handle.write(data)
            # Blocks until the OS buffer is flushed to the device
            self._handle.flush()
        except serial.SerialTimeoutException as e:
            raise PrinterWriteError(f"write timed out on {self.path}") from e
        except (serial.SerialException, OSError) as e:
            raise PrinterWriteError(f"write failed on {self.path}: {e}") from e

    def connect(self) -> bool:
        """Open the device once. Returns False (state FAILED) on any error."""
        with self._lock:
            if self.is_connected:
                return True
            self._set_state(ConnectionState.CONNECTING)
            try:
                self._open()
            except PrinterError as e:
                self._close_handle()
                self._set_state(ConnectionState.FAILED, str(e))
                logger.warning("Printer connection failed: %s", e)
                return False
            self._set_state(ConnectionState.CONNECTED)
            return True

    def write(self, data: bytes) -> bool:
        """Write and drain ``data``; True only once the device buffer is flushed."""
        with self._lock:
            if not self.is_connected:
                logger.debug("Write refused, printer %s is %s", self.path, self._state.value)
                return False
            try:
                self._write_and_drain(data)
            except PrinterWriteError as e:
                self.handle_error(e)
                return False
            return True

    def disconnect(self) -> None:
        with self._lock:
            self._close_handle()
            self._set_state(ConnectionState.DISCONNECTED)

    def handle_error(self, exc: BaseException) -> None:
        """Reconcile an asynchronous device error: drop the handle, mark FAILED."""
        with self._lock:
            logger.error("Printer %s error: %s", self.path, exc)
            self._close_handle()
            self._set_state(ConnectionState.FAILED, str(exc))

    def poll(self) -> ConnectionState:
        """Detect a dead handle (closed port, unplugged adapter) between calls."""
        with self._lock:
            if not self.is_connected:
                return self._state
            if not getattr(self._handle, "is_open", False):
                self.handle_error(PrinterConnectionError(f"{self.path} closed unexpectedly"))
            elif self.path.startswith("/dev/") and not os.path.exists(self.path):
                self.handle_error(PrinterConnectionError(f"{self.path} disappeared"))
            return self._state


class NullTransport:
    """Transport used in development mode: never connects, so jobs are simulated."""

    path = "<simulation>"

    def __init__(self) -> None:
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return False

    @property
    def last_error(self) -> Optional[str]:
        return "simulation mode" if self._state is ConnectionState.FAILED else None

    def connect(self) -> bool:
        self._state = ConnectionState.FAILED
        return False

    def write(self, data: bytes) -> bool:
        return False

    def disconnect(self) -> None:
        self._state = ConnectionState.DISCONNECTED

    def handle_error(self, exc: BaseException) -> None:
        self._state = ConnectionState.FAILED

    def poll(self) -> ConnectionState:
        return self._state


# Usual device names when nothing can be discovered
COMMON_PORTS: Dict[str, List[str]] = {
    "windows": ["COM1", "COM2", "COM3", "COM4", "COM5"],
    "linux": ["/dev/ttyUSB0", "/dev/ttyUSB1", "/dev/ttyS0", "/dev/ttyS1"],
    "mac": ["/dev/cu.usbserial", "/dev/cu.usbmodem", "/dev/tty.usbserial"],
}


def detect_os(platform: Optional[str] = None) -> str:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "windows"
    if platform == "darwin":
        return "mac"
    return "linux"


def suggested_ports(platform: Optional[str] = None) -> List[str]:
    """Serial ports found on this machine, or the usual names for the OS when none are."""
    try:
        found = sorted(port.device for port in list_ports.comports())
    except OSError as e:
        logger.warning("Serial port discovery failed: %s", e)
        found = []
    return found or list(COMMON_PORTS[detect_os(platform)])
