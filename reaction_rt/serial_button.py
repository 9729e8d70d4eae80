"""Serial response-button helper for button boxes that send a byte per press."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from psychopy import logging


@dataclass
class SerialButton:
    """Non-blocking reader that turns incoming serial bytes into button presses.

    Any received character counts as a press unless ``accepted`` lists the
    characters the box sends for the response button.
    """

    port: str
    baudrate: int = 9600
    timeout_s: float = 0.0
    encoding: str = "ascii"
    accepted: Optional[Iterable[str]] = None
    device: Any = None

    def __post_init__(self) -> None:
        if self.device is None:
            try:
                import serial  # type: ignore
            except ImportError as exc:  # pragma: no cover - runtime environment specific
                raise RuntimeError(
                    "pyserial is required for SerialButton support. Install it via 'pip install pyserial'."
                ) from exc
            self.device = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout_s,
            )
        self._accepted = set(self.accepted) if self.accepted is not None else None

    def close(self) -> None:
        """Close the underlying serial port."""

        try:
            self.device.close()
        except OSError as exc:
            logging.warning(f"Could not close serial button on {self.port}: {exc}")

    def poll(self) -> int:
        """Return how many presses arrived since the last poll."""

        presses = 0
        for char in self._read_all():
            if self._accepted is None or char in self._accepted:
                presses += 1
        return presses

    def _read_all(self) -> str:
        """Read and decode any bytes currently waiting on the serial buffer."""

        try:
            waiting = self.device.in_waiting
            if not waiting:
                return ""
            data = self.device.read(waiting)
        except OSError as exc:
            logging.warning(f"Serial button read failed on {self.port}: {exc}")
            return ""
        if not data:
            return ""
        return data.decode(self.encoding, errors="ignore")


__all__ = ["SerialButton"]
