# APC UPS Battery Status - UPS Monitor Library
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides the UPSMonitor class: a background poller that periodically
# queries the apcupsd Network Information Server, derives battery status
# flags and keeps the latest status for synchronous readers.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""apcups_battery.monitor

UPSMonitor: a background poller that keeps the most recent battery status
derived from apcupsd and serves it to consumers without blocking.

High-level responsibilities
- Every `poll_interval` seconds open a transient connection to the daemon,
  request one status snapshot and close the connection again.
- Derive the battery status (level, charging, low battery) from the
  snapshot and the previous status, and replace the current status with it.
- Expose the three characteristic-style getters of `StatusProvider`.

Primary types / functions
- class StatusProvider
    - get_battery_level / get_charging_state / get_low_battery_state
- class UPSMonitor(StatusProvider)
    - start/stop: manage the background poll thread
    - poll_once: one connect -> query -> derive -> disconnect cycle
    - get_connection_status: connection flag, last error and update time

Design notes and thread safety
- The poll thread is the only writer of `_current_status`. The status is a
  frozen dataclass replaced by a single assignment, so readers never see a
  half-updated status and no lock is needed for reads.
- Every failure is terminal to its own cycle only. The fixed interval is
  the retry policy: there is no backoff.
"""
from __future__ import annotations

import abc
import math
import threading
import time
import logging
from typing import Optional, Dict, Any

from .client import NISClient
from .status import DerivedStatus, INITIAL_STATUS, derive_status

log = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3551
DEFAULT_POLL_INTERVAL = 5.0


def next_deadline(deadline: float, now: float, interval: float) -> float:
    """Return the next tick on the fixed grid `deadline + k * interval` after `now`.

    Ticks missed while a cycle overran are skipped rather than run back to back.
    """
    deadline += interval
    if deadline <= now:
        deadline += (math.floor((now - deadline) / interval) + 1) * interval
    return deadline


class StatusProvider(abc.ABC):
    """Synchronous read access to the latest battery status."""

    @abc.abstractmethod
    def get_status(self) -> DerivedStatus:
        """Return the latest derived status."""

    def get_battery_level(self) -> int:
        log.debug("Triggered GET BatteryLevel")
        return int(math.floor(self.get_status().battery_level))

    def get_charging_state(self) -> int:
        log.debug("Triggered GET ChargingState")
        return 1 if self.get_status().is_charging else 0

    def get_low_battery_state(self) -> int:
        log.debug("Triggered GET StatusLowBattery")
        return 1 if self.get_status().is_low_battery else 0


class UPSMonitor(StatusProvider):
    """Poll apcupsd on a fixed interval and keep the latest battery status.

    - Each cycle connects, requests a snapshot and disconnects.
    - Connect, query and disconnect failures are logged and never stop the
      poll thread.
    - Readers always get a value; before the first successful cycle it is
      the all-zero initial status.
    """

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, poll_interval: float = DEFAULT_POLL_INTERVAL, client: Optional[NISClient] = None, name: str = "UPS"):
        self.host = host
        self.port = port
        self.name = name

        self._poll_interval = float(poll_interval)
        if self._poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")

        # Telemetry client; reused for every cycle. Socket timeout is capped at one interval.
        self._client = client if client is not None else NISClient(timeout=min(10.0, self._poll_interval))

        # state
        self._current_status: DerivedStatus = INITIAL_STATUS
        self._last_status: Optional[DerivedStatus] = None
        # connection state
        self._connected: bool = False
        self._last_error: Optional[str] = None
        self._last_update: Optional[float] = None

        # Thread & lifecycle controls
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def last_status(self) -> Optional[DerivedStatus]:
        return self._last_status

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True, name="ups-poller")
        self._thread.start()
        log.debug("UPSMonitor started (interval=%.1fs, target=%s:%s)", self._poll_interval, self.host, self.port)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2.0)
        log.debug("UPSMonitor stopped")

    def _poll_loop(self) -> None:
        # first cycle runs one interval after start, like a repeating timer
        deadline = time.monotonic() + self._poll_interval
        while not self._stop_event.wait(max(0.0, deadline - time.monotonic())):
            try:
                self.poll_once()
            except Exception:
                # nothing may end the poll thread
                log.exception("unexpected error in poll cycle")
            deadline = next_deadline(deadline, time.monotonic(), self._poll_interval)

    def poll_once(self) -> None:
        """Run one connect -> query -> derive -> disconnect cycle."""
        try:
            self._client.connect(self.host, self.port)
        except Exception as exc:
            self._last_error = f"connect: {exc}"
            log.error("UPS connect error (%s:%s): %s", self.host, self.port, exc)
            return

        self._connected = True
        try:
            snapshot = self._client.get_status()
        except Exception as exc:
            self._last_error = f"query: {exc}"
            log.error("UPS query error: %s", exc)
        else:
            self._last_status = self._current_status
            self._current_status = derive_status(snapshot, self._last_status)
            self._last_update = time.time()
            self._last_error = None
            log.debug("derived status: %s", self._current_status)
        finally:
            if self._connected:
                try:
                    self._client.disconnect()
                except Exception as exc:
                    log.error("UPS disconnect error: %s", exc)
                finally:
                    self._connected = False

    # Public getters
    def get_status(self) -> DerivedStatus:
        return self._current_status

    def get_connection_status(self) -> Dict[str, Any]:
        """Return `connected`, optional `last_error` and `last_update` (epoch seconds)."""
        return {
            "connected": self._connected,
            "last_error": self._last_error,
            "last_update": self._last_update,
        }
