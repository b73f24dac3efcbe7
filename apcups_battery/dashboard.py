# APC UPS Battery Status - Terminal Dashboard
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides a lightweight terminal dashboard displaying the battery level,
# charging state, low battery state and connection status of a UPS
# monitored through apcupsd.
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
"""
UPS CLI Dashboard

Redraws the latest battery status once per `--interval` seconds. The
dashboard only reads from `UPSMonitor`; polling happens on the monitor's own
thread at its own cadence.

Usage:
    apcups-dashboard --ups-host 127.0.0.1 --ups-port 3551
"""
from __future__ import annotations

import argparse
import time
import sys
import signal
import logging
from datetime import datetime
from typing import List

from .monitor import UPSMonitor, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_POLL_INTERVAL

log = logging.getLogger(__name__)


def clear_screen():
    sys.stdout.write('\x1b[2J\x1b[H')


def render(monitor: UPSMonitor) -> List[str]:
    """Return the dashboard lines for the monitor's current state."""
    status = monitor.get_connection_status()
    if status.get("last_error"):
        conn_text = f"Connection: {status['last_error']}"
    elif status.get("last_update") is None:
        conn_text = "Connection: (waiting for first poll...)"
    else:
        conn_text = "Connection: ok"

    last_update = status.get("last_update")
    updated = datetime.fromtimestamp(last_update).strftime('%H:%M:%S') if last_update else "-"

    return [
        f"{monitor.name} Dashboard",
        "==============",
        "",
        f"  Source       : {monitor.host}:{monitor.port}",
        f"  {conn_text}",
        f"  Last update  : {updated}",
        "",
        "Battery:",
        f"  Level        : {monitor.get_battery_level()}%",
        f"  Charging     : {'YES' if monitor.get_charging_state() else 'NO'}",
        f"  Low battery  : {'YES' if monitor.get_low_battery_state() else 'NO'}",
        "",
        "Press Ctrl+C to quit",
    ]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Terminal dashboard for APC UPS battery status")
    parser.add_argument("--ups-host", default=DEFAULT_HOST)
    parser.add_argument("--ups-port", default=DEFAULT_PORT, type=int)
    parser.add_argument("--name", default="UPS")
    parser.add_argument("--interval", default=1.0, type=float, help="Max UI refresh interval in seconds")
    parser.add_argument("--polling", default=DEFAULT_POLL_INTERVAL, type=float, help="UPS polling interval in seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging output")
    args = parser.parse_args(argv)

    # configure logging early according to --verbose flag
    log_format = '[%(asctime)s] %(levelname)s: %(message)s'
    logging.basicConfig(level=(logging.DEBUG if args.verbose else logging.INFO), format=log_format, datefmt='%H:%M:%S')
    # Poll errors would scroll the dashboard away; only show them with --verbose
    pkg_log = logging.getLogger('apcups_battery')
    pkg_log.setLevel(logging.DEBUG if args.verbose else logging.CRITICAL)

    monitor = UPSMonitor(host=args.ups_host, port=args.ups_port, poll_interval=args.polling, name=args.name)
    monitor.start()

    def handle_exit(signum=None, frame=None):
        monitor.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    try:
        while True:
            clear_screen()
            print("\n".join(render(monitor)))
            time.sleep(args.interval)
    finally:
        monitor.stop()


if __name__ == "__main__":
    main()
