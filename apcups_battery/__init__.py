# APC UPS Battery Status - UPS Monitoring Library
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# This module provides a lightweight battery status monitor for UPS units
# managed by apcupsd, polling its Network Information Server on a fixed
# interval and deriving battery level, charging and low battery flags.
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

"""APC UPS battery status package

This package polls the apcupsd Network Information Server and turns its
status reply into the three values a battery service needs. It exposes:

- `UPSMonitor`: a background poller that connects, queries and disconnects
  every few seconds and keeps the latest `DerivedStatus`.
- `StatusProvider`: the read-only interface (`get_battery_level`,
  `get_charging_state`, `get_low_battery_state`) adapters consume.
- `NISClient`: the transient TCP client for the daemon.
- `derive_status`, `parse_status`, `parse_charge`: pure helpers for turning a
  reply into a status.

Adapters for HomeAssistant (MQTT) and the terminal live in
`apcups_battery.mqtt_client` and `apcups_battery.dashboard`.
"""

from .client import NISClient
from .monitor import UPSMonitor, StatusProvider
from .parser import parse_status, parse_charge
from .status import DerivedStatus, INITIAL_STATUS, derive_status

__all__ = [
    "UPSMonitor",
    "StatusProvider",
    "NISClient",
    "DerivedStatus",
    "INITIAL_STATUS",
    "derive_status",
    "parse_status",
    "parse_charge",
]
__version__ = "0.1.0"
