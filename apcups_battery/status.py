# APC UPS Battery Status - Status Derivation
# Author: IntelligentToasters
# License: GNU General Public License v3.0
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

"""Battery status derived from one NIS snapshot and the previous status."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, Optional

from .parser import parse_charge

CHARGE_FIELD = "BCHARGE"
LOW_BATTERY_THRESHOLD = 10.0


@dataclass(frozen=True)
class DerivedStatus:
    battery_level: float
    is_charging: bool
    is_low_battery: bool


INITIAL_STATUS = DerivedStatus(battery_level=0.0, is_charging=False, is_low_battery=False)


def _battery_level(snapshot: Dict[str, Any]) -> float:
    level = parse_charge(snapshot.get(CHARGE_FIELD))
    # NaN fails both comparisons
    if level is None or not (0.0 <= level <= 100.0):
        return 0.0
    return level


def derive_status(snapshot: Dict[str, Any], last_status: Optional[DerivedStatus]) -> DerivedStatus:
    """Compute the next status from a raw snapshot.

    Charging is inferred from the trend only: the level must have risen from
    a non-zero previous reading and must not have reached 100%. The
    snapshot's STATUS (ONLINE/ONBATT) field is not consulted.
    """
    level = _battery_level(snapshot or {})
    is_charging = (
        level < 100.0
        and last_status is not None
        and last_status.battery_level > 0.0
        and last_status.battery_level < level
    )
    return DerivedStatus(
        battery_level=level,
        is_charging=is_charging,
        is_low_battery=level < LOW_BATTERY_THRESHOLD,
    )
