# APC UPS Battery Status - NIS Reply Parser
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

"""Parsing helpers for apcupsd NIS status replies.

The apcupsd Network Information Server answers a ``status`` request with a
series of text records such as::

    STATUS   : ONLINE
    BCHARGE  : 100.0 Percent
    TIMELEFT : 36.4 Minutes

Key functions
- parse_status(text: str) -> dict
    Convert the status records into a mapping of field name -> raw string.
    Raises ValueError when no field could be read at all.

- parse_charge(value) -> float | None
    Read the leading number of a ``"<float> <unit>"`` field. Returns None
    instead of raising so callers can apply their own fallback.

Notes and conventions
- Values are kept as strings; units are only stripped by `parse_charge`.
- Lines without a ``:`` separator (e.g. the trailing blank record) are skipped.
"""
from __future__ import annotations

import re
from typing import Dict, Any, Optional

SEP = ":"

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_status(text: str) -> Dict[str, str]:
    """Parse the text of a NIS status reply into a field mapping.

    Raises ValueError if the reply holds no ``KEY : value`` records.
    """
    out: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(SEP)
        key = key.strip()
        if not sep or not key:
            continue
        out[key] = value.strip()
    if not out:
        raise ValueError("no status fields in reply")
    return out


def parse_charge(value: Any) -> Optional[float]:
    """Return the leading number of a field such as ``"36.7 Percent"``.

    Only the numeric prefix of the first token is read, so trailing text
    such as a glued-on ``%`` is ignored. None is returned for missing, empty
    or non-numeric values.
    """
    if not isinstance(value, str):
        return None
    parts = value.split()
    if not parts:
        return None
    # leading numeric prefix only: "95.0%" -> 95.0, "1_0" -> 1.0
    m = _LEADING_NUMBER.match(parts[0])
    if m is None:
        return None
    return float(m.group(0))
