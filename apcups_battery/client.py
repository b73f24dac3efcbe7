# APC UPS Battery Status - NIS Client
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides the NISClient class: a transient TCP client for the apcupsd
# Network Information Server that opens a connection, requests one status
# snapshot and closes again.
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

"""apcups_battery.client

NISClient: connect / get_status / disconnect against apcupsd's NIS.

Wire format
- Every message in either direction is a record: a 2-byte big-endian
  length followed by that many bytes of text.
- The client sends a single ``status`` record.
- The server answers with one record per status line and terminates the
  reply with a zero-length record.

Errors are reported with builtin exception types:
- RuntimeError: the call does not fit the connection state (connect twice,
  query or disconnect while not connected).
- OSError (including socket.timeout): network failures.
- ValueError: a reply that cannot be read as a status snapshot. Undecodable
  bytes are replaced, not rejected.
"""
from __future__ import annotations

import socket
import struct
import logging
from typing import Optional, Dict

from .parser import parse_status

log = logging.getLogger(__name__)

CMD_STATUS = b"status"
_LEN = struct.Struct(">H")


class NISClient:
    """Client for one apcupsd daemon, reused across connect/disconnect cycles."""

    def __init__(self, timeout: float = 10.0):
        self.timeout = float(timeout)
        self._sock: Optional[socket.socket] = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self, host: str, port: int) -> None:
        if self._sock is not None:
            raise RuntimeError("already connected")
        log.debug("connecting to %s:%s", host, port)
        self._sock = socket.create_connection((host, int(port)), timeout=self.timeout)
        log.debug("connected to %s:%s", host, port)

    def get_status(self) -> Dict[str, str]:
        """Request a status snapshot and return it as a field mapping."""
        if self._sock is None:
            raise RuntimeError("not connected")
        self._sock.sendall(_LEN.pack(len(CMD_STATUS)) + CMD_STATUS)
        lines = []
        while True:
            (size,) = _LEN.unpack(self._recv_exact(_LEN.size))
            if size == 0:
                break
            # free-text fields (UPSNAME, MODEL) may hold any bytes
            lines.append(self._recv_exact(size).decode("utf-8", errors="replace"))
        # records normally carry their own newline; blank lines are skipped
        return parse_status("\n".join(lines))

    def disconnect(self) -> None:
        if self._sock is None:
            raise RuntimeError("not connected")
        sock, self._sock = self._sock, None
        sock.close()
        log.debug("disconnected")

    def _recv_exact(self, size: int) -> bytes:
        buf = b""
        while len(buf) < size:
            chunk = self._sock.recv(size - len(buf))
            if not chunk:
                raise ValueError("connection closed by peer mid-reply")
            buf += chunk
        return buf
