from __future__ import annotations

import os
import time
import uuid


def generate_uuid7() -> str:
    """
    Generate a time-ordered UUIDv7 string.

    Used as the primary key default for components and ledger entries; in
    the ledger it is the deterministic tie-breaker for entries sharing an
    ``occurred_at`` value.
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70  # version 7
    raw[8] = (raw[8] & 0x3F) | 0x80  # RFC 4122 variant
    return str(uuid.UUID(bytes=bytes(raw)))
