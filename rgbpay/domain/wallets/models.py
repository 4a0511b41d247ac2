"""Domain models for wallet operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class Wallet:
    id: str
    store_id: str
    name: str
    xpub_vanilla: str
    xpub_colored: str
    master_fingerprint: str
    network: str
    is_active: bool
    created_at: Optional[datetime]
    last_sync_at: Optional[datetime]
