"""Short-lived host invoice snapshots with per-invoice expiry."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from rgbpay.domain.host.models import HostInvoice

DEFAULT_CACHE_FLOOR = timedelta(minutes=5)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def compute_cache_expiry(
    expiration_time: datetime,
    now: Optional[datetime] = None,
    floor: timedelta = DEFAULT_CACHE_FLOOR,
) -> datetime:
    """Entry lives until the invoice expires, but never less than ``floor``."""
    now = _utc(now or datetime.now(timezone.utc))
    remaining = _utc(expiration_time) - now
    return now + max(remaining, floor)


class InvoiceCache:
    """Thread-safe invoice id -> snapshot map.

    Readers and writers may live on different threads (event-bus handlers evict
    while the worker loop reads), so every access goes through one lock.
    """

    def __init__(self, floor: timedelta = DEFAULT_CACHE_FLOOR) -> None:
        self._entries: Dict[str, Tuple[HostInvoice, datetime]] = {}
        self._lock = threading.Lock()
        self._floor = floor

    def put(self, invoice: HostInvoice, now: Optional[datetime] = None) -> datetime:
        expires_at = compute_cache_expiry(invoice.expiration_time, now, self._floor)
        with self._lock:
            self._entries[invoice.id] = (invoice, expires_at)
        return expires_at

    def get(self, invoice_id: str, now: Optional[datetime] = None) -> Optional[HostInvoice]:
        now = _utc(now or datetime.now(timezone.utc))
        with self._lock:
            entry = self._entries.get(invoice_id)
            if entry is None:
                return None
            invoice, expires_at = entry
            if expires_at <= now:
                del self._entries[invoice_id]
                return None
            return invoice

    def expires_at(self, invoice_id: str) -> Optional[datetime]:
        with self._lock:
            entry = self._entries.get(invoice_id)
        return entry[1] if entry else None

    def evict(self, invoice_id: str) -> None:
        with self._lock:
            self._entries.pop(invoice_id, None)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        now = _utc(now or datetime.now(timezone.utc))
        with self._lock:
            stale = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, invoice_id: object) -> bool:
        with self._lock:
            return invoice_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["DEFAULT_CACHE_FLOOR", "InvoiceCache", "compute_cache_expiry"]
