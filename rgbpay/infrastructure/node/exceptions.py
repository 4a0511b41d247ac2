"""RGB node client errors."""

from __future__ import annotations

from typing import Optional


class RgbNodeError(Exception):
    """A remote ledger call failed: non-2xx status, transport error or missing body."""

    def __init__(self, operation: str, body: str = "", status_code: Optional[int] = None) -> None:
        self.operation = operation
        self.body = body
        self.status_code = status_code
        super().__init__(f"{operation}: {body}" if body else operation)
