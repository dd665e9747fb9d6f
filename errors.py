from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class PortalError(Exception):
    code: str
    message: str
    details: Optional[Any] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


ID_NOT_FOUND = "ID_NOT_FOUND"
INVALID_NAME = "INVALID_NAME"
INVALID_EMAIL = "INVALID_EMAIL"
DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
DUPLICATE_NAME = "DUPLICATE_NAME"
INVALID_STATE = "INVALID_STATE"
INVALID_DATE = "INVALID_DATE"
ILLEGAL_OPERATION = "ILLEGAL_OPERATION"
SNAPSHOT_IO = "SNAPSHOT_IO"
