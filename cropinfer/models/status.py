from __future__ import annotations
from dataclasses import dataclass

LOADING = "loading"
SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class Status:
    """User-facing status line: a message plus its kind (loading / success / error)."""
    message: str
    kind: str = LOADING

