from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class Confirmed:
    """Server-assigned message id."""

    id: int


@dataclass(frozen=True, slots=True)
class Pending:
    """Local placeholder for a message the server has not echoed yet."""

    token: int


MessageRef: TypeAlias = Confirmed | Pending
