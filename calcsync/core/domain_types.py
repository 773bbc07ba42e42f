"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - RecordId and PrincipalId wrap UUIDs; never pass bare UUIDs through domain logic
    - Operation is a closed enumeration of exactly four members
    - Every wire-visible state is a str Enum (no raw string matching)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - Operation values are the PascalCase names clients send and receive, so
      Operation(value) doubles as the wire parser
    - LEGACY_OPERATION_CODES keeps the integer codes older clients post (0..3)
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

RecordId = NewType("RecordId", UUID)
PrincipalId = NewType("PrincipalId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Operation(str, Enum):
    """The four supported arithmetic operations."""
    ADD = "Add"
    SUBTRACT = "Subtract"
    MULTIPLY = "Multiply"
    DIVIDE = "Divide"


# Integer codes used by the first client generation (enum ordinal on the wire)
LEGACY_OPERATION_CODES: dict[int, Operation] = {
    0: Operation.ADD,
    1: Operation.SUBTRACT,
    2: Operation.MULTIPLY,
    3: Operation.DIVIDE,
}


class Role(str, Enum):
    """Principal roles. Admin unlocks the audit history."""
    USER = "User"
    ADMIN = "Admin"


class SortKey(str, Enum):
    """List ordering. CREATED_AT is newest first, RESULT is ascending."""
    CREATED_AT = "createdAt"
    RESULT = "result"


class RecordEvent(str, Enum):
    """Names of the events published on the broadcast channel."""
    CREATED = "RecordCreated"
    DEACTIVATED = "RecordDeactivated"


class ViewStatus(str, Enum):
    """Client list-view lifecycle states."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class ConsistencyStrategy(str, Enum):
    """How a client view reflects its own create mutations."""
    PESSIMISTIC = "pessimistic"
    OPTIMISTIC = "optimistic"


# ─── Principal ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Principal:
    """Authenticated caller, resolved once per request by the auth dependency."""
    id: PrincipalId
    username: str
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
