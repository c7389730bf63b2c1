# discovery/models.py

from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Hashable, List, Optional


class InstanceKey(BaseModel):
    """Identifies one database instance to discover (hostname + port)."""

    model_config = ConfigDict(frozen=True)

    hostname: str = ""
    port: int = 0

    @property
    def is_valid(self) -> bool:
        return bool(self.hostname) and self.port > 0

    def __str__(self) -> str:
        return f"{self.hostname}:{self.port}"


# Reserved key, never a valid unit of work
EMPTY_KEY = InstanceKey()


# Identifier types whose zero value is the reserved "no key"
_ZERO_VALUES = {str: "", bytes: b"", int: 0, float: 0.0, tuple: ()}


def is_empty_key(key: Optional[Hashable]) -> bool:
    """
    True for the reserved "no key" value.
    Keys with an `is_valid` flag use it; str, bytes, int, float and tuple
    keys are compared to their zero value. Any other key is never empty.
    """
    if key is None:
        return True
    is_valid = getattr(key, "is_valid", None)
    if isinstance(is_valid, bool):
        return not is_valid
    zero = _ZERO_VALUES.get(type(key))
    if zero is None:
        return False
    return key == zero


class KeyState(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"


class DiscoveryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hostname: str = ""
    port: int = 0

    def to_key(self) -> InstanceKey:
        return InstanceKey(hostname=self.hostname, port=self.port)


class DiscoveryBatch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    instances: List[DiscoveryRequest]


class QueueStats(BaseModel):
    max_concurrency: int
    received: int
    duplicates: int
    empty_keys_dropped: int
    dispatched: int
    completed: int
    pending: int
    active: int
    known: int
    peak_active: int
    drained: bool


class DiscoveredInstance(BaseModel):
    hostname: str
    port: int
    discover_count: int
    last_discovered_at: Optional[str]

