"""
Identifier generation strategies for signature elements.

Signature, reference and property ids are produced by an injected
generator so that tests can pin exact output.
"""

import itertools
import threading
import uuid
from abc import ABC, abstractmethod


class IdGenerator(ABC):
    """Produces unique identifiers for signature elements."""

    @abstractmethod
    def next_id(self, prefix: str) -> str:
        """Return a new identifier starting with ``prefix``."""
        pass


class UuidIdGenerator(IdGenerator):
    """Random identifiers, e.g. ``DocSig-4f1c2a9b7e3d``."""

    def __init__(self, length: int = 12):
        if length < 8 or length > 32:
            raise ValueError("Identifier length must be between 8 and 32")
        self.length = length

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:self.length]}"


class CounterIdGenerator(IdGenerator):
    """
    Deterministic identifiers from a monotonic counter.

    Each generator instance owns its counter; nothing is shared between
    instances.
    """

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self, prefix: str) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{prefix}-{value}"
