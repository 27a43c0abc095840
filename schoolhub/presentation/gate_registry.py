from __future__ import annotations

import secrets
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable

from schoolhub.domain.gate import GateController
from schoolhub.domain.services import utcnow


class GateNotFound(KeyError):
    pass


class GateRegistry:
    """
    Process-local home for gate controllers between HTTP calls.

    Least recently touched gates are evicted first, either when the
    registry is full or once they sat idle longer than `idle_seconds`.
    """

    def __init__(
        self,
        *,
        max_size: int = 10_000,
        idle_seconds: int = 1800,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._gates: "OrderedDict[str, tuple[GateController, datetime]]" = OrderedDict()
        self._max_size = max_size
        self._idle = timedelta(seconds=idle_seconds)
        self._clock = clock

    def __len__(self) -> int:
        return len(self._gates)

    def _evict_idle(self, now: datetime) -> None:
        while self._gates:
            _, (_, touched) = next(iter(self._gates.items()))
            if now - touched <= self._idle:
                break
            self._gates.popitem(last=False)

    def add(self, gate: GateController) -> str:
        now = self._clock()
        self._evict_idle(now)
        while len(self._gates) >= self._max_size:
            self._gates.popitem(last=False)
        gate_id = secrets.token_urlsafe(16)
        self._gates[gate_id] = (gate, now)
        return gate_id

    def get(self, gate_id: str) -> GateController:
        now = self._clock()
        self._evict_idle(now)
        try:
            gate, _ = self._gates[gate_id]
        except KeyError:
            raise GateNotFound(gate_id) from None
        self._gates[gate_id] = (gate, now)
        self._gates.move_to_end(gate_id)
        return gate
