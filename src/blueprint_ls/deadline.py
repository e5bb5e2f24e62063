"""Request deadlines carried through context variables.

Every request handled by the server runs inside ``deadline_scope``. Code that
calls into registries (which may be plugin-backed and slow) calls
``check_deadline`` first; an expired deadline raises ``TimeoutExceeded``, which
services treat as an empty result.

A request may also carry a ``CheckBudget``: a cap on the number of deadline
checks it may pass. It bounds work independently of wall-clock time, so a
budgeted request times out at the same point on every run.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TypeVar

from blueprint_ls.invariants import never

_LoopItem = TypeVar("_LoopItem")


class TimeoutExceeded(TimeoutError):
    def __init__(self, site: str = "") -> None:
        super().__init__("Request deadline exceeded.")
        self.site = site


@dataclass(frozen=True)
class Deadline:
    deadline_ns: int

    @classmethod
    def from_timeout_ms(cls, milliseconds: int) -> "Deadline":
        if milliseconds < 0:
            never("negative request timeout", milliseconds=milliseconds)
        return cls(deadline_ns=time.monotonic_ns() + milliseconds * 1_000_000)

    def expired(self) -> bool:
        return time.monotonic_ns() >= self.deadline_ns


@dataclass
class CheckBudget:
    limit: int
    spent: int = 0

    def __post_init__(self) -> None:
        if self.limit <= 0:
            never("check budget must be positive", limit=self.limit)

    def spend(self) -> bool:
        """Spend one check; True once the budget is used up."""
        self.spent += 1
        return self.spent >= self.limit


_deadline_var: ContextVar[Deadline | None] = ContextVar(
    "blueprint_ls_deadline", default=None
)
_budget_var: ContextVar[CheckBudget | None] = ContextVar(
    "blueprint_ls_check_budget", default=None
)


@contextmanager
def deadline_scope(deadline: Deadline):
    token = _deadline_var.set(deadline)
    try:
        yield
    finally:
        _deadline_var.reset(token)


@contextmanager
def check_budget_scope(budget: CheckBudget):
    token = _budget_var.set(budget)
    try:
        yield
    finally:
        _budget_var.reset(token)


def check_deadline(site: str = "") -> None:
    """Raise TimeoutExceeded if the active request has run out of time.

    Outside of any scope this is a no-op, so library callers that never
    install a deadline are not penalised.
    """
    budget = _budget_var.get()
    if budget is not None and budget.spend():
        raise TimeoutExceeded(site)
    deadline = _deadline_var.get()
    if deadline is not None and deadline.expired():
        raise TimeoutExceeded(site)


def deadline_loop_iter(values: Iterable[_LoopItem]) -> Iterator[_LoopItem]:
    for value in values:
        check_deadline()
        yield value
