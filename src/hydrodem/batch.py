"""Structured fan-out/fan-in over a known set of awaitables."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, Iterable, Sequence, Type, TypeVar

from hydrodem.errors import DomainAssemblyError, HydroDemError

T = TypeVar("T")

_NEVER_CAPTURED = (asyncio.CancelledError, KeyboardInterrupt, SystemExit)


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Per-item result of a batch: a value or the error that replaced it."""

    label: str
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or re-raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


async def gather_outcomes(
    items: Iterable[tuple[str, Awaitable[T]]],
) -> list[Outcome[T]]:
    """Await every item and return one outcome per item, in submission order.

    No branch is cancelled when a sibling fails.
    """
    pairs = list(items)
    results = await asyncio.gather(*(item for _, item in pairs), return_exceptions=True)
    outcomes: list[Outcome[T]] = []
    for (label, _), result in zip(pairs, results):
        if isinstance(result, _NEVER_CAPTURED):
            raise result
        if isinstance(result, BaseException):
            outcomes.append(Outcome(label, error=result))
        else:
            outcomes.append(Outcome(label, value=result))
    return outcomes


def failures(outcomes: Sequence[Outcome[T]]) -> list[tuple[str, BaseException]]:
    """Return (label, error) for every failed outcome."""
    return [(item.label, item.error) for item in outcomes if item.error is not None]


def raise_for_failures(
    outcomes: Sequence[Outcome[T]],
    message: str,
    error_cls: Type[HydroDemError] = DomainAssemblyError,
) -> list[T]:
    """Return all values, or raise with the first failure and every later one."""
    failed = failures(outcomes)
    if failed:
        if issubclass(error_cls, DomainAssemblyError):
            raise error_cls(message, failed)
        label, error = failed[0]
        raise error_cls(f"{message}: {label}: {error}") from error
    return [item.value for item in outcomes]  # type: ignore[misc]
