"""Primary write followed by best-effort side effects.

Every write path in the portal has the same shape: commit the authoritative
change to the relational store, then archive the payload, append a domain
event and publish an integration message. Those secondary steps may fail
independently; each failure is logged and recorded in the returned
:class:`WriteOutcome` instead of propagating to the caller.

No retry, outbox or reconciliation happens here: a failed
side effect stays failed, and the outcome report is the only record of it
besides the log.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from vendor_mdm.core.exceptions import SideEffectError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SideEffect:
    """One secondary step. ``operation`` is called with no arguments and awaited."""

    name: str
    operation: Callable[[], Awaitable[Any]]
    fatal: bool = False


@dataclass(frozen=True)
class SideEffectResult:
    name: str
    succeeded: bool
    error: str | None = None


@dataclass
class WriteOutcome(Generic[T]):
    result: T
    side_effects: list[SideEffectResult] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return all(r.succeeded for r in self.side_effects)

    @property
    def failures(self) -> list[SideEffectResult]:
        return [r for r in self.side_effects if not r.succeeded]


async def run_side_effects(
    effects: Sequence[SideEffect], *, context: str = ""
) -> list[SideEffectResult]:
    """Run *effects* in order, isolating failures.

    A failing non-fatal step is logged and the next step still runs. A
    failing fatal step stops the sequence and raises :class:`SideEffectError`.
    """
    results: list[SideEffectResult] = []
    for effect in effects:
        try:
            await effect.operation()
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            logger.error(
                "Side effect %s failed%s: %s",
                effect.name,
                f" for {context}" if context else "",
                reason,
                exc_info=True,
            )
            results.append(SideEffectResult(effect.name, succeeded=False, error=reason))
            if effect.fatal:
                raise SideEffectError(effect.name, reason) from exc
            continue
        logger.info(
            "Side effect %s completed%s", effect.name, f" for {context}" if context else ""
        )
        results.append(SideEffectResult(effect.name, succeeded=True))
    return results


class WriteOrchestrator:
    """Runs ``primary`` and then the side effects derived from its result.

    ``primary`` must commit before returning; nothing after it can roll it
    back. ``side_effects`` receives the primary result so each step can
    reference generated ids.
    """

    async def execute(
        self,
        primary: Callable[[], Awaitable[T]],
        side_effects: Callable[[T], Sequence[SideEffect]] | None = None,
        *,
        context: Callable[[T], str] | None = None,
    ) -> WriteOutcome[T]:
        result = await primary()
        if side_effects is None:
            return WriteOutcome(result=result)
        effects = side_effects(result)
        label = context(result) if context else ""
        return WriteOutcome(result=result, side_effects=await run_side_effects(effects, context=label))
