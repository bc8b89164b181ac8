"""
Strategy Chain Module.

Ordered extraction strategies with first-success semantics. Each
strategy returns a tagged outcome instead of raising, so falling back
from one strategy to the next is explicit.

Author: ML Engineering Team
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from fapiao_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class OutcomeStatus(Enum):
    """Result tag of one strategy."""
    OK = "ok"
    DEGRADED = "degraded"
    ERR = "err"


@dataclass(frozen=True)
class StrategyOutcome:
    """
    Tagged result of a strategy.

    Attributes:
        status: OK, DEGRADED or ERR
        value: Produced value (None on ERR)
        strategy: Name of the strategy
        error: Reason of an ERR outcome
    """
    status: OutcomeStatus
    value: Any = None
    strategy: str = ""
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is not OutcomeStatus.ERR

    @classmethod
    def ok(cls, value: Any, strategy: str) -> 'StrategyOutcome':
        return cls(OutcomeStatus.OK, value, strategy)

    @classmethod
    def degraded(cls, value: Any, strategy: str) -> 'StrategyOutcome':
        return cls(OutcomeStatus.DEGRADED, value, strategy)

    @classmethod
    def err(cls, error: str, strategy: str) -> 'StrategyOutcome':
        return cls(OutcomeStatus.ERR, None, strategy, error)


Strategy = Callable[..., StrategyOutcome]


def first_success(strategies: Iterable[Strategy], *args: Any) -> StrategyOutcome:
    """
    Run strategies in order and return the first OK or DEGRADED outcome.

    Args:
        strategies: Callables returning a StrategyOutcome.
        *args: Arguments passed to every strategy.

    Returns:
        The first successful outcome, otherwise the last ERR outcome.
    """
    outcome = StrategyOutcome.err("no strategy configured", "none")
    for strategy in strategies:
        outcome = strategy(*args)
        if outcome.succeeded:
            logger.debug(f"Strategy '{outcome.strategy}' succeeded ({outcome.status.value})")
            return outcome
        logger.debug(f"Strategy '{outcome.strategy}' failed: {outcome.error}")
    return outcome
