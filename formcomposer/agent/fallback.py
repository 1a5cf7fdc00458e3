"""Ordered fallback chains: the first strategy that succeeds wins."""
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StrategyResult(Generic[T]):
    """Outcome of one strategy attempt."""
    success: bool
    value: Optional[T] = None
    reason: str = ""

    @classmethod
    def ok(cls, value: T) -> "StrategyResult[T]":
        return cls(True, value)

    @classmethod
    def failed(cls, reason: str) -> "StrategyResult[T]":
        return cls(False, None, reason)


@dataclass
class Strategy(Generic[T]):
    """A named async attempt at producing a value."""
    name: str
    run: Callable[[], Awaitable[StrategyResult[T]]]


class FallbackExhaustedError(Exception):
    """Every strategy in a policy failed."""

    def __init__(self, policy: str, reasons: list[str]) -> None:
        super().__init__(f"{policy}: all strategies failed ({'; '.join(reasons)})")
        self.reasons = reasons


class FallbackPolicy(Generic[T]):
    """Runs strategies in order until one reports success.

    A strategy that raises counts as failed, so later strategies still run.
    """

    def __init__(self, name: str, strategies: list[Strategy[T]]) -> None:
        self.name = name
        self.strategies = strategies

    async def run(self) -> tuple[T, str]:
        """Return the first successful value and the name of its strategy.

        Raises:
            FallbackExhaustedError: If no strategy succeeded.
        """
        reasons: list[str] = []
        for index, strategy in enumerate(self.strategies):
            try:
                result = await strategy.run()
            except Exception as e:
                result = StrategyResult.failed(f"{type(e).__name__}: {e}")

            if result.success:
                if index > 0:
                    logger.warning(f"{self.name}: using fallback '{strategy.name}'")
                else:
                    logger.debug(f"{self.name}: '{strategy.name}' succeeded")
                return result.value, strategy.name

            logger.info(f"{self.name}: '{strategy.name}' failed: {result.reason}")
            reasons.append(f"{strategy.name}: {result.reason}")

        raise FallbackExhaustedError(self.name, reasons)
