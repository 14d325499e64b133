"""Bounded re-quote loop for sizing amount-dependent swaps.

Price impact makes a swap's output depend on its size, so an amount
estimated from a ratio may come up short. The loop re-tries with the
estimate grown by a safety multiplier until the result is good enough,
the estimate hits its cap, or the iteration budget runs out. With a cap,
the final attempt always tries the cap.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from omniroute.errors import ConvergenceError, QuoteInstabilityError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ConvergenceResult(Generic[T]):
    """The accepted guess and what it produced."""

    guess: Decimal
    result: T
    iterations: int


async def converge(
    initial: Decimal,
    attempt: Callable[[Decimal], Awaitable[T]],
    satisfied: Callable[[T], bool],
    *,
    multiplier: Decimal,
    max_iterations: int,
    cap: Optional[Decimal] = None,
    label: str = "",
) -> ConvergenceResult[T]:
    """
    Grow a guess geometrically until attempt(guess) satisfies the predicate.

    Args:
        initial: First guess (clamped to cap)
        attempt: Produces a result for a guess, e.g. fetches a quote
        satisfied: Convergence predicate over attempt's result
        multiplier: Growth factor between attempts, must exceed 1
        max_iterations: Maximum number of attempts
        cap: Upper bound for the guess, e.g. a holding's full balance
        label: Context for logs and errors

    Raises:
        QuoteInstabilityError: the capped guess still does not satisfy
        ConvergenceError: max_iterations attempts without success (uncapped only)
    """
    if multiplier <= 1:
        raise ValueError(f"multiplier must exceed 1, got {multiplier}")
    if max_iterations < 1:
        raise ValueError(f"max_iterations must be positive, got {max_iterations}")

    guess = initial if cap is None else min(initial, cap)

    for iteration in range(1, max_iterations + 1):
        # A capped loop always spends its last attempt on the cap itself
        if cap is not None and iteration == max_iterations:
            guess = cap

        result = await attempt(guess)
        if satisfied(result):
            logger.debug(f"{label}: converged on {guess} after {iteration} attempt(s)")
            return ConvergenceResult(guess=guess, result=result, iterations=iteration)

        if cap is not None and guess >= cap:
            raise QuoteInstabilityError(
                f"{label}: even the full amount {cap} does not satisfy the requirement"
            )

        grown = guess * multiplier
        guess = grown if cap is None else min(grown, cap)
        logger.debug(f"{label}: attempt {iteration} fell short, retrying with {guess}")

    raise ConvergenceError(label, max_iterations, guess)
