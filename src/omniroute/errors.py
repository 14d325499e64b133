"""Exceptions raised by the planner and the quote providers."""

from decimal import Decimal
from typing import Optional


class OmnirouteError(Exception):
    """Base exception for all planner errors."""
    pass


class ConfigurationError(OmnirouteError):
    """Exception raised when a chain or currency is missing from the registry."""
    pass


class LiquidityError(OmnirouteError):
    """Exception raised when the requested amount cannot be sourced."""
    pass


class InsufficientLiquidityError(LiquidityError):
    """Raised when all holdings together cannot cover the target."""

    def __init__(self, target: Decimal, shortfall: Decimal):
        self.target = target
        self.shortfall = shortfall
        super().__init__(
            f"Insufficient liquidity: short by {shortfall} of a {target} target"
        )


class QuoteInstabilityError(LiquidityError):
    """Raised when a full-balance quote no longer covers what its survey promised."""
    pass


class ConvergenceError(LiquidityError):
    """Raised when a sizing loop hits its iteration cap without converging."""

    def __init__(self, label: str, iterations: int, last_guess: Optional[Decimal] = None):
        self.label = label
        self.iterations = iterations
        self.last_guess = last_guess
        super().__init__(
            f"{label or 'sizing loop'} did not converge after {iterations} attempts "
            f"(last guess: {last_guess})"
        )


class ProviderError(OmnirouteError):
    """Exception raised when a quote provider's API call fails."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")
