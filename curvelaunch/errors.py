"""Typed rejections for pool operations.

Every failure a pool operation can report is a ``PoolError`` subclass with a
stable ``code`` string. ``PoolLifecycle.execute()`` returns that code in a
rejected ``OperationResult``; the direct methods raise.
"""

from __future__ import annotations


class PoolError(Exception):
    """Base class for all pool rejections."""

    code = "PoolError"


class InvalidInput(PoolError):
    """Display field length or format violation."""

    code = "InvalidInput"


class InvalidAmount(PoolError):
    """Zero or non-positive quantity, or a computed output of zero."""

    code = "InvalidAmount"


class MathOverflow(PoolError):
    """Checked u64 arithmetic left its domain."""

    code = "MathOverflow"


class InsufficientLiquidity(PoolError):
    """A reserve-side subtraction would underflow or a share exceeds what the pool holds."""

    code = "InsufficientLiquidity"


class SlippageExceeded(PoolError):
    """Computed output is below the caller's floor."""

    code = "SlippageExceeded"


class InvalidPriceRatio(PoolError):
    """Liquidity deposit ratio is outside the configured tolerance."""

    code = "InvalidPriceRatio"


class PoolAlreadyExists(PoolError):
    code = "PoolAlreadyExists"


class PoolNotFound(PoolError):
    code = "PoolNotFound"


class AuthorityMismatch(PoolError):
    """A record mutation was attempted without the pool's own authority."""

    code = "AuthorityMismatch"


class InvariantViolation(PoolError):
    """Raised when a post-state violates one or more pool invariants."""

    code = "InvariantViolation"

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")


class CollaboratorError(PoolError):
    """A ledger or metadata registry request failed."""

    code = "CollaboratorError"
