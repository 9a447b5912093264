"""Error codes and exception types for the stake pool state machine.

``StepResult.rejection`` carries an ``ErrorCode``; ``step_or_raise()`` in
``engine.py`` and the imperative shell raise ``StakePoolError`` with the same
code for callers that prefer exceptions.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """One member per rejection kind. Values are the stable wire names."""

    INVALID_CONFIGURATION = "InvalidConfiguration"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    POOL_LOCKED = "PoolLocked"
    POOL_FULL = "PoolFull"
    POOL_REWARDS_FULL = "PoolRewardsFull"
    POOL_NOT_EXPIRED = "PoolNotExpired"
    POOL_EXPIRED = "PoolExpired"
    NOT_ENOUGH_REWARDS = "NotEnoughRewards"
    INVALID_AMOUNT_TRANSFERRED = "InvalidAmountTransferred"
    INTEGER_OVERFLOW = "IntegerOverflow"
    UNAUTHORIZED = "Unauthorized"
    INVALID_BUMP = "InvalidBump"
    INVALID_AUTHORITY = "InvalidAuthority"
    POOL_NOT_FOUND = "PoolNotFound"
    TICKET_NOT_FOUND = "TicketNotFound"
    TRANSFER_FAILED = "TransferFailed"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_CONFIGURATION: "Given topup duration lasts longer than lockup duration",
    ErrorCode.INSUFFICIENT_FUNDS: "Given wallet has not enough funds",
    ErrorCode.POOL_LOCKED: "Pool is locked and funds can no longer be added or removed",
    ErrorCode.POOL_FULL: "Pool is full",
    ErrorCode.POOL_REWARDS_FULL: "Pool rewards are full",
    ErrorCode.POOL_NOT_EXPIRED: "Pool is not expired yet",
    ErrorCode.POOL_EXPIRED: "Pool is expired already",
    ErrorCode.NOT_ENOUGH_REWARDS: "Not enough rewards to collect",
    ErrorCode.INVALID_AMOUNT_TRANSFERRED: "Invalid amount transferred",
    ErrorCode.INTEGER_OVERFLOW: "Integer overflow occurred",
    ErrorCode.UNAUTHORIZED: "Caller does not own the ticket",
    ErrorCode.INVALID_BUMP: "Given bump is invalid",
    ErrorCode.INVALID_AUTHORITY: "Given authority does not match expected one",
    ErrorCode.POOL_NOT_FOUND: "Pool does not exist",
    ErrorCode.TICKET_NOT_FOUND: "Ticket does not exist",
    ErrorCode.TRANSFER_FAILED: "Transfer rejected by the token ledger",
}


class StakePoolError(Exception):
    """Raised when an operation is rejected. Nothing was committed."""

    def __init__(self, code: ErrorCode, reason: str | None = None) -> None:
        self.code = code
        self.reason = reason if reason is not None else ERROR_MESSAGES[code]
        super().__init__(f"{code.value}: {self.reason}")


class PoolInvariantError(Exception):
    """Raised when a post-state violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
