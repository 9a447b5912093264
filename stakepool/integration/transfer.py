"""
Transfer collaborator and the guard around it.

``TransferCollaborator`` is the value-transport interface the engine talks to;
``LedgerTransfer`` implements it over the in-memory ``TokenLedger``.

``TransferGuard`` wraps every movement the engine initiates. It reads the
source and destination balances, invokes the collaborator for the exact
amount, re-reads both, and requires each to have moved by exactly that
amount. A collaborator that charges a fee or short-transfers therefore fails
the operation with ``InvalidAmountTransferred``. The guard cannot undo what
the collaborator already did; it only guarantees that the engine never
records bookkeeping for such a transfer.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from ..core.pool import ErrorCode, StakePoolError
from ..state.balances import AccountId, TokenAccount, TokenLedger
from .authority import PoolAuthority, principal_address
from .structured_logging import TRANSFER_LOGGER, log_event

Principal = Union[str, PoolAuthority]


class TransferError(Exception):
    """Base class for collaborator-level transfer failures."""


class UnknownAccountError(TransferError):
    pass


class InsufficientBalanceError(TransferError):
    pass


class UnauthorizedTransferError(TransferError):
    pass


class TransferCollaborator:
    """Interface for moving a fungible asset between holding accounts."""

    def account(self, account_id: AccountId) -> TokenAccount:
        raise NotImplementedError

    def balance_of(self, account_id: AccountId) -> int:
        raise NotImplementedError

    def transfer(self, amount: int, source: AccountId, destination: AccountId, authority: Principal) -> None:
        raise NotImplementedError


class LedgerTransfer(TransferCollaborator):
    """
    Transfers over a ``TokenLedger``.

    Authorization: the principal's address (a plain identity, or the address
    re-derived from a ``PoolAuthority``) must own the source account.
    """

    def __init__(self, ledger: TokenLedger) -> None:
        self.ledger = ledger

    def account(self, account_id: AccountId) -> TokenAccount:
        try:
            return self.ledger.get(account_id)
        except KeyError as exc:
            raise UnknownAccountError(str(account_id)) from exc

    def balance_of(self, account_id: AccountId) -> int:
        return self.account(account_id).amount

    def transfer(self, amount: int, source: AccountId, destination: AccountId, authority: Principal) -> None:
        if amount < 0:
            raise TransferError(f"amount must be non-negative: {amount}")
        src = self.account(source)
        dst = self.account(destination)
        if src.owner != principal_address(authority):
            raise UnauthorizedTransferError(f"{source} is not owned by the signing principal")
        if src.asset != dst.asset:
            raise TransferError(f"asset mismatch: {src.asset} -> {dst.asset}")
        if src.amount < amount:
            raise InsufficientBalanceError(f"{source} holds {src.amount}, needs {amount}")
        if source == destination:
            return
        self.ledger.subtract(source, amount)
        self.ledger.add(destination, amount)


class TransferGuard:
    """Exact-delta verification around a ``TransferCollaborator``."""

    def __init__(
        self,
        collaborator: TransferCollaborator,
        *,
        logger: Optional[logging.Logger] = None,
        log_events: bool = True,
    ) -> None:
        self.collaborator = collaborator
        self._logger = logger or logging.getLogger(TRANSFER_LOGGER)
        self._log_events = log_events

    def _balance(self, account_id: AccountId) -> int:
        try:
            return self.collaborator.balance_of(account_id)
        except UnknownAccountError as exc:
            raise StakePoolError(ErrorCode.TRANSFER_FAILED, f"unknown account {account_id}") from exc

    def execute(self, amount: int, source: AccountId, destination: AccountId, authority: Principal) -> int:
        """
        Move exactly ``amount`` from ``source`` to ``destination``.

        A zero amount is a no-op: the collaborator is not called.

        Returns:
            The amount moved

        Raises:
            StakePoolError: ``InsufficientFunds``, ``Unauthorized``,
                ``TransferFailed`` or ``InvalidAmountTransferred``
        """
        if amount == 0:
            return 0

        src_before = self._balance(source)
        dst_before = self._balance(destination)

        try:
            self.collaborator.transfer(amount, source, destination, authority)
        except InsufficientBalanceError as exc:
            raise StakePoolError(ErrorCode.INSUFFICIENT_FUNDS, str(exc)) from exc
        except UnauthorizedTransferError as exc:
            raise StakePoolError(ErrorCode.UNAUTHORIZED, str(exc)) from exc
        except TransferError as exc:
            raise StakePoolError(ErrorCode.TRANSFER_FAILED, str(exc)) from exc

        src_after = self._balance(source)
        dst_after = self._balance(destination)
        fields = dict(
            source=source,
            destination=destination,
            principal=principal_address(authority),
            amount=amount,
            source_before=src_before,
            source_after=src_after,
            destination_before=dst_before,
            destination_after=dst_after,
        )

        moved_out = src_before - src_after
        moved_in = dst_after - dst_before
        if moved_out != amount or moved_in != amount:
            if self._log_events:
                log_event(self._logger, "transfer_mismatch", level=logging.WARNING, **fields)
            raise StakePoolError(
                ErrorCode.INVALID_AMOUNT_TRANSFERRED,
                f"requested {amount}, source moved {moved_out}, destination moved {moved_in}",
            )

        if self._log_events:
            log_event(self._logger, "transfer_verified", **fields)
        return amount
