"""
Token account ledger with deterministic ordering.

Implements TokenLedger[AccountId] -> (owner, asset, amount).

This is the in-memory backing store behind the transfer collaborator: every
holding account (staker wallets, reward sources, pool vaults) is one entry.
"""

from dataclasses import dataclass, replace
from typing import Dict, List


# Type aliases
AccountId = str  # holding account identifier
Identity = str  # owner identity (staker, admin, or a derived pool authority address)
AssetId = str  # fungible asset identifier
Amount = int  # Non-negative integer (arbitrary precision)


@dataclass(frozen=True)
class TokenAccount:
    """One holding account of a single asset."""

    account_id: AccountId
    owner: Identity
    asset: AssetId
    amount: Amount = 0


class TokenLedger:
    """
    Deterministic token ledger mapping account_id -> TokenAccount.

    Note: accounts are stored in a plain dict. Do not rely on dict iteration
    order; the listing helpers below sort explicitly.
    """

    def __init__(self):
        """Initialize empty ledger."""
        self._accounts: Dict[AccountId, TokenAccount] = {}

    def open_account(self, account_id: AccountId, owner: Identity, asset: AssetId, amount: Amount = 0) -> TokenAccount:
        """
        Create a holding account.

        Raises:
            ValueError: If the account already exists or amount is negative
        """
        if account_id in self._accounts:
            raise ValueError(f"Account already exists: {account_id}")
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        account = TokenAccount(account_id=account_id, owner=owner, asset=asset, amount=amount)
        self._accounts[account_id] = account
        return account

    def has(self, account_id: AccountId) -> bool:
        return account_id in self._accounts

    def get(self, account_id: AccountId) -> TokenAccount:
        """
        Get an account.

        Raises:
            KeyError: If the account does not exist
        """
        try:
            return self._accounts[account_id]
        except KeyError:
            raise KeyError(f"Unknown account: {account_id}") from None

    def balance(self, account_id: AccountId) -> Amount:
        return self.get(account_id).amount

    def set_balance(self, account_id: AccountId, amount: Amount) -> None:
        """
        Set the balance of an existing account.

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        self._accounts[account_id] = replace(self.get(account_id), amount=amount)

    def add(self, account_id: AccountId, delta: Amount) -> None:
        """
        Add delta to balance (can be negative for subtraction).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.balance(account_id)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set_balance(account_id, new_balance)

    def subtract(self, account_id: AccountId, delta: Amount) -> None:
        """
        Subtract delta from balance. Equivalent to add(account_id, -delta).

        Raises:
            ValueError: If delta is negative or insufficient balance
        """
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(account_id, -delta)

    def mint(self, account_id: AccountId, amount: Amount) -> None:
        """Credit freshly issued units (test and demo setup)."""
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        self.add(account_id, amount)

    def accounts_for_owner(self, owner: Identity) -> List[TokenAccount]:
        return sorted(
            (a for a in self._accounts.values() if a.owner == owner),
            key=lambda a: a.account_id,
        )

    def total_supply(self, asset: AssetId) -> Amount:
        """Sum of balances across all accounts of ``asset``."""
        return sum(a.amount for a in self._accounts.values() if a.asset == asset)

    def verify_non_negative(self) -> bool:
        return all(a.amount >= 0 for a in self._accounts.values())

    def __repr__(self) -> str:
        return f"TokenLedger({len(self._accounts)} accounts)"
