"""
Record store (allocation collaborator).

Holds the durable Pool/Ticket records by key, charges a fixed storage
collateral per allocated record and returns it to a chosen recipient when the
record is closed.

All writes of one operation go through ``commit()``, which applies a batch of
``RecordWrite`` entries all-or-nothing with compare-and-swap semantics: every
entry names the record value it expects to replace, and if any stored value
differs the whole batch is rejected before anything is written.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .balances import Identity
from .canonical import canonical_json_bytes, domain_sep_bytes, sha256_hex


class RecordError(Exception):
    """Base class for allocation collaborator failures."""


class RecordExistsError(RecordError):
    pass


class RecordNotFoundError(RecordError):
    pass


class RecordConflictError(RecordError):
    """The stored record changed since it was read; the batch was not applied."""


class InsufficientCollateralError(RecordError):
    pass


@dataclass(frozen=True)
class RecordWrite:
    """
    One entry of an atomic batch.

    - ``expected is None``: allocate ``new`` (key must be free, ``payer`` pays
      ``collateral``, or the store default when it is None).
    - ``new is None``: close the record, collateral goes to ``close_to``.
    - otherwise: replace ``expected`` with ``new``.
    """

    key: str
    expected: Any
    new: Any = None
    payer: Optional[Identity] = None
    close_to: Optional[Identity] = None
    collateral: Optional[int] = None


@dataclass
class RecordStore:
    collateral_per_record: int = 0
    _records: Dict[str, Any] = field(default_factory=dict)
    _collateral: Dict[str, int] = field(default_factory=dict)
    _native: Dict[Identity, int] = field(default_factory=dict)
    _encoders: Dict[type, Callable[[Any], Dict[str, Any]]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.collateral_per_record < 0:
            raise ValueError(f"collateral_per_record must be non-negative: {self.collateral_per_record}")

    # -- collateral balances -------------------------------------------------

    def fund_native(self, identity: Identity, amount: int) -> None:
        """Credit native units used to pay record collateral."""
        if amount < 0:
            raise ValueError(f"amount must be non-negative: {amount}")
        self._native[identity] = self._native.get(identity, 0) + amount

    def native_balance(self, identity: Identity) -> int:
        return self._native.get(identity, 0)

    def can_allocate(self, payer: Identity, count: int = 1) -> bool:
        return self.native_balance(payer) >= self.collateral_per_record * count

    def register_encoder(self, record_type: type, encode: Callable[[Any], Dict[str, Any]]) -> None:
        """Use ``encode`` for records of ``record_type`` in ``snapshot()``."""
        self._encoders[record_type] = encode

    # -- reads ---------------------------------------------------------------

    def get(self, key: str) -> Any:
        """Return the stored record, or None."""
        return self._records.get(key)

    def require(self, key: str) -> Any:
        try:
            return self._records[key]
        except KeyError:
            raise RecordNotFoundError(key) from None

    def items(self, prefix: str = "") -> List[Tuple[str, Any]]:
        """Records whose key starts with ``prefix``, sorted by key."""
        return sorted((k, v) for k, v in self._records.items() if k.startswith(prefix))

    def __len__(self) -> int:
        return len(self._records)

    # -- writes --------------------------------------------------------------

    def allocate(self, key: str, record: Any, payer: Identity) -> None:
        self.commit([RecordWrite(key=key, expected=None, new=record, payer=payer)])

    def put(self, key: str, expected: Any, record: Any) -> None:
        """Replace an existing record (compare-and-swap against ``expected``)."""
        self.commit([RecordWrite(key=key, expected=expected, new=record)])

    def close(self, key: str, recipient: Identity) -> int:
        """Close a record; returns the collateral credited to ``recipient``."""
        returned = self.commit([RecordWrite(key=key, expected=self.require(key), close_to=recipient)])
        return returned.get(key, 0)

    def commit(self, writes: Sequence[RecordWrite]) -> Dict[str, int]:
        """
        Apply ``writes`` atomically.

        Returns:
            Mapping key -> collateral returned, for every closed record

        Raises:
            RecordExistsError: allocating over an existing record
            RecordNotFoundError: updating or closing a missing record
            RecordConflictError: a stored record differs from ``expected``
            InsufficientCollateralError: a payer cannot cover allocation collateral
        """
        keys = [w.key for w in writes]
        if len(set(keys)) != len(keys):
            raise ValueError("a batch may touch each key at most once")

        charges: Dict[Identity, int] = {}
        locked: Dict[str, int] = {}
        for w in writes:
            current = self._records.get(w.key)
            if w.expected is None:
                if current is not None:
                    raise RecordExistsError(w.key)
                if w.new is None:
                    raise ValueError(f"allocation of {w.key!r} needs a record")
                if w.payer is None:
                    raise ValueError(f"allocation of {w.key!r} needs a payer")
                cost = self.collateral_per_record if w.collateral is None else w.collateral
                if cost < 0:
                    raise ValueError(f"collateral must be non-negative: {cost}")
                charges[w.payer] = charges.get(w.payer, 0) + cost
                locked[w.key] = cost
                continue
            if current is None:
                raise RecordNotFoundError(w.key)
            if current != w.expected:
                raise RecordConflictError(w.key)
            if w.new is None and w.close_to is None:
                raise ValueError(f"closing {w.key!r} needs a collateral recipient")

        for payer, amount in charges.items():
            if self.native_balance(payer) < amount:
                raise InsufficientCollateralError(f"{payer} cannot cover {amount} collateral")

        # Validation passed: apply.
        returned: Dict[str, int] = {}
        for payer, amount in charges.items():
            self._native[payer] = self.native_balance(payer) - amount
        for w in writes:
            if w.expected is None:
                self._records[w.key] = w.new
                self._collateral[w.key] = locked[w.key]
            elif w.new is None:
                del self._records[w.key]
                refund = self._collateral.pop(w.key, 0)
                assert w.close_to is not None
                self.fund_native(w.close_to, refund)
                returned[w.key] = refund
            else:
                self._records[w.key] = w.new
        return returned

    # -- snapshots -----------------------------------------------------------

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Deterministic plain-dict view of every record.

        Types with a registered encoder go through it; other dataclasses use
        ``dataclasses.asdict``.
        """
        out: Dict[str, Dict[str, Any]] = {}
        for key, record in self.items():
            encode = self._encoders.get(type(record))
            if encode is not None:
                body = encode(record)
            elif is_dataclass(record):
                body = asdict(record)
            else:
                body = dict(record)
            out[key] = {"type": type(record).__name__, "fields": body}
        return out

    def records_root(self) -> str:
        """sha256 over the canonical JSON encoding of ``snapshot()``."""
        return sha256_hex(domain_sep_bytes("records-root") + canonical_json_bytes(self.snapshot()))
