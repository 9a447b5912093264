"""
Delegated pool authority and ticket addresses.

A pool's vault is owned by an address nobody holds a key for. It is derived
deterministically from ``(pool_id, admin, bump)`` and recomputed whenever the
engine needs to move funds out of the vault; it is never stored. The
``PoolAuthority`` capability carries the seeds, and the transfer collaborator
accepts it only if re-deriving the address from those seeds matches the owner
of the source account.

Ticket addresses are derived the same way from ``(pool_id, staker, bump)``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.pool import ErrorCode, StakePoolError
from ..core.pool.math import is_u8
from ..state.canonical import domain_sep_bytes, encode_str, sha256_hex

_POOL_AUTHORITY_DOMAIN = "pool-authority"
_TICKET_DOMAIN = "ticket"


def _require_bump(bump: int) -> int:
    if not is_u8(bump):
        raise StakePoolError(ErrorCode.INVALID_BUMP, f"bump must be in 0..255, got {bump!r}")
    return bump


def _derive(domain: str, *seeds: str, bump: int) -> str:
    data = domain_sep_bytes(domain) + b"".join(encode_str(s) for s in seeds) + bytes([_require_bump(bump)])
    return sha256_hex(data)


@dataclass(frozen=True)
class PoolAuthority:
    """Signing capability of one pool over its vault."""

    pool_id: str
    admin: str
    bump: int

    @property
    def address(self) -> str:
        return _derive(_POOL_AUTHORITY_DOMAIN, self.pool_id, self.admin, bump=self.bump)


def derive_pool_authority(pool_id: str, admin: str, bump: int) -> PoolAuthority:
    _require_bump(bump)
    return PoolAuthority(pool_id=pool_id, admin=admin, bump=bump)


def derive_ticket_address(pool_id: str, staker: str, bump: int) -> str:
    return _derive(_TICKET_DOMAIN, pool_id, staker, bump=bump)


def principal_address(principal: "str | PoolAuthority") -> str:
    """Identity a principal acts as: a plain identity, or the re-derived authority address."""
    if isinstance(principal, PoolAuthority):
        return principal.address
    if not isinstance(principal, str) or not principal:
        raise TypeError(f"principal must be a non-empty str or PoolAuthority, got {principal!r}")
    return principal
