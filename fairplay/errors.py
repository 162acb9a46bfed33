"""
Session engine errors.

This module defines a small, typed hierarchy of exceptions raised by the
commit–reveal session engine (start → play → settle → recover). Callers can
catch the base `SessionError` to handle every engine error, or catch the
concrete subclasses for more granular control.

Every error carries a stable `code` so UIs and logs can branch on it without
parsing messages. Only balance reads fail silently elsewhere in the package;
everything defined here is surfaced to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import REASON_ACTIVE_SESSION


class SessionError(Exception):
    """Base class for all session engine errors."""

    code: str = "SESSION_ERROR"


@dataclass(eq=False)
class ConnectivityError(SessionError):
    """
    Raised when no wallet/signer account is connected.

    Attributes:
        action: The operation that needed an account (e.g. 'start', 'deposit').
    """

    action: str
    code = "CONNECTIVITY"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"ConnectivityError: connect a wallet before '{self.action}'"


@dataclass(eq=False)
class InsufficientFunds(SessionError):
    """
    Raised when the spendable balance cannot cover a wager or deposit.

    Attributes:
        required: Amount needed by the action.
        available: Amount currently spendable.
    """

    required: int
    available: int
    code = "INSUFFICIENT_FUNDS"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"InsufficientFunds: required={self.required} "
            f"available={self.available}"
        )


@dataclass(eq=False)
class HouseCommitmentUnset(SessionError):
    """Raised when the ledger has no house commitment published (zero/absent)."""

    code = "HOUSE_COMMITMENT_UNSET"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return "HouseCommitmentUnset: ask the operator to publish a house commitment"


@dataclass(eq=False)
class HouseCommitmentMismatch(SessionError):
    """
    Raised when the house secret does not hash to the commitment captured at
    commit time (the house commitment was rotated or the secret is wrong).

    Attributes:
        expected_hex: Commitment captured when the session committed.
        got_hex: Keccak-256 of the house secret available now.
    """

    expected_hex: str
    got_hex: str
    code = "HOUSE_COMMITMENT_MISMATCH"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"HouseCommitmentMismatch: expected={self.expected_hex} "
            f"got={self.got_hex}"
        )


@dataclass(eq=False)
class SessionAlreadyActive(SessionError):
    """
    Raised when a session is already live for the account.

    Attributes:
        account: The account with the live session.
        recoverable: True when a local secret is available and `recover()`
            can resume the session without manual input.
    """

    account: str
    recoverable: bool = True
    code = "SESSION_ALREADY_ACTIVE"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        hint = "call recover()" if self.recoverable else "supply the session secret to recover()"
        return f"SessionAlreadyActive: account={self.account} ({hint})"


@dataclass(eq=False)
class TransactionRejected(SessionError):
    """
    Raised when the ledger reverts a transaction. The reason is surfaced
    verbatim; the engine never retries.

    Attributes:
        reason: Revert reason reported by the ledger.
        action: Ledger method that was rejected, if known.
    """

    reason: str
    action: Optional[str] = None
    code = "TRANSACTION_REJECTED"

    @property
    def is_active_session(self) -> bool:
        return REASON_ACTIVE_SESSION in self.reason

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        where = f" action={self.action}" if self.action else ""
        return f"TransactionRejected:{where} reason={self.reason}"


@dataclass(eq=False)
class InvalidSecretFormat(SessionError):
    """
    Raised when a secret (or commitment) supplied as text is not valid hex of
    the expected length.

    Attributes:
        reason: Short explanation (e.g. 'not-hex', 'length').
    """

    reason: str
    code = "INVALID_SECRET_FORMAT"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"InvalidSecretFormat: {self.reason}"


@dataclass(eq=False)
class UserCommitmentMismatch(SessionError):
    """
    Raised when a recovered secret does not hash to the commitment the ledger
    holds for the account.
    """

    account: str
    expected_hex: str
    got_hex: str
    code = "USER_COMMITMENT_MISMATCH"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return (
            f"UserCommitmentMismatch: account={self.account} "
            f"expected={self.expected_hex} got={self.got_hex}"
        )


@dataclass(eq=False)
class InvalidTransition(SessionError):
    """
    Raised when an operation is not valid in the session's current status.

    Attributes:
        action: The attempted operation.
        status: The session status name at the time of the attempt.
    """

    action: str
    status: str
    code = "INVALID_TRANSITION"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"InvalidTransition: cannot {self.action} while {self.status}"


@dataclass(eq=False)
class SessionBusy(SessionError):
    """Raised on a re-entrant call while a ledger operation is outstanding."""

    action: str
    pending: str
    code = "SESSION_BUSY"

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"SessionBusy: cannot {self.action} while {self.pending} is outstanding"


__all__ = [
    "SessionError",
    "ConnectivityError",
    "InsufficientFunds",
    "HouseCommitmentUnset",
    "HouseCommitmentMismatch",
    "SessionAlreadyActive",
    "TransactionRejected",
    "InvalidSecretFormat",
    "UserCommitmentMismatch",
    "InvalidTransition",
    "SessionBusy",
]
