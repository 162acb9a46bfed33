"""
Payout arithmetic and receipt decoding.

Projected payout (display only; the ledger is authoritative):

    gross      = wager * (1 + wins)
    after_edge = gross * (10000 - edge_bps) // 10000
    fee        = after_edge * fee_bps // 10000
    payout     = after_edge - fee

Integer floor division throughout, matching the ledger's uint256 math.
"""

from __future__ import annotations

from ..constants import BPS_DENOMINATOR
from ..types.core import TxReceipt


def _check_bps(name: str, v: int) -> None:
    if not 0 <= v <= BPS_DENOMINATOR:
        raise ValueError(f"{name} must be within 0..{BPS_DENOMINATOR} (got {v})")


def projected_payout(wager: int, wins: int, edge_bps: int = 0, fee_bps: int = 0) -> int:
    if wager < 0:
        raise ValueError("wager must be non-negative")
    _check_bps("edge_bps", edge_bps)
    _check_bps("fee_bps", fee_bps)
    if wins <= 0:
        return 0
    gross = wager * (1 + wins)
    after_edge = gross * (BPS_DENOMINATOR - edge_bps) // BPS_DENOMINATOR
    fee = after_edge * fee_bps // BPS_DENOMINATOR
    return after_edge - fee


def realized_payout(receipt: TxReceipt, account: str, game_id: int) -> int:
    """
    Payout credited by a settlement. Uses the receipt's direct value when the
    ledger returns one, otherwise sums the account's `GamePlayed` events.
    """
    if receipt.payout is not None:
        return receipt.payout
    acct = account.lower()
    return sum(
        ev.payout
        for ev in receipt.events
        if ev.game_id == game_id and ev.account.lower() == acct
    )


__all__ = ["projected_payout", "realized_payout"]
