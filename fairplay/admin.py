"""
House operator helpers.

The operator publishes Keccak-256 of the house seed as the current house
commitment. Seed text follows the convention of
`fairplay.commit_reveal.house.decode_seed`: "0x…" that decodes as hex is
hashed as the decoded bytes, anything else (including "0x…" text that is
not hex) as its UTF-8 encoding.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .commit_reveal.commit import commitment_of
from .commit_reveal.house import decode_seed
from .ledger import Ledger
from .types.core import TxReceipt
from .utils.hexutil import to_hex

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HouseParams:
    edge_bps: int
    fee_bps: int
    commitment: bytes

    def to_dict(self) -> dict:
        return {
            "edge_bps": self.edge_bps,
            "fee_bps": self.fee_bps,
            "commitment": to_hex(self.commitment),
        }


def commitment_preview(seed: str) -> str:
    """0x-hex commitment the operator would publish for `seed`."""
    return to_hex(commitment_of(decode_seed(seed)))


async def rotate_house_commitment(ledger: Ledger, seed: str) -> TxReceipt:
    """
    Publish a new house commitment. Sessions committed under the previous
    commitment can no longer settle with the new seed.
    """
    commitment = commitment_of(decode_seed(seed))
    receipt = await ledger.set_current_house_commitment(commitment)
    log.info("house commitment rotated to %s tx=%s", to_hex(commitment), receipt.tx_hash)
    return receipt


async def read_house_params(ledger: Ledger) -> HouseParams:
    return HouseParams(
        edge_bps=int(await ledger.house_edge_bps()),
        fee_bps=int(await ledger.fee_bps()),
        commitment=bytes(await ledger.current_house_commitment()),
    )


__all__ = ["HouseParams", "commitment_preview", "rotate_house_commitment", "read_house_params"]
