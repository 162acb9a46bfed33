"""
Explicit result variants for multi-step ledger preparations.

Some preparations have an expected "not yet" outcome that is not an error
(e.g. tokens that refuse to change a non-zero allowance to another non-zero
value until it is reset to zero). Those outcomes are values, not exceptions,
so a retry is always a visible second attempt with its precondition spelled
out at the call site:

    res = await try_approve(...)
    if isinstance(res, NeedsReset):
        await token.approve(spender, 0)
        res = await try_approve(...)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class Ok:
    """The step completed (or was already satisfied)."""

    changed: bool = False


@dataclass(frozen=True, slots=True)
class NeedsReset:
    """The step requires a reset to zero before it can be attempted again."""

    current: int


@dataclass(frozen=True, slots=True)
class Failed:
    """The step failed for a reason that a reset will not fix."""

    reason: str


StepResult = Union[Ok, NeedsReset, Failed]

__all__ = ["Ok", "NeedsReset", "Failed", "StepResult"]
