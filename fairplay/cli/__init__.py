"""
fairplay.cli
------------

Small convenience CLI around the session engine.

Commands:
  - secret     : Generate a fresh session secret and its commitment.
  - commitment : Show the commitment an operator would publish for a house seed.
  - outcomes   : Predict the first N move outcomes for a secret pair.
  - simulate   : Play one full session against the in-process reference ledger.

Output is JSON on stdout. Logging goes to stderr and is configured by
LOG_LEVEL / LOG_FORMAT (see `fairplay.logging`).

Example:
  python -m fairplay.cli commitment houseSeed
  python -m fairplay.cli simulate --balance 100 --wager 10 --moves 3 --house-seed houseSeed
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

import typer

from ..admin import commitment_preview
from ..commit_reveal.commit import commitment_hex, generate_secret, parse_secret
from ..commit_reveal.house import StaticHouseSecret, decode_seed
from ..commit_reveal.outcome import move_outcomes
from ..errors import SessionError
from ..ledger.memory import InMemoryHouse
from ..logging import bind_session_context, clear_session_context, get_logger, setup_logging
from ..session.machine import SessionStateMachine
from ..session.persistence import KeyValueSessionStore
from ..session.signals import BalanceSignal
from ..store.memory import MemoryKeyValue
from ..utils.hexutil import to_hex

__all__ = ["app", "main"]

_DEFAULT_ACCOUNT = "0x" + "ab" * 20

app = typer.Typer(
    name="fairplay",
    help="Provably-fair commit–reveal session tools.",
    no_args_is_help=True,
    add_completion=False,
)


def _echo(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


@app.callback()
def _root(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL."),
) -> None:
    setup_logging(level=log_level.upper() if log_level else None)


@app.command("secret")
def cmd_secret() -> None:
    """Generate a fresh 32-byte session secret and its commitment."""
    secret = generate_secret()
    _echo({"secret": to_hex(secret), "commitment": commitment_hex(secret)})


@app.command("commitment")
def cmd_commitment(
    seed: str = typer.Argument(..., help="House seed: 0x-hex bytes or plain text."),
) -> None:
    """Show Keccak-256 of a house seed (what the operator publishes)."""
    try:
        _echo({"commitment": commitment_preview(seed)})
    except SessionError as e:
        raise typer.BadParameter(str(e)) from e


@app.command("outcomes")
def cmd_outcomes(
    user_secret: str = typer.Option(..., "--user-secret", "-u", help="0x-hex session secret (32 bytes)."),
    house_seed: str = typer.Option(..., "--house-seed", help="House seed: 0x-hex or plain text."),
    account: str = typer.Option(_DEFAULT_ACCOUNT, "--account", "-a", help="Player account (0x-hex address)."),
    count: int = typer.Option(5, "--count", "-n", min=1, max=1000, help="Number of moves."),
) -> None:
    """Predict win/loss for move indices 0..count-1."""
    try:
        secret = parse_secret(user_secret)
        house = decode_seed(house_seed)
    except SessionError as e:
        raise typer.BadParameter(str(e)) from e
    wins = move_outcomes(secret, house, account, count)
    _echo({"account": account, "outcomes": ["win" if w else "loss" for w in wins]})


async def _simulate(balance: int, wager: int, moves: int, house_seed: str, account: str) -> Dict[str, Any]:
    log = get_logger("fairplay.cli")
    house_src = StaticHouseSecret(house_seed)
    house = InMemoryHouse(owner=account)
    house.publish_house_seed(house_src.house_secret())
    house.credit(account, balance)
    ledger = house.connect(account)

    machine = SessionStateMachine(
        ledger,
        store=KeyValueSessionStore(MemoryKeyValue()),
        house=house_src,
        wager=wager,
        signal=BalanceSignal(),
    )
    bind_session_context(account=account, game=machine.game)
    try:
        await machine.refresh_rates()
        await machine.start()
        played: List[Dict[str, Any]] = []
        for _ in range(moves):
            res = machine.play()
            played.append({"index": res.index, "wager": res.wager, "win": res.win})
            if not res.win:
                break
        settlement = await machine.settle()
        log.info("simulation_settled", moves=len(played))
    finally:
        clear_session_context("account", "game")

    return {
        "account": account,
        "moves": played,
        "payout": settlement.payout if settlement else 0,
        "balance": house.balance(account),
        "tx": settlement.receipt.tx_hash if settlement else None,
    }


@app.command("simulate")
def cmd_simulate(
    balance: int = typer.Option(100, "--balance", min=0, help="Starting house balance."),
    wager: int = typer.Option(10, "--wager", min=1, help="Wager per move."),
    moves: int = typer.Option(3, "--moves", min=1, help="Maximum moves (stops at the first loss)."),
    house_seed: str = typer.Option("houseSeed", "--house-seed", help="House seed: 0x-hex or plain text."),
    account: str = typer.Option(_DEFAULT_ACCOUNT, "--account", "-a", help="Player account (0x-hex address)."),
) -> None:
    """Play one session against the in-process reference ledger and settle it."""
    try:
        result = asyncio.run(_simulate(balance, wager, moves, house_seed, account))
    except SessionError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    _echo(result)


def main(argv: Optional[Sequence[str]] = None) -> None:  # pragma: no cover - thin wrapper
    """Entry-point to run as `python -m fairplay.cli`."""
    try:
        app(args=list(argv) if argv is not None else None, prog_name="fairplay")
    except KeyboardInterrupt:
        typer.echo("", err=True)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    main()
