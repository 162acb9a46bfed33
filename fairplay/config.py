"""
Session engine configuration.

This file defines the typed configuration object and helpers for:
- Which game the engine settles (name and ledger game id)
- The default wager and balance polling interval
- The configured house seed (see `fairplay.commit_reveal.house`)
- Where recovery records are persisted

It provides:
- Dataclass-based config with validation
- Loading from environment variables (prefix configurable)
- Loading from a JSON or YAML file
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

import yaml

from .constants import DEFAULT_GAME, DEFAULT_POLL_INTERVAL_S, GAME_IDS

_STORE_SCHEMES = ("memory", "sqlite")


@dataclass
class FairplayConfig:
    """
    Engine settings:
      - game: game name; also the namespace of persisted recovery keys
      - game_id: ledger game id passed to settle_batch (derived from `game` if None)
      - wager: default wager per move, in the token's smallest unit
      - poll_interval_s: balance polling interval for SessionLedgerView
      - house_seed: configured house seed ("0x…" hex or UTF-8 text), if any
      - store_uri: "memory://" or "sqlite://<path>" for recovery records
    """

    game: str = DEFAULT_GAME
    game_id: Optional[int] = None
    wager: int = 10_000_000_000_000_000  # 0.01 of an 18-decimals token
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    house_seed: Optional[str] = None
    store_uri: str = "sqlite://./data/fairplay/sessions.db"

    def effective_game_id(self) -> int:
        """Return the ledger game id, deriving it from the game name if unset."""
        if self.game_id is not None:
            return self.game_id
        return GAME_IDS[self.game]

    def validate(self) -> None:
        if not self.game or any(c in self.game for c in ":/ "):
            raise ValueError("game must be a non-empty name without ':', '/' or spaces")
        if self.game_id is None and self.game not in GAME_IDS:
            raise ValueError(
                f"unknown game {self.game!r}; set game_id explicitly "
                f"(known: {', '.join(sorted(GAME_IDS))})"
            )
        if self.game_id is not None and self.game_id < 0:
            raise ValueError("game_id must be >= 0")
        if self.wager <= 0:
            raise ValueError("wager must be > 0")
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        if self.house_seed is not None and self.house_seed == "":
            raise ValueError("house_seed must be non-empty when set")
        if "://" not in self.store_uri:
            raise ValueError("store_uri must be a URI (e.g., sqlite://./sessions.db)")
        scheme = self.store_uri.split("://", 1)[0]
        if scheme not in _STORE_SCHEMES:
            raise ValueError(f"store_uri scheme must be one of {_STORE_SCHEMES}")

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self, *, redact: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if data["game_id"] is None:
            data["game_id"] = GAME_IDS.get(self.game)
        if redact and data.get("house_seed") is not None:
            data["house_seed"] = "***"
        return data

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_env(prefix: str = "FAIRPLAY_") -> "FairplayConfig":
        """
        Load configuration from environment variables. All variables are optional.

        Supported keys:
          - FAIRPLAY_GAME=crash
          - FAIRPLAY_GAME_ID=2
          - FAIRPLAY_WAGER=10000000000000000
          - FAIRPLAY_POLL_INTERVAL_S=12
          - FAIRPLAY_HOUSE_SEED=0x…   (or plain text)
          - FAIRPLAY_STORE_URI=sqlite://./data/fairplay/sessions.db
        """

        def _get(name: str, cast: Any, default: Any) -> Any:
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                return cast(raw)
            except Exception as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e

        cfg = FairplayConfig(
            game=_get("GAME", str, DEFAULT_GAME),
            game_id=_get("GAME_ID", int, None),
            wager=_get("WAGER", int, FairplayConfig.wager),
            poll_interval_s=_get("POLL_INTERVAL_S", float, DEFAULT_POLL_INTERVAL_S),
            house_seed=_get("HOUSE_SEED", str, None),
            store_uri=_get("STORE_URI", str, FairplayConfig.store_uri),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str) -> "FairplayConfig":
        """
        Load configuration from a JSON or YAML file. Keys mirror the dataclass
        fields. Example (YAML):

            game: crash
            wager: 10000000000000000
            poll_interval_s: 12
            store_uri: "sqlite://./data/fairplay/sessions.db"
        """
        text = _read_text(path)
        data = _parse_json_or_yaml(text, path)

        cfg = FairplayConfig(
            game=data.pop("game", DEFAULT_GAME),
            game_id=data.pop("game_id", None),
            wager=data.pop("wager", FairplayConfig.wager),
            poll_interval_s=data.pop("poll_interval_s", DEFAULT_POLL_INTERVAL_S),
            house_seed=data.pop("house_seed", None),
            store_uri=data.pop("store_uri", FairplayConfig.store_uri),
        )
        if data:
            raise ValueError(f"unknown config keys in {path!r}: {sorted(data)}")
        cfg.validate()
        return cfg


# -------------------------
# Utilities
# -------------------------


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_json_or_yaml(text: str, path_hint: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse {path_hint!r} as JSON or YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path_hint!r} must contain a mapping at the top level")
    return data


__all__ = ["FairplayConfig"]
