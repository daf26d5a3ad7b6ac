"""
Ledger directory configuration.

A ledger directory holds:
- waterledger.toml: owner identity and the genesis role grants
- journal.jsonl: hash-chained transaction journal
- events.jsonl: emitted domain events

Example waterledger.toml:

    owner = "authority:water-board"

    [genesis]
    verifiers = ["lab:north"]
    distributors = ["truck:07"]
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "waterledger.toml"
DEFAULT_LEDGER_DIR = ".waterledger"
ENV_LEDGER_DIR = "WATERLEDGER_DIR"


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _coerce_identities(value: Any, name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) and v.strip() for v in value):
        raise ValueError(f"genesis.{name} must be a list of non-empty strings")
    return tuple(dict.fromkeys(v.strip() for v in value))


@dataclass(frozen=True)
class LedgerConfig:
    """
    Owner and genesis grants. Identities are stripped and deduplicated;
    a blank owner or genesis identity raises ValueError.
    """

    owner: str
    verifiers: tuple[str, ...] = ()
    distributors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        owner = self.owner.strip() if isinstance(self.owner, str) else ""
        if not owner:
            raise ValueError("owner is required")
        object.__setattr__(self, "owner", owner)
        object.__setattr__(self, "verifiers", _coerce_identities(self.verifiers, "verifiers"))
        object.__setattr__(self, "distributors", _coerce_identities(self.distributors, "distributors"))

    def to_toml(self) -> str:
        # JSON string/array syntax is valid TOML for these values
        return "\n".join([
            f"owner = {json.dumps(self.owner)}",
            "",
            "[genesis]",
            f"verifiers = {json.dumps(list(self.verifiers))}",
            f"distributors = {json.dumps(list(self.distributors))}",
            "",
        ])


def load_config(path: Path) -> LedgerConfig:
    """
    Load ledger configuration from TOML.

    Raises:
        FileNotFoundError: no config file at `path`
        ValueError: owner is missing or a genesis list is malformed
    """
    import tomllib

    data = tomllib.loads(path.read_text(encoding="utf-8"))
    genesis = _coerce_dict(data.get("genesis"))
    return LedgerConfig(
        owner=str(data.get("owner", "")),
        verifiers=genesis.get("verifiers"),
        distributors=genesis.get("distributors"),
    )


def write_config(path: Path, config: LedgerConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.to_toml(), encoding="utf-8")


def resolve_ledger_dir(explicit: Path | None = None) -> Path:
    """Pick the ledger directory: explicit path, then $WATERLEDGER_DIR, then ./.waterledger."""
    if explicit is not None:
        return explicit.resolve()
    env = os.environ.get(ENV_LEDGER_DIR)
    if env:
        return Path(env).resolve()
    return (Path.cwd() / DEFAULT_LEDGER_DIR).resolve()
