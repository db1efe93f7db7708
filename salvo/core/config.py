"""
salvo: Dev and Strict settlement modes.

Dev mode:    Null seals accepted, accept-all backend allowed. Local play only.
Strict mode: Production. Every submission needs a non-empty certificate
             from a production backend.

Sources, in the order callers usually try them:
    load_config(path)      YAML file
    config_from_env()      SALVO_MODE / SALVO_STORE
    init_strict_config()   hard default
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from salvo.core.exceptions import SalvoError


class SettlementMode(Enum):
    DEV    = "dev"
    STRICT = "strict"


class SalvoConfigError(SalvoError):
    """Raised when a configuration source is invalid."""
    kind = "config_error"


@dataclass
class LedgerConfig:
    mode:            SettlementMode
    allow_null_seal: bool
    store_path:      Optional[Path] = None

    def __post_init__(self) -> None:
        if self.mode == SettlementMode.STRICT and self.allow_null_seal:
            raise SalvoConfigError(
                "allow_null_seal is only permitted in dev mode"
            )

    @property
    def is_dev(self) -> bool:
        return self.mode == SettlementMode.DEV


# ─────────────────────────────────────────────────────────────
# Factory Functions
# ─────────────────────────────────────────────────────────────

def init_dev_config(store_path: Optional[Path] = None) -> LedgerConfig:
    return LedgerConfig(
        mode=            SettlementMode.DEV,
        allow_null_seal= True,
        store_path=      Path(store_path) if store_path else None,
    )


def init_strict_config(store_path: Optional[Path] = None) -> LedgerConfig:
    return LedgerConfig(
        mode=            SettlementMode.STRICT,
        allow_null_seal= False,
        store_path=      Path(store_path) if store_path else None,
    )


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> LedgerConfig:
    """Read SALVO_MODE (default strict) and SALVO_STORE."""
    env   = os.environ if environ is None else environ
    mode  = env.get("SALVO_MODE", "strict").strip().lower()
    store = env.get("SALVO_STORE") or None

    if mode == SettlementMode.DEV.value:
        return init_dev_config(store)
    if mode == SettlementMode.STRICT.value:
        return init_strict_config(store)
    raise SalvoConfigError(
        f"SALVO_MODE must be 'dev' or 'strict', got {mode!r}"
    )


def load_config(path: Path) -> LedgerConfig:
    """
    Load a ledger config from YAML:

        mode: strict            # or dev
        allow_null_seal: false  # dev only
        store_path: sessions.jsonl
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise SalvoConfigError(f"Malformed YAML in {path}: {exc}") from exc

    return _config_from_mapping(raw or {}, source=str(path))


def _config_from_mapping(raw: Any, source: str) -> LedgerConfig:
    if not isinstance(raw, dict):
        raise SalvoConfigError(f"Config {source} must be a mapping")

    unknown = sorted(set(raw) - {"mode", "allow_null_seal", "store_path"})
    if unknown:
        raise SalvoConfigError(
            f"Unknown config keys in {source}", {"unknown": unknown}
        )

    try:
        mode = SettlementMode(str(raw.get("mode", "strict")).lower())
    except ValueError as exc:
        raise SalvoConfigError(
            f"Config {source}: mode must be 'dev' or 'strict'"
        ) from exc

    allow_null_seal = raw.get("allow_null_seal", mode == SettlementMode.DEV)
    if not isinstance(allow_null_seal, bool):
        raise SalvoConfigError(
            f"Config {source}: allow_null_seal must be a boolean"
        )

    store_path = raw.get("store_path")
    return LedgerConfig(
        mode=            mode,
        allow_null_seal= allow_null_seal,
        store_path=      Path(store_path) if store_path else None,
    )
