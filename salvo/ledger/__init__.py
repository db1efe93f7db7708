"""
salvo Session Stores - where SettlementLedger keeps its records.
"""

from salvo.ledger.store import GENESIS_HASH, JsonlSessionStore, SessionStore

__all__ = ["GENESIS_HASH", "JsonlSessionStore", "SessionStore"]
