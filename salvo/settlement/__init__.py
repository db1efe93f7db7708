"""
salvo Settlement - exactly-once recording of a session's winner.
"""

from salvo.settlement.ledger import SettlementHooks, SettlementLedger

__all__ = ["SettlementHooks", "SettlementLedger"]
