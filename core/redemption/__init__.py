"""
Redemption protocol: Holder -> Publisher -> Exchange -> settlement.
"""

from .exchange import Exchange, rejection
from .holder import Holder
from .publisher import Publisher
from .settlement import InMemoryBillingLedger, SettlementSink
from .state import TRANSITIONS, SpendAttempt, SpendState
from .transport import ExchangeTransport, HttpExchangeTransport, InProcessTransport
from .verification import check_receipt

__all__ = [
    "Exchange",
    "rejection",
    "Holder",
    "Publisher",
    "InMemoryBillingLedger",
    "SettlementSink",
    "TRANSITIONS",
    "SpendAttempt",
    "SpendState",
    "ExchangeTransport",
    "HttpExchangeTransport",
    "InProcessTransport",
    "check_receipt",
]
