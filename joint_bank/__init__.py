"""
Joint Bank - multi-owner accounts with approval-gated withdrawals
"""

from .account import Account, WithdrawalRequest
from .bank import Bank
from .identity import Identity
from .rules import LedgerRules, MINIMUM_DEPOSIT, MAX_OWNERS, NATIVE_UNIT
from .settlement import Settlement

__version__ = "0.1.0"
__all__ = [
    "Account",
    "WithdrawalRequest",
    "Bank",
    "Identity",
    "LedgerRules",
    "MINIMUM_DEPOSIT",
    "MAX_OWNERS",
    "NATIVE_UNIT",
    "Settlement"
]
