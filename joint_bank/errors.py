"""
Rejections raised by the joint bank ledger.

Every error is a normal, expected rejection: the operation that raised it is
rolled back in full and nothing is retried.
"""


class LedgerError(ValueError):
    """Base class for all ledger rejections"""


class InvalidOwnerSet(LedgerError):
    """Too many owners, or a duplicate identity among them"""


class InsufficientDeposit(LedgerError):
    """Opening deposit below the configured minimum"""


class UnknownAccount(LedgerError):
    pass


class UnknownRequest(LedgerError):
    pass


class Unauthorized(LedgerError):
    """Caller is not allowed to perform the operation"""


class InsufficientFunds(LedgerError):
    pass


class InvalidAmount(LedgerError):
    """Withdrawal amounts must be positive"""


class SelfApprovalForbidden(LedgerError):
    pass


class AlreadyWithdrawn(LedgerError):
    pass


class NotApproved(LedgerError):
    pass


class TransferFailed(LedgerError):
    """Native value transfer rejected by the settlement environment"""
