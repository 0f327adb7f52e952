import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import Iterator, List, Optional, Sequence

from .account import Account, WithdrawalRequest
from .errors import (
    AlreadyWithdrawn,
    InsufficientDeposit,
    InsufficientFunds,
    InvalidAmount,
    InvalidOwnerSet,
    NotApproved,
    SelfApprovalForbidden,
    Unauthorized,
    UnknownAccount,
)
from .rules import LedgerRules
from .settlement import Settlement

logger = logging.getLogger(__name__)

class Bank:
    """
    Registry of joint accounts.

    Every public operation is atomic: if it raises, the accounts and the
    settlement balances are rolled back to where they were when it started.
    Mutating operations take the caller's address explicitly.
    """

    def __init__(self, settlement: Settlement, address: str, rules: Optional[LedgerRules] = None):
        self.settlement = settlement
        self.address = address
        self.rules = rules or LedgerRules.standard()
        self._accounts: List[Account] = []

    def __len__(self) -> int:
        return len(self._accounts)

    @contextmanager
    def _atomic(self, operation: str) -> Iterator[None]:
        account_states = [account.snapshot() for account in self._accounts]
        settlement_state = self.settlement.snapshot()
        try:
            yield
        except Exception as e:
            # Restore in place so callers further up a reentrant stack keep valid references
            del self._accounts[len(account_states):]
            for account, state in zip(self._accounts, account_states):
                account.restore(state)
            self.settlement.restore(settlement_state)
            logger.debug("Rejected %s: %s", operation, e)
            raise

    def _get_account(self, account_id: int) -> Account:
        if not (0 <= account_id < len(self._accounts)):
            raise UnknownAccount(f"No account with id {account_id}")
        return self._accounts[account_id]

    def create_account(self, caller: str, co_owners: Sequence[str], deposit_amount: int) -> int:
        """Open an account owned by caller and co_owners, funded by caller"""
        with self._atomic("create_account"):
            owners = [caller] + list(co_owners)

            is_valid, reason = self.rules.check_owner_count(len(owners))
            if not is_valid:
                raise InvalidOwnerSet(reason)
            if len(set(owners)) != len(owners):
                raise InvalidOwnerSet("Duplicate owners not allowed")

            is_valid, reason = self.rules.check_deposit(deposit_amount)
            if not is_valid:
                raise InsufficientDeposit(reason)

            self.settlement.transfer(caller, self.address, deposit_amount)
            account = Account(len(self._accounts), owners, balance=deposit_amount)
            self._accounts.append(account)

        logger.info("Created account %d for %d owners with %d deposited",
                    account.account_id, len(owners), deposit_amount)
        return account.account_id

    def deposit(self, caller: str, account_id: int, amount: int):
        """Add funds to an account, anyone may deposit"""
        with self._atomic("deposit"):
            account = self._get_account(account_id)
            if amount < 0:
                raise InvalidAmount(f"Deposit amount cannot be negative, got {amount}")
            self.settlement.transfer(caller, self.address, amount)
            account.balance += amount

        logger.info("Deposited %d into account %d", amount, account_id)

    def request_withdrawal(self, caller: str, account_id: int, amount: int) -> int:
        """Open a withdrawal request, returns the request id"""
        with self._atomic("request_withdrawal"):
            account = self._get_account(account_id)
            if not account.is_owner(caller):
                raise Unauthorized(f"{caller} is not an owner of account {account_id}")
            if amount <= 0:
                raise InvalidAmount(f"Withdrawal amount must be positive, got {amount}")
            # Checked now only, the amount is not reserved
            if amount > account.balance:
                raise InsufficientFunds(f"Insufficient balance: need {amount}, have {account.balance}")

            request_id = account.add_request(WithdrawalRequest(amount=amount, requested_by=caller))

        logger.info("Request %d on account %d for %d", request_id, account_id, amount)
        return request_id

    def approve_withdrawal(self, caller: str, account_id: int, request_id: int):
        """Approve another owner's withdrawal request"""
        with self._atomic("approve_withdrawal"):
            account = self._get_account(account_id)
            request = account.get_request(request_id)
            if not account.is_owner(caller):
                raise Unauthorized(f"{caller} is not an owner of account {account_id}")
            if caller == request.requested_by:
                raise SelfApprovalForbidden("Owners cannot approve their own withdrawal")
            if request.withdrawn:
                raise AlreadyWithdrawn(f"Request {request_id} has already been withdrawn")

            added = request.add_approval(caller)

        if added:
            logger.info("Request %d on account %d approved (%d approvals)",
                        request_id, account_id, request.approvals)
        else:
            logger.debug("Duplicate approval of request %d on account %d ignored", request_id, account_id)

    def get_approvals(self, account_id: int, request_id: int) -> int:
        """Number of co-owners that approved a request"""
        return self._get_account(account_id).get_request(request_id).approvals

    def withdraw(self, caller: str, account_id: int, request_id: int):
        """Execute an approved request, paying its amount to the requester"""
        with self._atomic("withdraw"):
            account = self._get_account(account_id)
            request = account.get_request(request_id)
            if caller != request.requested_by:
                raise Unauthorized("Only the requester can execute a withdrawal")
            if request.withdrawn:
                raise AlreadyWithdrawn(f"Request {request_id} has already been withdrawn")

            is_valid, reason = self.rules.check_approvals(request.approvals, len(account.owners))
            if not is_valid:
                raise NotApproved(reason)

            if request.amount > account.balance:
                raise InsufficientFunds(f"Insufficient balance: need {request.amount}, have {account.balance}")

            # State changes must land before value leaves the bank
            request.withdrawn = True
            account.balance -= request.amount
            self.settlement.transfer(self.address, request.requested_by, request.amount)

        logger.info("Withdrew %d from account %d (request %d)", request.amount, account_id, request_id)

    def get_accounts(self, caller: str) -> List[int]:
        """Ids of every account caller owns, in creation order"""
        return [account.account_id for account in self._accounts if account.is_owner(caller)]

    def get_balance(self, account_id: int) -> int:
        return self._get_account(account_id).balance

    def get_account(self, account_id: int) -> Account:
        return self._get_account(account_id)

    def to_dict(self) -> dict:
        """Serialize registry state to dictionary"""
        return {
            'address': self.address,
            'rules': asdict(self.rules),
            'accounts': [account.to_dict() for account in self._accounts]
        }

    @classmethod
    def from_dict(cls, data: dict, settlement: Settlement) -> 'Bank':
        """Deserialize registry state from dictionary"""
        bank = cls(settlement, data['address'], LedgerRules(**data['rules']))
        for position, account_data in enumerate(data['accounts']):
            account = Account.from_dict(account_data)
            if account.account_id != position:
                raise ValueError(f"Account {account.account_id} stored at position {position}")
            bank._accounts.append(account)
        return bank
