from dataclasses import dataclass, field, asdict
from typing import List

from .errors import InvalidOwnerSet, UnknownRequest
from .rules import MAX_OWNERS

@dataclass
class WithdrawalRequest:
    """Request to release funds from a joint account"""
    amount: int
    requested_by: str  # owner address
    approvers: List[str] = field(default_factory=list)
    withdrawn: bool = False

    @property
    def approvals(self) -> int:
        return len(self.approvers)

    def has_approved(self, identity: str) -> bool:
        return identity in self.approvers

    def add_approval(self, identity: str) -> bool:
        """Record an approval, returns False if identity had already approved"""
        if identity in self.approvers:
            return False
        self.approvers.append(identity)
        return True

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'WithdrawalRequest':
        return cls(
            amount=data['amount'],
            requested_by=data['requested_by'],
            approvers=list(data.get('approvers', [])),
            withdrawn=data.get('withdrawn', False)
        )

@dataclass
class Account:
    """Pooled balance held by one to three co-owners"""
    account_id: int
    owners: List[str]  # creator first
    balance: int = 0
    requests: List[WithdrawalRequest] = field(default_factory=list)

    def __post_init__(self):
        if not self.owners:
            raise InvalidOwnerSet("An account needs at least one owner")
        if len(self.owners) > MAX_OWNERS:
            raise InvalidOwnerSet(f"At most {MAX_OWNERS} owners allowed, got {len(self.owners)}")
        if len(set(self.owners)) != len(self.owners):
            raise InvalidOwnerSet("Duplicate owners not allowed")
        if self.balance < 0:
            raise ValueError("Balance cannot be negative")

    @property
    def creator(self) -> str:
        return self.owners[0]

    def is_owner(self, identity: str) -> bool:
        """Check if identity is one of the account owners"""
        return identity in self.owners

    def get_request(self, request_id: int) -> WithdrawalRequest:
        if not (0 <= request_id < len(self.requests)):
            raise UnknownRequest(f"Account {self.account_id} has no request {request_id}")
        return self.requests[request_id]

    def add_request(self, request: WithdrawalRequest) -> int:
        """Append a request and return its id (its position)"""
        self.requests.append(request)
        return len(self.requests) - 1

    def snapshot(self) -> dict:
        """Capture mutable state for rollback"""
        return {
            'balance': self.balance,
            'requests': [(len(r.approvers), r.withdrawn) for r in self.requests]
        }

    def restore(self, state: dict):
        """Roll mutable state back in place, keeping object identity"""
        self.balance = state['balance']
        del self.requests[len(state['requests']):]
        for request, (approvals, withdrawn) in zip(self.requests, state['requests']):
            del request.approvers[approvals:]
            request.withdrawn = withdrawn

    def to_dict(self) -> dict:
        """Serialize account to dictionary"""
        return {
            'account_id': self.account_id,
            'owners': list(self.owners),
            'balance': self.balance,
            'requests': [r.to_dict() for r in self.requests]
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Account':
        """Deserialize account from dictionary"""
        return cls(
            account_id=data['account_id'],
            owners=list(data['owners']),
            balance=data['balance'],
            requests=[WithdrawalRequest.from_dict(r) for r in data.get('requests', [])]
        )
