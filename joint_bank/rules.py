import os
from dataclasses import dataclass

# 1 native unit = 10**18 base units
NATIVE_UNIT = 10**18

MINIMUM_DEPOSIT = NATIVE_UNIT // 100  # 0.01 native unit
MAX_OWNERS = 3

@dataclass
class LedgerRules:
    """Configurable policy for account creation and withdrawal approval"""

    minimum_deposit: int = MINIMUM_DEPOSIT
    max_owners: int = MAX_OWNERS

    # Approval policy
    min_approvals: int = 1
    require_all_co_owners: bool = False

    def __post_init__(self):
        if not (1 <= self.max_owners <= MAX_OWNERS):
            raise ValueError(f"max_owners must be between 1 and {MAX_OWNERS}, got {self.max_owners}")
        if self.min_approvals < 1:
            raise ValueError(f"min_approvals must be at least 1, got {self.min_approvals}")
        if self.minimum_deposit < 0:
            raise ValueError("minimum_deposit cannot be negative")

    @classmethod
    def standard(cls) -> 'LedgerRules':
        """One approval from any co-owner releases a withdrawal"""
        return cls()

    @classmethod
    def unanimous(cls) -> 'LedgerRules':
        """Every co-owner must approve a withdrawal"""
        return cls(require_all_co_owners=True)

    @classmethod
    def from_env(cls) -> 'LedgerRules':
        """Build rules from JOINT_BANK_* environment variables"""
        return cls(
            minimum_deposit=int(os.environ.get("JOINT_BANK_MINIMUM_DEPOSIT", MINIMUM_DEPOSIT)),
            min_approvals=int(os.environ.get("JOINT_BANK_MIN_APPROVALS", 1)),
            require_all_co_owners=os.environ.get("JOINT_BANK_REQUIRE_ALL", "").lower() in ("1", "true", "yes")
        )

    def required_approvals(self, owner_count: int) -> int:
        """Number of co-owner approvals needed on an account with owner_count owners"""
        if self.require_all_co_owners:
            return max(self.min_approvals, owner_count - 1)
        return self.min_approvals

    def check_owner_count(self, owner_count: int) -> tuple[bool, str]:
        if owner_count > self.max_owners:
            return False, f"At most {self.max_owners} owners allowed, got {owner_count}"
        return True, "Valid owner count"

    def check_deposit(self, amount: int) -> tuple[bool, str]:
        if amount < self.minimum_deposit:
            return False, f"Deposit {amount} below minimum {self.minimum_deposit}"
        return True, "Valid deposit"

    def check_approvals(self, approvals: int, owner_count: int) -> tuple[bool, str]:
        """Check whether a request has collected enough approvals"""
        required = self.required_approvals(owner_count)
        if approvals < required:
            return False, f"Need at least {required} approvals, got {approvals}"
        return True, "Approval threshold met"
