#!/usr/bin/env python3
"""
Example: Approval policies on a three-owner account
"""

from joint_bank.bank import Bank
from joint_bank.errors import LedgerError
from joint_bank.identity import Identity
from joint_bank.rules import LedgerRules, NATIVE_UNIT
from joint_bank.settlement import Settlement

def run_policy(name: str, rules: LedgerRules):
    print(f"📋 Policy: {name} ({rules.required_approvals(3)} approvals needed of 2 co-owners)")

    settlement = Settlement()
    alice, bob, carol = (Identity().address for _ in range(3))
    settlement.fund(alice, NATIVE_UNIT)

    bank = Bank(settlement, Identity.contract_address(alice, 0), rules)
    account_id = bank.create_account(alice, [bob, carol], NATIVE_UNIT // 10)

    request_id = bank.request_withdrawal(carol, account_id, NATIVE_UNIT // 20)
    bank.approve_withdrawal(alice, account_id, request_id)

    scenarios = [
        ('Carol withdraws with 1 approval', carol),
        ('Bob approves', None),
        ('Carol withdraws with 2 approvals', carol),
    ]

    for label, caller in scenarios:
        try:
            if caller is None:
                bank.approve_withdrawal(bob, account_id, request_id)
            else:
                bank.withdraw(caller, account_id, request_id)
            print(f"   ✅ {label}")
        except LedgerError as e:
            print(f"   ❌ {label}: {e}")

    print(f"   💰 Remaining balance: {bank.get_balance(account_id):,}")
    print()

def main():
    print("=== Testing Withdrawal Scenarios ===")
    print()

    run_policy("standard", LedgerRules.standard())
    run_policy("unanimous", LedgerRules.unanimous())

if __name__ == "__main__":
    main()
