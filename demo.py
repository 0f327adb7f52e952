#!/usr/bin/env python3
"""
Complete demo of the joint bank
"""

import logging

from joint_bank.deployment import deploy
from joint_bank.errors import LedgerError
from joint_bank.identity import Identity
from joint_bank.rules import LedgerRules, NATIVE_UNIT
from joint_bank.settlement import Settlement

def fmt(amount: int) -> str:
    return f"{amount / NATIVE_UNIT:.4f}"

def attempt(label: str, operation, *args):
    """Run an operation, printing whether it was accepted"""
    try:
        result = operation(*args)
        print(f"   ✅ {label}")
        return result
    except LedgerError as e:
        print(f"   ❌ {label}: {type(e).__name__} ({e})")
        return None

def main():
    logging.basicConfig(level=logging.WARNING)

    print("=" * 60)
    print("🏦 JOINT BANK - COMPLETE DEMO")
    print("=" * 60)
    print()

    # Step 1: Setup
    print("🔧 STEP 1: Setting up participants")
    print("-" * 40)

    settlement = Settlement()
    participants = {}
    for name in ("Alice", "Bob", "Carol", "Dave"):
        identity = Identity()
        settlement.fund(identity.address, NATIVE_UNIT)
        participants[name] = identity
        print(f"✅ {name}: {identity.address} ({fmt(settlement.balance_of(identity.address))} funded)")

    alice, bob, carol, dave = (participants[n].address for n in ("Alice", "Bob", "Carol", "Dave"))
    print()

    # Step 2: Deploy
    print("🏗️  STEP 2: Deploying the bank")
    print("-" * 40)

    deployer = Identity()
    bank = deploy(deployer, settlement, LedgerRules.standard())
    print(f"✅ Bank address: {bank.address}")
    print(f"✅ Minimum deposit: {fmt(bank.rules.minimum_deposit)}")
    print()

    # Step 3: Accounts
    print("📒 STEP 3: Opening accounts")
    print("-" * 40)

    deposit = 5 * NATIVE_UNIT // 100
    account_id = attempt("Alice opens an account with Bob", bank.create_account, alice, [bob], deposit)
    attempt("Alice opens an account with four owners", bank.create_account, alice, [bob, carol, dave], deposit)
    attempt("Alice opens an account with a tiny deposit", bank.create_account, alice, [], 5_000)
    attempt("Dave deposits into Alice and Bob's account", bank.deposit, dave, account_id, NATIVE_UNIT // 100)
    print(f"   💰 Account balance: {fmt(bank.get_balance(account_id))}")
    print()

    # Step 4: Withdrawals
    print("💸 STEP 4: Withdrawal workflow")
    print("-" * 40)

    amount = 2 * NATIVE_UNIT // 100
    request_id = attempt("Alice requests a withdrawal", bank.request_withdrawal, alice, account_id, amount)
    attempt("Alice withdraws before approval", bank.withdraw, alice, account_id, request_id)
    attempt("Alice approves her own request", bank.approve_withdrawal, alice, account_id, request_id)
    attempt("Carol approves (not an owner)", bank.approve_withdrawal, carol, account_id, request_id)
    attempt("Bob approves", bank.approve_withdrawal, bob, account_id, request_id)
    print(f"   🗳️  Approvals: {bank.get_approvals(account_id, request_id)}")
    attempt("Alice withdraws", bank.withdraw, alice, account_id, request_id)
    attempt("Alice withdraws again", bank.withdraw, alice, account_id, request_id)
    print()

    # Summary
    print("📊 SUMMARY")
    print("-" * 40)
    print(f"   Account balance: {fmt(bank.get_balance(account_id))}")
    print(f"   Bank holdings: {fmt(settlement.balance_of(bank.address))}")
    for name, identity in participants.items():
        print(f"   {name}: {fmt(settlement.balance_of(identity.address))} "
              f"(accounts: {bank.get_accounts(identity.address)})")
    print()
    print("✅ Demo complete!")

if __name__ == "__main__":
    main()
