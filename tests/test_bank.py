import unittest

from joint_bank.bank import Bank
from joint_bank.errors import (
    AlreadyWithdrawn,
    InsufficientDeposit,
    InsufficientFunds,
    InvalidAmount,
    InvalidOwnerSet,
    NotApproved,
    SelfApprovalForbidden,
    TransferFailed,
    Unauthorized,
    UnknownAccount,
    UnknownRequest,
)
from joint_bank.identity import Identity
from joint_bank.rules import LedgerRules, NATIVE_UNIT
from joint_bank.settlement import Settlement

DEPOSIT_0_05 = 5 * NATIVE_UNIT // 100
AMOUNT_0_06 = 6 * NATIVE_UNIT // 100

class BankTestCase(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.settlement = Settlement()
        self.addresses = [Identity().address for _ in range(4)]
        for address in self.addresses:
            self.settlement.fund(address, NATIVE_UNIT)

        self.bank = Bank(self.settlement, Identity.contract_address(self.addresses[0], 0))

    def create_account(self, owners=1, deposit=DEPOSIT_0_05) -> int:
        creator, *others = self.addresses
        return self.bank.create_account(creator, others[:owners - 1], deposit)

class TestCreateAccount(BankTestCase):

    def test_create_without_co_owners(self):
        account_id = self.create_account()

        self.assertEqual(account_id, 0)
        self.assertEqual(self.bank.get_accounts(self.addresses[0]), [0])
        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05)

    def test_create_with_two_and_three_owners(self):
        self.create_account(owners=2)
        self.create_account(owners=3)

        self.assertEqual(self.bank.get_accounts(self.addresses[0]), [0, 1])
        self.assertEqual(self.bank.get_accounts(self.addresses[1]), [0, 1])
        self.assertEqual(self.bank.get_accounts(self.addresses[2]), [1])
        self.assertEqual(self.bank.get_account(1).owners, self.addresses[:3])

    def test_deposit_moves_value_into_bank(self):
        self.create_account()

        self.assertEqual(self.settlement.balance_of(self.addresses[0]), NATIVE_UNIT - DEPOSIT_0_05)
        self.assertEqual(self.settlement.balance_of(self.bank.address), DEPOSIT_0_05)

    def test_four_owners_rejected(self):
        with self.assertRaises(InvalidOwnerSet):
            self.create_account(owners=4)
        self.assertEqual(len(self.bank), 0)

    def test_duplicate_owners_rejected(self):
        a0, a1 = self.addresses[:2]

        with self.assertRaises(InvalidOwnerSet):
            self.bank.create_account(a0, [a1, a1], DEPOSIT_0_05)
        with self.assertRaises(InvalidOwnerSet):
            self.bank.create_account(a0, [a0], DEPOSIT_0_05)

    def test_minimum_deposit(self):
        """Deposits below the minimum fail regardless of owner count"""
        for owners in (1, 2, 3):
            with self.assertRaises(InsufficientDeposit):
                self.create_account(owners=owners, deposit=5_000)

        self.assertEqual(self.settlement.balance_of(self.addresses[0]), NATIVE_UNIT)

    def test_creator_without_funds(self):
        broke = Identity().address

        with self.assertRaises(TransferFailed):
            self.bank.create_account(broke, [], DEPOSIT_0_05)
        self.assertEqual(len(self.bank), 0)

    def test_ids_are_sequential(self):
        ids = [self.create_account() for _ in range(3)]
        self.assertEqual(ids, [0, 1, 2])

class TestDeposit(BankTestCase):

    def setUp(self):
        super().setUp()
        self.create_account()

    def test_deposit_from_owner(self):
        self.bank.deposit(self.addresses[0], 0, 100)

        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05 + 100)
        self.assertEqual(self.settlement.balance_of(self.bank.address), DEPOSIT_0_05 + 100)
        self.assertEqual(self.settlement.balance_of(self.addresses[0]), NATIVE_UNIT - DEPOSIT_0_05 - 100)

    def test_deposit_from_non_owner(self):
        self.bank.deposit(self.addresses[1], 0, 100)

        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05 + 100)
        self.assertEqual(self.settlement.balance_of(self.addresses[1]), NATIVE_UNIT - 100)

    def test_deposit_unknown_account(self):
        with self.assertRaises(UnknownAccount):
            self.bank.deposit(self.addresses[0], 1, 100)
        self.assertEqual(self.settlement.balance_of(self.addresses[0]), NATIVE_UNIT - DEPOSIT_0_05)

    def test_negative_deposit(self):
        with self.assertRaises(InvalidAmount):
            self.bank.deposit(self.addresses[1], 0, -1)

        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05)
        self.assertEqual(self.settlement.balance_of(self.addresses[1]), NATIVE_UNIT)

    def test_deposit_without_funds(self):
        with self.assertRaises(TransferFailed):
            self.bank.deposit(self.addresses[1], 0, 2 * NATIVE_UNIT)
        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05)

class TestRequestWithdrawal(BankTestCase):

    def test_owner_can_request(self):
        self.create_account()

        request_id = self.bank.request_withdrawal(self.addresses[0], 0, 1000)

        self.assertEqual(request_id, 0)
        request = self.bank.get_account(0).get_request(0)
        self.assertEqual(request.requested_by, self.addresses[0])
        self.assertEqual(request.approvers, [])
        self.assertFalse(request.withdrawn)

    def test_co_owner_can_request(self):
        self.create_account(owners=2)

        self.assertEqual(self.bank.request_withdrawal(self.addresses[1], 0, 1000), 0)
        self.assertEqual(self.bank.request_withdrawal(self.addresses[0], 0, 1000), 1)

    def test_amount_above_balance(self):
        self.create_account()

        with self.assertRaises(InsufficientFunds):
            self.bank.request_withdrawal(self.addresses[0], 0, AMOUNT_0_06)

    def test_full_balance_can_be_requested(self):
        self.create_account()
        self.assertEqual(self.bank.request_withdrawal(self.addresses[0], 0, DEPOSIT_0_05), 0)

    def test_non_positive_amount(self):
        self.create_account()

        for amount in (0, -1):
            with self.assertRaises(InvalidAmount):
                self.bank.request_withdrawal(self.addresses[0], 0, amount)

    def test_non_owner_cannot_request(self):
        self.create_account()

        with self.assertRaises(Unauthorized):
            self.bank.request_withdrawal(self.addresses[1], 0, 1000)

    def test_unknown_account(self):
        with self.assertRaises(UnknownAccount):
            self.bank.request_withdrawal(self.addresses[0], 0, 1000)

    def test_amount_is_not_reserved(self):
        """Overlapping requests may exceed the balance together"""
        self.create_account()

        self.bank.request_withdrawal(self.addresses[0], 0, DEPOSIT_0_05)
        self.bank.request_withdrawal(self.addresses[0], 0, DEPOSIT_0_05)

        self.assertEqual(len(self.bank.get_account(0).requests), 2)
        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05)

class TestApproveWithdrawal(BankTestCase):

    def test_co_owner_approves(self):
        self.create_account(owners=2)
        self.bank.request_withdrawal(self.addresses[0], 0, 1000)

        self.bank.approve_withdrawal(self.addresses[1], 0, 0)

        self.assertEqual(self.bank.get_approvals(0, 0), 1)

    def test_duplicate_approval_is_a_no_op(self):
        self.create_account(owners=2)
        self.bank.request_withdrawal(self.addresses[0], 0, 1000)

        self.bank.approve_withdrawal(self.addresses[1], 0, 0)
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)

        self.assertEqual(self.bank.get_approvals(0, 0), 1)

    def test_two_co_owners_approve(self):
        self.create_account(owners=3)
        self.bank.request_withdrawal(self.addresses[2], 0, 1000)

        self.bank.approve_withdrawal(self.addresses[0], 0, 0)
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)

        self.assertEqual(self.bank.get_approvals(0, 0), 2)

    def test_non_owner_cannot_approve(self):
        self.create_account()
        self.bank.request_withdrawal(self.addresses[0], 0, 1000)

        with self.assertRaises(Unauthorized):
            self.bank.approve_withdrawal(self.addresses[1], 0, 0)

    def test_requester_cannot_approve(self):
        self.create_account()
        self.bank.request_withdrawal(self.addresses[0], 0, 1000)

        with self.assertRaises(SelfApprovalForbidden):
            self.bank.approve_withdrawal(self.addresses[0], 0, 0)
        self.assertEqual(self.bank.get_approvals(0, 0), 0)

    def test_unknown_ids(self):
        self.create_account(owners=2)

        with self.assertRaises(UnknownAccount):
            self.bank.approve_withdrawal(self.addresses[1], 1, 0)
        with self.assertRaises(UnknownRequest):
            self.bank.approve_withdrawal(self.addresses[1], 0, 0)
        with self.assertRaises(UnknownAccount):
            self.bank.get_approvals(1, 0)
        with self.assertRaises(UnknownRequest):
            self.bank.get_approvals(0, 0)

    def test_cannot_approve_withdrawn_request(self):
        self.create_account(owners=3)
        self.bank.request_withdrawal(self.addresses[0], 0, 1000)
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)
        self.bank.withdraw(self.addresses[0], 0, 0)

        with self.assertRaises(AlreadyWithdrawn):
            self.bank.approve_withdrawal(self.addresses[2], 0, 0)
        self.assertEqual(self.bank.get_approvals(0, 0), 1)

class TestWithdraw(BankTestCase):

    def setUp(self):
        super().setUp()
        self.create_account(owners=2)
        self.bank.request_withdrawal(self.addresses[0], 0, 100)

    def test_requester_withdraws_approved_request(self):
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)
        bank_before = self.settlement.balance_of(self.bank.address)
        owner_before = self.settlement.balance_of(self.addresses[0])

        self.bank.withdraw(self.addresses[0], 0, 0)

        self.assertEqual(self.settlement.balance_of(self.bank.address), bank_before - 100)
        self.assertEqual(self.settlement.balance_of(self.addresses[0]), owner_before + 100)
        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05 - 100)
        self.assertTrue(self.bank.get_account(0).get_request(0).withdrawn)

    def test_cannot_withdraw_twice(self):
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)
        self.bank.withdraw(self.addresses[0], 0, 0)
        owner_before = self.settlement.balance_of(self.addresses[0])

        with self.assertRaises(AlreadyWithdrawn):
            self.bank.withdraw(self.addresses[0], 0, 0)

        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05 - 100)
        self.assertEqual(self.settlement.balance_of(self.addresses[0]), owner_before)

    def test_cannot_withdraw_unapproved_request(self):
        with self.assertRaises(NotApproved):
            self.bank.withdraw(self.addresses[0], 0, 0)
        self.assertFalse(self.bank.get_account(0).get_request(0).withdrawn)

    def test_only_requester_can_withdraw(self):
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)

        with self.assertRaises(Unauthorized):
            self.bank.withdraw(self.addresses[1], 0, 0)
        with self.assertRaises(Unauthorized):
            self.bank.withdraw(self.addresses[2], 0, 0)

    def test_unknown_ids(self):
        with self.assertRaises(UnknownAccount):
            self.bank.withdraw(self.addresses[0], 5, 0)
        with self.assertRaises(UnknownRequest):
            self.bank.withdraw(self.addresses[0], 0, 5)

    def test_overlapping_requests_fail_at_execution(self):
        """Balance is re-checked when a request is executed"""
        a0, a1 = self.addresses[:2]
        first = self.bank.request_withdrawal(a0, 0, DEPOSIT_0_05 - 100)
        second = self.bank.request_withdrawal(a0, 0, DEPOSIT_0_05 - 100)
        self.bank.approve_withdrawal(a1, 0, first)
        self.bank.approve_withdrawal(a1, 0, second)

        self.bank.withdraw(a0, 0, first)

        with self.assertRaises(InsufficientFunds):
            self.bank.withdraw(a0, 0, second)
        self.assertFalse(self.bank.get_account(0).get_request(second).withdrawn)
        self.assertEqual(self.bank.get_balance(0), 100)

class TestApprovalPolicy(BankTestCase):

    def setUp(self):
        super().setUp()
        self.bank = Bank(self.settlement, self.bank.address, LedgerRules.unanimous())
        self.create_account(owners=3)
        self.bank.request_withdrawal(self.addresses[0], 0, 100)

    def test_unanimous_rules_need_every_co_owner(self):
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)

        with self.assertRaises(NotApproved):
            self.bank.withdraw(self.addresses[0], 0, 0)

        self.bank.approve_withdrawal(self.addresses[2], 0, 0)
        self.bank.withdraw(self.addresses[0], 0, 0)

        self.assertEqual(self.bank.get_balance(0), DEPOSIT_0_05 - 100)

class TestPersistence(BankTestCase):

    def test_registry_survives_serialization(self):
        self.create_account(owners=2)
        self.bank.request_withdrawal(self.addresses[0], 0, 100)
        self.bank.approve_withdrawal(self.addresses[1], 0, 0)

        restored = Bank.from_dict(self.bank.to_dict(), self.settlement)
        restored.withdraw(self.addresses[0], 0, 0)

        self.assertEqual(restored.address, self.bank.address)
        self.assertEqual(restored.get_balance(0), DEPOSIT_0_05 - 100)
        self.assertEqual(restored.get_accounts(self.addresses[1]), [0])

    def test_load_rejects_misplaced_account(self):
        """Stored ids must match their position in the registry"""
        self.create_account()
        data = self.bank.to_dict()
        data['accounts'][0]['account_id'] = 7

        with self.assertRaises(ValueError):
            Bank.from_dict(data, self.settlement)

    def test_load_rejects_too_many_owners(self):
        self.create_account(owners=3)
        data = self.bank.to_dict()
        data['accounts'][0]['owners'].append(self.addresses[3])

        with self.assertRaises(InvalidOwnerSet):
            Bank.from_dict(data, self.settlement)

if __name__ == '__main__':
    unittest.main()
