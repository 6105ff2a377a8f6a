"""Tests for capital providers, provider transactions and loan assignments."""
import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cartera.database import DocumentStore
from cartera.engine import LedgerEngine
from cartera.exceptions import ProviderNotFoundError
from cartera.result import ErrorType


class ProviderTestCase(unittest.TestCase):
    """Two providers holding 3000 and 2000."""

    def setUp(self):
        self.db = DocumentStore(":memory:")
        self.engine = LedgerEngine(self.db)
        self.providers = self.engine.provider_service
        self.alpha = self.providers.add_provider("Alpha", 3000, 7).unwrap()
        self.beta = self.providers.add_provider("Beta", 2000, 5.5).unwrap()

    def tearDown(self):
        self.db.close()

    def balance(self, provider_id):
        return self.providers.get_provider(provider_id)['balance']


class TestProviders(ProviderTestCase):

    def test_new_provider_balance_equals_capital(self):
        provider = self.providers.get_provider(self.alpha)
        self.assertEqual(provider['name'], "Alpha")
        self.assertEqual(provider['capital_contributed'], 3000.0)
        self.assertEqual(provider['interest_rate'], 7.0)
        self.assertEqual(provider['balance'], 3000.0)

    def test_global_fund_sums_balances(self):
        self.assertEqual(self.providers.global_fund(), 5000.0)
        self.assertEqual([p['name'] for p in self.providers.get_providers()], ["Alpha", "Beta"])

    def test_invalid_providers(self):
        self.assertEqual(self.providers.add_provider(" ", 100, 5).error_type, ErrorType.VALIDATION)
        self.assertEqual(self.providers.add_provider("Gamma", 0, 5).error_type, ErrorType.VALIDATION)
        self.assertEqual(self.providers.add_provider("Gamma", 100, -1).error_type, ErrorType.VALIDATION)
        self.assertEqual(self.providers.add_provider("Gamma", "abc", 5).error_type, ErrorType.VALIDATION)
        self.assertEqual(len(self.providers.get_providers()), 2)

    def test_missing_provider(self):
        with self.assertRaises(ProviderNotFoundError):
            self.providers.get_provider("missing")


class TestProviderTransactions(ProviderTestCase):

    def test_capital_transaction_lowers_balance(self):
        result = self.providers.add_transaction(self.alpha, "capital", 500, "2024-03-01", "Abono")

        self.assertTrue(result.success)
        self.assertEqual(self.balance(self.alpha), 2500.0)
        self.assertEqual(self.providers.global_fund(), 4500.0)

    def test_interest_transaction_keeps_balance(self):
        self.providers.add_transaction(self.alpha, "interes", 210, "2024-03-01").unwrap()
        self.assertEqual(self.balance(self.alpha), 3000.0)

    def test_transactions_newest_first(self):
        self.providers.add_transaction(self.alpha, "interes", 210, "2024-02-01").unwrap()
        self.providers.add_transaction(self.alpha, "capital", 100, "2024-04-01").unwrap()
        self.providers.add_transaction(self.beta, "capital", 50, "2024-03-01").unwrap()

        transactions = self.providers.get_transactions(self.alpha)
        self.assertEqual([t['transaction_date'] for t in transactions], ["2024-04-01", "2024-02-01"])

    def test_capital_above_balance(self):
        result = self.providers.add_transaction(self.beta, "capital", 2500, "2024-03-01")

        self.assertEqual(result.error_type, ErrorType.INSUFFICIENT_FUNDS)
        self.assertEqual(self.balance(self.beta), 2000.0)
        self.assertEqual(self.providers.get_transactions(self.beta), [])

    def test_invalid_transactions(self):
        self.assertEqual(self.providers.add_transaction("missing", "capital", 10, "2024-03-01").error_type,
                         ErrorType.NOT_FOUND)
        self.assertEqual(self.providers.add_transaction(self.alpha, "bono", 10, "2024-03-01").error_type,
                         ErrorType.VALIDATION)
        self.assertEqual(self.providers.add_transaction(self.alpha, "capital", 0, "2024-03-01").error_type,
                         ErrorType.VALIDATION)
        self.assertEqual(self.providers.add_transaction(self.alpha, "capital", 10, "01-03-2024").error_type,
                         ErrorType.VALIDATION)


class TestLoanAssignments(ProviderTestCase):

    def test_assignment_debits_each_provider(self):
        result = self.engine.assign_loan(1500, {self.alpha: 1000, self.beta: 500}, loan_id="loan-1")

        self.assertTrue(result.success)
        self.assertEqual(self.balance(self.alpha), 2000.0)
        self.assertEqual(self.balance(self.beta), 1500.0)
        self.assertEqual(self.providers.global_fund(), 3500.0)

        assignments = self.providers.get_loan_assignments()
        self.assertEqual(len(assignments), 1)
        self.assertEqual(assignments[0]['loan_amount'], 1500.0)
        self.assertEqual(assignments[0]['loan_id'], "loan-1")
        self.assertEqual(assignments[0]['assignments'], {self.alpha: 1000.0, self.beta: 500.0})

    def test_cent_amounts_add_up(self):
        result = self.engine.assign_loan("0.30", {self.alpha: 0.1, self.beta: 0.2})
        self.assertTrue(result.success)
        self.assertEqual(self.balance(self.beta), 1999.8)

    def test_zero_shares_are_dropped(self):
        assignment_id = self.engine.assign_loan(400, {self.alpha: 400, self.beta: 0}).unwrap()
        assignment = self.providers.get_loan_assignments()[0]
        self.assertEqual(assignment['id'], assignment_id)
        self.assertEqual(assignment['assignments'], {self.alpha: 400.0})
        self.assertEqual(self.balance(self.beta), 2000.0)

    def test_split_must_match_loan_amount(self):
        result = self.engine.assign_loan(1500, {self.alpha: 1000, self.beta: 400})

        self.assertEqual(result.error_type, ErrorType.VALIDATION)
        self.assertEqual(self.providers.global_fund(), 5000.0)
        self.assertEqual(self.providers.get_loan_assignments(), [])

    def test_loan_above_global_fund(self):
        result = self.engine.assign_loan(6000, {self.alpha: 4000, self.beta: 2000})

        self.assertEqual(result.error_type, ErrorType.INSUFFICIENT_FUNDS)
        self.assertEqual(self.balance(self.alpha), 3000.0)

    def test_share_above_provider_balance(self):
        result = self.engine.assign_loan(2500, {self.beta: 2500})

        self.assertEqual(result.error_type, ErrorType.INSUFFICIENT_FUNDS)
        self.assertEqual(self.balance(self.beta), 2000.0)
        self.assertEqual(self.providers.get_loan_assignments(), [])

    def test_invalid_assignments(self):
        self.assertEqual(self.engine.assign_loan(100, {"missing": 100}).error_type, ErrorType.NOT_FOUND)
        self.assertEqual(self.engine.assign_loan(0, {}).error_type, ErrorType.VALIDATION)
        self.assertEqual(self.engine.assign_loan(100, {self.alpha: 150, self.beta: -50}).error_type,
                         ErrorType.VALIDATION)
        self.assertEqual(self.engine.assign_loan(100, {self.alpha: "x"}).error_type, ErrorType.VALIDATION)


if __name__ == '__main__':
    unittest.main()
