"""Tests for loan disbursement and loan summaries."""
import os
import sys
import unittest
from datetime import date

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cartera.config import LOANS
from cartera.database import DocumentStore
from cartera.engine import LedgerEngine
from cartera.exceptions import LoanNotFoundError
from cartera.result import ErrorType


class LedgerTestCase(unittest.TestCase):
    """Store with one client and a funded cartera of 5000."""

    def setUp(self):
        self.db = DocumentStore(":memory:")
        self.engine = LedgerEngine(self.db)
        self.client_id = self.engine.add_client("Ana Pérez", "6000-1234")
        self.investor_id = self.engine.portfolio_service.add_investor("Fondo Uno")
        self.engine.add_contribution(self.investor_id, 5000, 10, "2024-01-01").unwrap()

    def tearDown(self):
        self.db.close()


class TestAddLoan(LedgerTestCase):

    def test_disbursement_updates_cartera(self):
        result = self.engine.add_loan(self.client_id, 1000, "2024-01-01", "efectivo")

        self.assertTrue(result.success)
        loan = self.engine.loan_service.get_loan(result.value)
        self.assertEqual(loan['principal'], 1000.0)
        self.assertEqual(loan['rate'], 0.15)
        self.assertEqual(loan['status'], "active")
        self.assertEqual(loan['start_date'], "2024-01-01")

        cartera = self.engine.get_cartera()
        self.assertEqual(cartera.total_available, 4000.0)
        self.assertEqual(cartera.total_lent, 1000.0)

    def test_disbursement_logs_movement(self):
        loan_id = self.engine.add_loan(self.client_id, 1000, "2024-01-01", "efectivo").unwrap()

        movements = self.engine.portfolio_service.get_movements(origin='prestamo')
        self.assertEqual(len(movements), 1)
        self.assertEqual(movements[0]['kind'], "salida")
        self.assertEqual(movements[0]['amount'], 1000.0)
        self.assertEqual(movements[0]['loan_id'], loan_id)

    def test_custom_rate(self):
        loan_id = self.engine.add_loan(self.client_id, 500, "2024-01-01", "transferencia", rate=0.1).unwrap()
        self.assertEqual(self.engine.loan_service.get_loan(loan_id)['rate'], 0.1)

    def test_insufficient_funds(self):
        result = self.engine.add_loan(self.client_id, 6000, "2024-01-01", "efectivo")

        self.assertFalse(result)
        self.assertEqual(result.error_type, ErrorType.INSUFFICIENT_FUNDS)
        self.assertEqual(self.db.count_records(LOANS), 0)
        self.assertEqual(self.engine.get_cartera().total_available, 5000.0)

    def test_exact_available_amount_is_allowed(self):
        result = self.engine.add_loan(self.client_id, 5000, "2024-01-01", "efectivo")
        self.assertTrue(result.success)
        self.assertEqual(self.engine.get_cartera().total_available, 0.0)

    def test_cartera_not_initialized(self):
        db = DocumentStore(":memory:")
        engine = LedgerEngine(db)
        client_id = engine.add_client("Luis", "6000-0000")

        result = engine.add_loan(client_id, 100, "2024-01-01", "efectivo")
        self.assertEqual(result.error_type, ErrorType.NOT_FOUND)
        db.close()

    def test_validation_errors(self):
        cases = [
            (self.client_id, 1000, "01-01-2024", "efectivo"),
            (self.client_id, -50, "2024-01-01", "efectivo"),
            (self.client_id, "abc", "2024-01-01", "efectivo"),
            (self.client_id, 1000, "2024-01-01", ""),
            (self.client_id, 1000, "", "efectivo"),
        ]
        for args in cases:
            result = self.engine.add_loan(*args)
            self.assertEqual(result.error_type, ErrorType.VALIDATION, args)
        self.assertEqual(self.db.count_records(LOANS), 0)

    def test_negative_rate_rejected(self):
        result = self.engine.add_loan(self.client_id, 100, "2024-01-01", "efectivo", rate=-0.1)
        self.assertEqual(result.error_type, ErrorType.VALIDATION)

    def test_unknown_client(self):
        result = self.engine.add_loan("nobody", 100, "2024-01-01", "efectivo")
        self.assertEqual(result.error_type, ErrorType.NOT_FOUND)


class TestLoanQueries(LedgerTestCase):

    def test_get_loan_missing(self):
        with self.assertRaises(LoanNotFoundError):
            self.engine.loan_service.get_loan("missing")

    def test_get_loans_by_client(self):
        other = self.engine.add_client("Luis Gómez", "6000-9999")
        self.engine.add_loan(self.client_id, 100, "2024-01-01", "efectivo").unwrap()
        self.engine.add_loan(self.client_id, 200, "2024-03-01", "efectivo").unwrap()
        self.engine.add_loan(other, 300, "2024-02-01", "efectivo").unwrap()

        loans = self.engine.loan_service.get_loans(client_id=self.client_id)
        self.assertEqual([l['principal'] for l in loans], [200.0, 100.0])
        self.assertEqual(len(self.engine.loan_service.get_loans()), 3)

    def test_summary_without_payments(self):
        loan_id = self.engine.add_loan(self.client_id, 1000, "2024-01-01", "efectivo").unwrap()

        summary = self.engine.get_loan_summary(loan_id, today=date(2024, 2, 16))
        self.assertEqual(summary['outstanding_principal'], 1000.0)
        self.assertEqual(summary['accrued_interest'], 450.0)
        self.assertEqual(summary['periods_elapsed'], 3)
        self.assertEqual(summary['last_payment_date'], "2024-01-01")
        self.assertEqual(summary['client_id'], self.client_id)

    def test_summary_ignores_payment_order(self):
        loan_id = self.engine.add_loan(self.client_id, 1000, "2024-01-01", "efectivo").unwrap()
        loan = self.engine.loan_service.get_loan(loan_id)
        payments = [
            {'principal_portion': 100, 'interest_portion': 150, 'payment_date': "2024-01-15"},
            {'principal_portion': 100, 'interest_portion': 135, 'payment_date': "2024-02-15"},
            {'principal_portion': 0, 'interest_portion': 0, 'payment_date': "2024-01-30"},
        ]

        summary = self.engine.loan_service.build_summary(loan, payments, today=date(2024, 2, 16))
        self.assertEqual(summary['last_payment_date'], "2024-02-15")
        self.assertEqual(summary['outstanding_principal'], 800.0)
        self.assertEqual(summary['periods_elapsed'], 0)

    def test_close_if_repaid_leaves_open_loans(self):
        loan_id = self.engine.add_loan(self.client_id, 1000, "2024-01-01", "efectivo").unwrap()
        self.assertFalse(self.engine.loan_service.close_if_repaid(loan_id))
        self.assertEqual(self.engine.loan_service.get_loan(loan_id)['status'], "active")


if __name__ == '__main__':
    unittest.main()
