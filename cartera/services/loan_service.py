"""Loan lifecycle service for the Cartera ledger.

This service handles all loan-related operations including:
- Loan disbursement against the cartera
- Loan lookups
- Accrual summaries (outstanding principal and interest owed)
- Closing fully repaid loans
"""
import logging
from datetime import datetime

from cartera.accrual import calculate_accrual, parse_date, to_decimal
from cartera.config import (
    CLIENTS, DATE_FORMAT_STORAGE, DEFAULT_INTEREST_RATE, LOANS, PAYMENTS, TIMESTAMP_FORMAT,
)
from cartera.data_structures import LoanRecord
from cartera.exceptions import InsufficientFundsError, InvalidInputError, LoanNotFoundError
from cartera.result import ErrorType, Result

logger = logging.getLogger(__name__)


class LoanService:
    """Handles loan lifecycle operations.

    Interest figures always come from calculate_accrual; this class only
    fetches the records it needs and persists the side effects.
    """

    def __init__(self, db_manager, portfolio_service=None):
        """Initialize LoanService.

        Args:
            db_manager: DocumentStore instance for data persistence.
            portfolio_service: Optional PortfolioService instance.
        """
        self.db = db_manager
        self._portfolio_service = portfolio_service

    @property
    def portfolio_service(self):
        """Lazy-load portfolio service to avoid circular imports."""
        if self._portfolio_service is None:
            from .portfolio_service import PortfolioService
            self._portfolio_service = PortfolioService(self.db)
        return self._portfolio_service

    def add_loan(self, client_id, amount, start_date, payment_method, rate=None):
        """Disburse a new loan out of the cartera.

        Args:
            client_id: ID of the borrowing client.
            amount: Principal lent.
            start_date: Disbursement date in YYYY-MM-DD format.
            payment_method: How the client will pay (free text).
            rate: Rate per fortnight (default: DEFAULT_INTEREST_RATE from config).

        Returns:
            Result with the new loan id.
        """
        if not client_id or not start_date or not amount or not payment_method:
            return Result.fail("All loan fields are required", ErrorType.VALIDATION)
        if self.db.get_record(CLIENTS, client_id) is None:
            return Result.fail(f"Client '{client_id}' not found", ErrorType.NOT_FOUND)
        if rate is None:
            rate = DEFAULT_INTEREST_RATE

        try:
            principal = float(to_decimal(amount, 'amount'))
            rate = float(to_decimal(rate, 'rate'))
            start = parse_date(start_date, 'start_date')
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if principal <= 0:
            return Result.fail("Loan amount must be greater than zero", ErrorType.VALIDATION)
        if rate < 0:
            return Result.fail("Rate cannot be negative", ErrorType.VALIDATION)

        cartera = self.portfolio_service.get_cartera()
        if not cartera.initialized:
            return Result.fail("The cartera has not been initialized", ErrorType.NOT_FOUND)
        if cartera.total_available < principal:
            err = InsufficientFundsError(principal, cartera.total_available)
            logger.warning("Loan for client %s rejected: %s", client_id, err)
            return Result.from_error(err, ErrorType.INSUFFICIENT_FUNDS)

        with self.db.transaction():
            loan_id = self.db.create_record(LOANS, {
                'client_id': client_id,
                'principal': principal,
                'start_date': start.strftime(DATE_FORMAT_STORAGE),
                'rate': rate,
                'payment_method': str(payment_method).strip(),
                'status': 'active',
                'created_at': datetime.now().strftime(TIMESTAMP_FORMAT),
            })
            self.portfolio_service.adjust_cartera(available=-principal, lent=principal)
            self.portfolio_service.log_movement('salida', 'prestamo', principal, loan_id=loan_id)

        logger.info("Disbursed loan %s of %.2f to client %s", loan_id, principal, client_id)
        return Result.ok(loan_id)

    def get_loans(self, client_id=None, status=None):
        filters = {}
        if client_id:
            filters['client_id'] = client_id
        if status:
            filters['status'] = status
        return self.db.list_records(LOANS, filters or None, order_by='start_date', descending=True)

    def get_loan(self, loan_id):
        """Get a loan document.

        Raises:
            LoanNotFoundError: If the loan doesn't exist.
        """
        loan = self.db.get_record(LOANS, loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    def get_payments(self, loan_id):
        return self.db.list_records(PAYMENTS, {'loan_id': loan_id}, order_by='payment_date', descending=True)

    def calculate_loan_accrual(self, loan, payments, today=None):
        """Run the accrual calculator over an already fetched loan and its payments."""
        record = LoanRecord.from_record(loan)
        return calculate_accrual(record.principal, record.start_date, record.rate, payments, today=today)

    def get_loan_summary(self, loan_id, today=None):
        """Summarize a loan's current position.

        Args:
            loan_id: ID of the loan.
            today: Day to accrue up to; defaults to the current date.

        Returns:
            Dict of the loan fields plus outstanding principal, accrued
            interest, periods elapsed, settlement date and last payment date.

        Raises:
            LoanNotFoundError: If the loan doesn't exist.
            InvalidInputError: If the loan or its payments hold malformed data.
        """
        loan = self.get_loan(loan_id)
        payments = self.get_payments(loan_id)
        return self.build_summary(loan, payments, today=today)

    def build_summary(self, loan, payments, today=None):
        accrual = self.calculate_loan_accrual(loan, payments, today=today)
        summary = dict(loan)
        summary.update(accrual.to_dict())
        if payments:
            summary['last_payment_date'] = max(p['payment_date'] for p in payments)
        else:
            summary['last_payment_date'] = loan.get('start_date')
        return summary

    def close_if_repaid(self, loan_id):
        """Mark a loan closed once its outstanding principal reaches zero.

        Returns:
            True if the loan was closed by this call.
        """
        loan = self.get_loan(loan_id)
        if not LoanRecord.from_record(loan).is_active:
            return False
        accrual = self.calculate_loan_accrual(loan, self.get_payments(loan_id))
        if accrual.outstanding_principal > 0:
            return False
        self.db.update_record(LOANS, loan_id, {'status': 'closed'})
        logger.info("Loan %s fully repaid and closed", loan_id)
        return True
