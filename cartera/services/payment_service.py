"""Payment service for the Cartera ledger.

Payments are appended and never edited. Each one splits into a principal
portion, which returns cash to the cartera, and an interest portion, which
is booked as profit.
"""
import logging
from datetime import datetime

from cartera.accrual import parse_date, to_decimal
from cartera.config import DATE_FORMAT_STORAGE, PAYMENTS, TIMESTAMP_FORMAT
from cartera.exceptions import InvalidInputError, LoanInactiveError, LoanNotFoundError
from cartera.result import ErrorType, Result

logger = logging.getLogger(__name__)


class PaymentService:
    """Handles payment registration."""

    def __init__(self, db_manager, loan_service):
        """Initialize PaymentService.

        Args:
            db_manager: DocumentStore instance.
            loan_service: LoanService instance used for lookups and closing.
        """
        self.db = db_manager
        self.loan_service = loan_service

    def add_payment(self, loan_id, principal_portion, interest_portion, payment_date):
        """Record a payment against a loan.

        Args:
            loan_id: ID of the loan being paid.
            principal_portion: Amount applied to principal.
            interest_portion: Amount applied to interest.
            payment_date: Date of payment in YYYY-MM-DD format.

        Returns:
            Result with the payment id.
        """
        try:
            loan = self.loan_service.get_loan(loan_id)
        except LoanNotFoundError as e:
            return Result.from_error(e, ErrorType.NOT_FOUND)
        if loan.get('status') != 'active':
            return Result.from_error(LoanInactiveError(loan_id, loan.get('status')), ErrorType.INACTIVE)

        try:
            principal_portion = float(to_decimal(principal_portion or 0, 'principal_portion'))
            interest_portion = float(to_decimal(interest_portion or 0, 'interest_portion'))
            paid_on = parse_date(payment_date, 'payment_date')
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if principal_portion < 0 or interest_portion < 0:
            return Result.fail("Payment amounts cannot be negative", ErrorType.VALIDATION)
        if principal_portion == 0 and interest_portion == 0:
            return Result.fail("Payment must include principal or interest", ErrorType.VALIDATION)

        outstanding = float(self.loan_service.calculate_loan_accrual(
            loan, self.loan_service.get_payments(loan_id)).outstanding_principal)
        if principal_portion > outstanding:
            logger.warning("Payment on loan %s overpays principal: %.2f > %.2f",
                           loan_id, principal_portion, outstanding)
        applied = min(principal_portion, outstanding)

        portfolio = self.loan_service.portfolio_service
        with self.db.transaction():
            payment_id = self.db.create_record(PAYMENTS, {
                'loan_id': loan_id,
                'principal_portion': principal_portion,
                'interest_portion': interest_portion,
                'payment_date': paid_on.strftime(DATE_FORMAT_STORAGE),
                'recorded_at': datetime.now().strftime(TIMESTAMP_FORMAT),
            })
            portfolio.adjust_cartera(available=principal_portion, lent=-applied, profit=interest_portion)
            portfolio.log_movement('entrada', 'pago', principal_portion + interest_portion,
                                   loan_id=loan_id, payment_id=payment_id,
                                   principal_portion=principal_portion,
                                   interest_portion=interest_portion)
            self.loan_service.close_if_repaid(loan_id)

        logger.info("Recorded payment %s on loan %s", payment_id, loan_id)
        return Result.ok(payment_id)

    def get_payments(self, loan_id):
        """List a loan's payments, newest first."""
        return self.loan_service.get_payments(loan_id)
