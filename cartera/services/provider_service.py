"""Capital provider service for the Cartera ledger.

Providers lend capital to the business at an agreed rate. Their balances
together form the global fund, which loan assignments draw from:
- Provider registration and lookups
- Provider transactions (capital repayments and interest payments)
- Splitting a loan amount across providers
"""
import logging
from datetime import datetime

from cartera.accrual import parse_date, round_currency, to_decimal
from cartera.config import (
    DATE_FORMAT_STORAGE, LOAN_ASSIGNMENTS, PROVIDER_TRANSACTION_TYPES, PROVIDER_TRANSACTIONS,
    PROVIDERS, TIMESTAMP_FORMAT,
)
from cartera.exceptions import InsufficientFundsError, InvalidInputError, ProviderNotFoundError
from cartera.result import ErrorType, Result

logger = logging.getLogger(__name__)


class ProviderService:
    """Handles capital providers and loan assignments."""

    def __init__(self, db_manager):
        """Initialize ProviderService.

        Args:
            db_manager: DocumentStore instance for data persistence.
        """
        self.db = db_manager

    def add_provider(self, name, capital, interest_rate):
        """Register a capital provider.

        Args:
            name: Provider name.
            capital: Capital contributed; also the starting balance.
            interest_rate: Agreed rate in percent (7 for 7 %).

        Returns:
            Result with the provider id.
        """
        if not name or not str(name).strip():
            return Result.fail("Provider name is required", ErrorType.VALIDATION)
        try:
            capital = float(round_currency(to_decimal(capital, 'capital')))
            interest_rate = float(to_decimal(interest_rate, 'interest_rate'))
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if capital <= 0:
            return Result.fail("Provider capital must be greater than zero", ErrorType.VALIDATION)
        if interest_rate < 0:
            return Result.fail("Interest rate cannot be negative", ErrorType.VALIDATION)

        provider_id = self.db.create_record(PROVIDERS, {
            'name': str(name).strip(),
            'capital_contributed': capital,
            'interest_rate': interest_rate,
            'balance': capital,
            'created_at': datetime.now().strftime(TIMESTAMP_FORMAT),
        })
        logger.info("Registered provider %s with %.2f", provider_id, capital)
        return Result.ok(provider_id)

    def get_providers(self):
        return self.db.list_records(PROVIDERS, order_by='name')

    def get_provider(self, provider_id):
        """Get a provider document.

        Raises:
            ProviderNotFoundError: If the provider doesn't exist.
        """
        provider = self.db.get_record(PROVIDERS, provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    def global_fund(self):
        """Sum of every provider's current balance."""
        total = sum((to_decimal(p.get('balance') or 0, 'balance') for p in self.get_providers()),
                    to_decimal(0))
        return float(round_currency(total))

    def add_transaction(self, provider_id, transaction_type, amount, transaction_date, description=""):
        """Record a payment made to a provider.

        A capital transaction pays back part of the provider's capital and
        lowers its balance; an interest transaction is only logged.

        Returns:
            Result with the transaction id.
        """
        try:
            provider = self.get_provider(provider_id)
        except ProviderNotFoundError as e:
            return Result.from_error(e, ErrorType.NOT_FOUND)
        if transaction_type not in PROVIDER_TRANSACTION_TYPES:
            return Result.fail(f"Unknown transaction type '{transaction_type}'", ErrorType.VALIDATION)
        try:
            amount = float(round_currency(to_decimal(amount, 'amount')))
            paid_on = parse_date(transaction_date, 'transaction_date')
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if amount <= 0:
            return Result.fail("Transaction amount must be greater than zero", ErrorType.VALIDATION)

        balance = float(provider.get('balance') or 0)
        if transaction_type == 'capital' and amount > balance:
            err = InsufficientFundsError(amount, balance)
            logger.warning("Capital transaction for provider %s rejected: %s", provider_id, err)
            return Result.from_error(err, ErrorType.INSUFFICIENT_FUNDS)

        with self.db.transaction():
            transaction_id = self.db.create_record(PROVIDER_TRANSACTIONS, {
                'provider_id': provider_id,
                'transaction_type': transaction_type,
                'amount': amount,
                'transaction_date': paid_on.strftime(DATE_FORMAT_STORAGE),
                'description': str(description or "").strip(),
            })
            if transaction_type == 'capital':
                self.db.update_record(PROVIDERS, provider_id, {'balance': round(balance - amount, 2)})

        logger.info("Recorded %s transaction %s for provider %s", transaction_type, transaction_id, provider_id)
        return Result.ok(transaction_id)

    def get_transactions(self, provider_id):
        """List a provider's transactions, newest first."""
        return self.db.list_records(PROVIDER_TRANSACTIONS, {'provider_id': provider_id},
                                    order_by='transaction_date', descending=True)

    def assign_loan(self, loan_amount, assignments, loan_id=None):
        """Fund a loan amount from one or more providers.

        Args:
            loan_amount: Total amount being lent.
            assignments: Mapping of provider id to the amount it funds.
            loan_id: Optional id of the loan being funded.

        Returns:
            Result with the assignment id.
        """
        try:
            total = round_currency(to_decimal(loan_amount, 'loan_amount'))
            split = {pid: round_currency(to_decimal(amt or 0, 'assignment'))
                     for pid, amt in dict(assignments or {}).items()}
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if total <= 0:
            return Result.fail("Loan amount must be greater than zero", ErrorType.VALIDATION)
        if any(amt < 0 for amt in split.values()):
            return Result.fail("Assigned amounts cannot be negative", ErrorType.VALIDATION)
        split = {pid: amt for pid, amt in split.items() if amt > 0}
        if sum(split.values(), to_decimal(0)) != total:
            return Result.fail("Assigned amounts must add up to the loan amount", ErrorType.VALIDATION)

        providers = {}
        for provider_id in split:
            try:
                providers[provider_id] = self.get_provider(provider_id)
            except ProviderNotFoundError as e:
                return Result.from_error(e, ErrorType.NOT_FOUND)

        fund = self.global_fund()
        if float(total) > fund:
            err = InsufficientFundsError(float(total), fund)
            logger.warning("Loan assignment rejected: %s", err)
            return Result.from_error(err, ErrorType.INSUFFICIENT_FUNDS)
        for provider_id, amt in split.items():
            balance = float(providers[provider_id].get('balance') or 0)
            if float(amt) > balance:
                err = InsufficientFundsError(float(amt), balance)
                logger.warning("Provider %s cannot fund its share: %s", provider_id, err)
                return Result.from_error(err, ErrorType.INSUFFICIENT_FUNDS)

        with self.db.transaction():
            assignment_id = self.db.create_record(LOAN_ASSIGNMENTS, {
                'loan_id': loan_id,
                'loan_amount': float(total),
                'assignments': {pid: float(amt) for pid, amt in split.items()},
                'created_at': datetime.now().strftime(TIMESTAMP_FORMAT),
            })
            for provider_id, amt in split.items():
                balance = to_decimal(providers[provider_id].get('balance') or 0, 'balance')
                self.db.update_record(PROVIDERS, provider_id, {'balance': float(balance - amt)})

        logger.info("Assigned %.2f across %d providers", float(total), len(split))
        return Result.ok(assignment_id)

    def get_loan_assignments(self):
        """List loan assignments, newest first."""
        return self.db.list_records(LOAN_ASSIGNMENTS, order_by='created_at', descending=True)
