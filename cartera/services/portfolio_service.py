"""Portfolio (cartera) service for the Cartera ledger.

This service handles the funds side of the business:
- The cartera balance document
- Investors and their capital contributions (aportes)
- Returns of capital and profit to investors (devoluciones)
- The cash movement log
"""
import logging
import re
from datetime import date, datetime

from cartera.accrual import parse_date, to_decimal
from cartera.config import (
    CARTERA, CARTERA_DOC_ID, CONTRIBUTIONS, DATE_FORMAT_STORAGE, INVESTORS, MOVEMENTS,
    TIMESTAMP_FORMAT,
)
from cartera.data_structures import CarteraState
from cartera.exceptions import (
    ContributionNotFoundError, InsufficientFundsError, InvalidInputError, RecordNotFoundError,
)
from cartera.result import ErrorType, Result

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


class PortfolioService:
    """Handles the cartera balance, investors and contributions."""

    def __init__(self, db_manager):
        """Initialize PortfolioService.

        Args:
            db_manager: DocumentStore instance for data persistence.
        """
        self.db = db_manager

    # Cartera balance
    def get_cartera(self):
        """Get the current portfolio balance.

        Returns:
            CarteraState; all zeros with initialized=False if no contribution
            has ever been made.
        """
        return CarteraState.from_record(self.db.get_record(CARTERA, CARTERA_DOC_ID))

    def adjust_cartera(self, available=0.0, lent=0.0, profit=0.0):
        """Apply deltas to the cartera balance.

        Returns:
            The updated CarteraState, or None if the cartera is not initialized.
        """
        state = self.get_cartera()
        if not state.initialized:
            return None
        state.total_available += float(available)
        state.total_lent += float(lent)
        state.total_estimated_profit += float(profit)
        self.db.update_record(CARTERA, CARTERA_DOC_ID, state.to_record())
        return state

    def log_movement(self, kind, origin, amount, **refs):
        """Append an entry to the cash movement log.

        Args:
            kind: "entrada" for money coming in, "salida" for money going out.
            origin: prestamo, pago, aporte or devolucion.
            amount: Total cash amount moved.
            **refs: Reference ids and breakdown fields stored with the entry.
        """
        fields = {
            'kind': kind,
            'origin': origin,
            'amount': round(float(amount), 2),
            'date': datetime.now().strftime(TIMESTAMP_FORMAT),
        }
        fields.update(refs)
        return self.db.create_record(MOVEMENTS, fields)

    def get_movements(self, origin=None):
        filters = {'origin': origin} if origin else None
        return self.db.list_records(MOVEMENTS, filters)

    # Investors
    def add_investor(self, name):
        """Register a capital provider.

        Raises:
            InvalidInputError: If the name is blank.
        """
        if not name or not str(name).strip():
            raise InvalidInputError("Investor name is required", 'name')
        investor_id = self.db.create_record(INVESTORS, {'name': str(name).strip()})
        logger.info("Registered investor %s", investor_id)
        return investor_id

    def get_investors(self):
        return self.db.list_records(INVESTORS, order_by='name')

    def _investor_names(self):
        return {inv['id']: inv.get('name', inv['id']) for inv in self.db.list_records(INVESTORS)}

    # Contributions
    def add_contribution(self, investor_id, amount, profit_percentage, date_str=None):
        """Register an investor's capital contribution and fund the cartera.

        The first contribution creates the cartera document.

        Args:
            investor_id: ID of the contributing investor.
            amount: Capital contributed.
            profit_percentage: Agreed profit, in percent of the amount.
            date_str: Contribution date (YYYY-MM-DD); today if missing or malformed.

        Returns:
            Result with the contribution id.
        """
        if self.db.get_record(INVESTORS, investor_id) is None:
            return Result.fail(f"Investor '{investor_id}' not found", ErrorType.NOT_FOUND)
        try:
            amount = float(to_decimal(amount, 'amount'))
            profit_percentage = float(to_decimal(profit_percentage, 'profit_percentage'))
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if amount <= 0:
            return Result.fail("Contribution amount must be greater than zero", ErrorType.VALIDATION)
        if profit_percentage < 0:
            return Result.fail("Profit percentage cannot be negative", ErrorType.VALIDATION)

        if not date_str or not _ISO_DATE.match(str(date_str)):
            date_str = date.today().strftime(DATE_FORMAT_STORAGE)

        with self.db.transaction():
            contribution_id = self.db.create_record(CONTRIBUTIONS, {
                'investor_id': investor_id,
                'amount': amount,
                'profit_percentage': profit_percentage,
                'date': date_str,
                'status': 'active',
            })
            if self.adjust_cartera(available=amount) is None:
                self.db.set_record(CARTERA, CARTERA_DOC_ID,
                                   CarteraState(total_available=amount).to_record())
            self.log_movement('entrada', 'aporte', amount, contribution_id=contribution_id,
                              investor_id=investor_id, movement_date=date_str)

        logger.info("Contribution %s of %.2f from investor %s", contribution_id, amount, investor_id)
        return Result.ok(contribution_id)

    def get_contributions(self, status=None):
        """List contributions with their investor's name attached."""
        names = self._investor_names()
        filters = {'status': status} if status else None
        contributions = self.db.list_records(CONTRIBUTIONS, filters, order_by='date')
        for contribution in contributions:
            contribution['investor_name'] = names.get(contribution.get('investor_id'),
                                                      contribution.get('investor_id'))
        return contributions

    def get_contribution(self, contribution_id):
        contribution = self.db.get_record(CONTRIBUTIONS, contribution_id)
        if contribution is None:
            raise ContributionNotFoundError(contribution_id)
        return contribution

    @staticmethod
    def expected_profit(contribution):
        """Profit owed on a contribution's current amount."""
        amount = float(contribution.get('amount', 0) or 0)
        pct = float(contribution.get('profit_percentage', 0) or 0)
        return round(amount * pct / 100, 2)

    def return_contribution(self, contribution_id, capital=None, profit=None, date_str=None):
        """Pay capital and profit back to an investor out of the cartera.

        Args:
            contribution_id: ID of the contribution being returned.
            capital: Capital to return; defaults to the full remaining amount.
            profit: Profit to pay; defaults to the expected profit.
            date_str: Return date (YYYY-MM-DD); today if missing.

        Returns:
            Result with the contribution's remaining capital.
        """
        try:
            contribution = self.get_contribution(contribution_id)
        except RecordNotFoundError as e:
            return Result.from_error(e, ErrorType.NOT_FOUND)
        if contribution.get('status') != 'active':
            return Result.fail(f"Contribution '{contribution_id}' was already returned", ErrorType.INACTIVE)

        try:
            capital = float(to_decimal(contribution['amount'] if capital is None else capital, 'capital'))
            profit = float(to_decimal(self.expected_profit(contribution) if profit is None else profit, 'profit'))
            return_date = parse_date(date_str, 'date') if date_str else date.today()
        except InvalidInputError as e:
            return Result.from_error(e, ErrorType.VALIDATION)
        if capital < 0 or profit < 0:
            return Result.fail("Returned amounts cannot be negative", ErrorType.VALIDATION)
        if capital == 0 and profit == 0:
            return Result.fail("Return must include capital or profit", ErrorType.VALIDATION)
        if capital > float(contribution['amount']):
            return Result.fail(
                f"Cannot return {capital:.2f}; only {float(contribution['amount']):.2f} remains",
                ErrorType.VALIDATION)

        total = round(capital + profit, 2)
        cartera = self.get_cartera()
        if not cartera.initialized:
            return Result.fail("The cartera has not been initialized", ErrorType.NOT_FOUND)
        if cartera.total_available < total:
            err = InsufficientFundsError(total, cartera.total_available)
            logger.warning("Return of %s rejected: %s", contribution_id, err)
            return Result.from_error(err, ErrorType.INSUFFICIENT_FUNDS)

        remaining = round(float(contribution['amount']) - capital, 2)
        update = {'amount': remaining}
        if remaining <= 0:
            update['status'] = 'returned'
            update['returned_at'] = return_date.strftime(DATE_FORMAT_STORAGE)

        with self.db.transaction():
            self.db.update_record(CONTRIBUTIONS, contribution_id, update)
            self.adjust_cartera(available=-total)
            self.log_movement('salida', 'devolucion', total, contribution_id=contribution_id,
                              investor_id=contribution.get('investor_id'),
                              capital=capital, profit=profit,
                              movement_date=return_date.strftime(DATE_FORMAT_STORAGE))

        logger.info("Returned %.2f on contribution %s", total, contribution_id)
        return Result.ok(remaining)
