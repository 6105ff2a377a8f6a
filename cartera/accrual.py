"""Fortnightly interest accrual for Cartera loans.

Interest is charged per fortnight: every 15th of the month and every 30th
(the last day of February, which is shorter) is a period boundary. A loan
accrues `rate` on its outstanding principal for each boundary crossed since
the last payment that included interest.

Everything here is pure. Callers fetch a loan and its payments, then call
calculate_accrual with plain values.
"""
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from cartera.config import (
    CURRENCY_DECIMALS,
    DATE_FORMAT_STORAGE,
    FORTNIGHT_DAY,
    LEGACY_DATE_FORMAT,
    MONTH_END_DAY,
)
from cartera.exceptions import InvalidInputError

_CENTS = Decimal(1).scaleb(-CURRENCY_DECIMALS)
_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class PaymentSnapshot:
    """Immutable view of a payment, as consumed by the calculator."""
    principal_portion: Decimal
    interest_portion: Decimal
    payment_date: date

    @classmethod
    def from_record(cls, record) -> 'PaymentSnapshot':
        """Build a snapshot from a store document or any object with the same attributes.

        Raises:
            InvalidInputError: If an amount is negative or a date is malformed.
        """
        if isinstance(record, Mapping):
            getter = record.get
        else:
            def getter(name, default=None):
                return getattr(record, name, default)

        principal_portion = to_decimal(getter('principal_portion', 0) or 0, 'principal_portion')
        interest_portion = to_decimal(getter('interest_portion', 0) or 0, 'interest_portion')
        if principal_portion < 0:
            raise InvalidInputError("Payment principal portion cannot be negative",
                                    'principal_portion', str(principal_portion))
        if interest_portion < 0:
            raise InvalidInputError("Payment interest portion cannot be negative",
                                    'interest_portion', str(interest_portion))
        return cls(
            principal_portion=principal_portion,
            interest_portion=interest_portion,
            payment_date=parse_date(getter('payment_date'), 'payment_date'),
        )


@dataclass(frozen=True)
class AccrualResult:
    """Derived state of a loan at a given day.

    accrued_interest is rounded half-up to cents for display;
    accrued_interest_exact keeps the unrounded product for further arithmetic.
    """
    outstanding_principal: Decimal
    accrued_interest: Decimal
    accrued_interest_exact: Decimal
    periods_elapsed: int
    last_interest_settlement_date: date

    def to_dict(self):
        return {
            'outstanding_principal': float(self.outstanding_principal),
            'accrued_interest': float(self.accrued_interest),
            'periods_elapsed': self.periods_elapsed,
            'last_interest_settlement_date': self.last_interest_settlement_date.strftime(DATE_FORMAT_STORAGE),
        }


def parse_date(value, field: str = 'date') -> date:
    """Parse a calendar date in the canonical YYYY-MM-DD format.

    date objects pass through and datetimes are truncated to their date.
    Day-first strings are rejected rather than guessed; see migrate_legacy_date.

    Raises:
        InvalidInputError: If the value is missing or not a valid date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"Missing or invalid {field}", field, value)
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT_STORAGE).date()
    except ValueError:
        raise InvalidInputError(f"Invalid {field}: expected YYYY-MM-DD", field, value)


def migrate_legacy_date(value: str) -> str:
    """Convert a stored date string to the canonical YYYY-MM-DD format.

    Accepts canonical strings unchanged and day-first DD-MM-YYYY strings
    from older records.

    Raises:
        InvalidInputError: If the string matches neither format.
    """
    for fmt in (DATE_FORMAT_STORAGE, LEGACY_DATE_FORMAT):
        try:
            return datetime.strptime(str(value).strip(), fmt).strftime(DATE_FORMAT_STORAGE)
        except ValueError:
            continue
    raise InvalidInputError("Unrecognised date format", 'date', value)


def to_decimal(value, field: str = 'amount') -> Decimal:
    """Convert a stored amount to Decimal.

    Floats go through their string form so 0.15 stays 0.15.

    Raises:
        InvalidInputError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid {field}", field, value)
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(repr(value))
        else:
            result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"Invalid {field}", field, value)
    if not result.is_finite():
        raise InvalidInputError(f"Invalid {field}", field, value)
    return result


def round_currency(amount: Decimal) -> Decimal:
    """Round half-up to cents."""
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def is_period_boundary(day: date) -> bool:
    """Return True if interest accrues on this day.

    The 15th always counts. The second boundary is the 30th, except in
    February where it is the last day of the month. The 31st never counts.
    """
    if day.day == FORTNIGHT_DAY:
        return True
    if day.month == 2:
        return day == day + relativedelta(day=31)
    return day.day == MONTH_END_DAY


def count_period_boundaries(start: date, end: date) -> int:
    """Count boundary days strictly after start and up to end inclusive.

    Returns 0 when end is on or before start.
    """
    count = 0
    current = start + _ONE_DAY
    while current <= end:
        if is_period_boundary(current):
            count += 1
        current += _ONE_DAY
    return count


def last_interest_settlement(start_date: date, payments: Iterable[PaymentSnapshot]) -> date:
    """Latest date of a payment with interest, never earlier than start_date.

    Principal-only payments do not move the settlement date.
    """
    settlement = start_date
    for payment in payments:
        if payment.interest_portion > 0 and payment.payment_date > settlement:
            settlement = payment.payment_date
    return settlement


def calculate_accrual(principal, start_date, rate, payments=(), today: Optional[date] = None) -> AccrualResult:
    """Compute outstanding principal and interest accrued since the last settlement.

    Args:
        principal: Original amount lent; must be positive.
        start_date: Disbursement date (YYYY-MM-DD string or date).
        rate: Fractional rate charged per period, e.g. 0.15; must not be negative.
        payments: Payment documents or snapshots, in any order.
        today: Day to accrue up to; defaults to the current date.

    Returns:
        AccrualResult for the loan.

    Raises:
        InvalidInputError: On non-positive principal, negative rate,
            negative payment amounts or malformed dates.
    """
    principal = to_decimal(principal, 'principal')
    if principal <= 0:
        raise InvalidInputError("Principal must be greater than zero", 'principal', str(principal))
    rate = to_decimal(rate, 'rate')
    if rate < 0:
        raise InvalidInputError("Rate cannot be negative", 'rate', str(rate))
    start = parse_date(start_date, 'start_date')
    as_of = date.today() if today is None else parse_date(today, 'today')

    snapshots = [p if isinstance(p, PaymentSnapshot) else PaymentSnapshot.from_record(p)
                 for p in payments]

    repaid = sum((p.principal_portion for p in snapshots), Decimal(0))
    outstanding = max(Decimal(0), principal - repaid)

    settlement = last_interest_settlement(start, snapshots)
    periods = count_period_boundaries(settlement, as_of)

    accrued = periods * outstanding * rate
    return AccrualResult(
        outstanding_principal=outstanding,
        accrued_interest=round_currency(accrued),
        accrued_interest_exact=accrued,
        periods_elapsed=periods,
        last_interest_settlement_date=settlement,
    )
