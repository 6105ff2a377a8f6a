"""Services package for the Cartera ledger.

Each service is a thin adapter over the document store: it fetches records,
hands immutable snapshots to the accrual calculator and persists the
resulting side effects.
"""

from .client_service import ClientService
from .loan_service import LoanService
from .payment_service import PaymentService
from .portfolio_service import PortfolioService
from .provider_service import ProviderService

__all__ = ['ClientService', 'LoanService', 'PaymentService', 'PortfolioService', 'ProviderService']
