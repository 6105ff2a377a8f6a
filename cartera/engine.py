"""Business logic engine for the Cartera ledger.

This module provides the LedgerEngine class which acts as a facade over
the focused service classes in cartera/services/.

Service Classes:
    - ClientService: Client registry
    - LoanService: Loan disbursement and accrual summaries
    - PaymentService: Payment registration
    - PortfolioService: Cartera balance, investors and contributions
    - ProviderService: Capital providers and loan assignments
"""
from cartera.reports import ReportGenerator
from cartera.services import ClientService, LoanService, PaymentService, PortfolioService, ProviderService


class LedgerEngine:
    """Entry point for callers that hold a DocumentStore.

    Attributes:
        db: DocumentStore instance for data persistence.
        client_service: ClientService instance (lazy-loaded).
        loan_service: LoanService instance (lazy-loaded).
        payment_service: PaymentService instance (lazy-loaded).
        portfolio_service: PortfolioService instance (lazy-loaded).
        provider_service: ProviderService instance (lazy-loaded).
        reports: ReportGenerator instance (lazy-loaded).
    """

    def __init__(self, db_manager):
        self.db = db_manager
        self._client_service = None
        self._loan_service = None
        self._payment_service = None
        self._portfolio_service = None
        self._provider_service = None
        self._reports = None

    @property
    def portfolio_service(self):
        if self._portfolio_service is None:
            self._portfolio_service = PortfolioService(self.db)
        return self._portfolio_service

    @property
    def provider_service(self):
        if self._provider_service is None:
            self._provider_service = ProviderService(self.db)
        return self._provider_service

    @property
    def client_service(self):
        if self._client_service is None:
            self._client_service = ClientService(self.db)
        return self._client_service

    @property
    def loan_service(self):
        if self._loan_service is None:
            self._loan_service = LoanService(self.db, self.portfolio_service)
        return self._loan_service

    @property
    def payment_service(self):
        if self._payment_service is None:
            self._payment_service = PaymentService(self.db, self.loan_service)
        return self._payment_service

    @property
    def reports(self):
        if self._reports is None:
            self._reports = ReportGenerator(self.db, self.loan_service)
        return self._reports

    def add_client(self, name, phone):
        return self.client_service.add_client(name, phone)

    def add_loan(self, client_id, amount, start_date, payment_method, rate=None):
        """Disburse a loan. Delegates to LoanService."""
        return self.loan_service.add_loan(client_id, amount, start_date, payment_method, rate)

    def add_payment(self, loan_id, principal_portion, interest_portion, payment_date):
        """Record a payment. Delegates to PaymentService."""
        return self.payment_service.add_payment(loan_id, principal_portion, interest_portion, payment_date)

    def add_contribution(self, investor_id, amount, profit_percentage, date_str=None):
        return self.portfolio_service.add_contribution(investor_id, amount, profit_percentage, date_str)

    def return_contribution(self, contribution_id, capital=None, profit=None, date_str=None):
        return self.portfolio_service.return_contribution(contribution_id, capital, profit, date_str)

    def assign_loan(self, loan_amount, assignments, loan_id=None):
        """Split a loan across capital providers. Delegates to ProviderService."""
        return self.provider_service.assign_loan(loan_amount, assignments, loan_id)

    def get_loan_summary(self, loan_id, today=None):
        return self.loan_service.get_loan_summary(loan_id, today)

    def get_cartera(self):
        return self.portfolio_service.get_cartera()

    def dashboard(self, today=None):
        """Cartera balance plus KPI totals over every loan."""
        cartera = self.get_cartera()
        totals = self.reports.portfolio_totals(self.reports.portfolio_report(today=today))
        totals.update(cartera.to_record())
        return totals
