"""
Report generation module for the Cartera ledger.
Builds the loan portfolio table and per-client reports as DataFrames.
"""
import logging

import pandas as pd

from cartera.config import CLIENTS, PAYMENTS
from cartera.data_structures import ClientReport
from cartera.services import ClientService, LoanService

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    'loan_id', 'client_id', 'client_name', 'start_date', 'payment_method', 'principal',
    'outstanding_principal', 'accrued_interest', 'periods_elapsed', 'last_payment_date', 'status',
]


class ReportGenerator:
    def __init__(self, db_manager, loan_service=None):
        self.db = db_manager
        self.loan_service = loan_service or LoanService(db_manager)

    def _payments_by_loan(self):
        """Fetch all payments once and group them per loan, newest first."""
        grouped = {}
        for payment in self.db.list_records(PAYMENTS, order_by='payment_date', descending=True):
            grouped.setdefault(payment.get('loan_id'), []).append(payment)
        return grouped

    def _loan_rows(self, loans, client_names, today):
        payments_by_loan = self._payments_by_loan()
        rows = []
        for loan in loans:
            summary = self.loan_service.build_summary(
                loan, payments_by_loan.get(loan['id'], []), today=today
            )
            rows.append({
                'loan_id': loan['id'],
                'client_id': loan.get('client_id'),
                'client_name': client_names.get(loan.get('client_id'), loan.get('client_id')),
                'start_date': loan.get('start_date'),
                'payment_method': loan.get('payment_method'),
                'principal': float(loan.get('principal', 0)),
                'outstanding_principal': summary['outstanding_principal'],
                'accrued_interest': summary['accrued_interest'],
                'periods_elapsed': summary['periods_elapsed'],
                'last_payment_date': summary['last_payment_date'],
                'status': loan.get('status'),
            })

        df = pd.DataFrame(rows, columns=REPORT_COLUMNS)
        if not df.empty:
            df = df.sort_values(by=['start_date', 'loan_id'], ascending=[False, True]).reset_index(drop=True)
        return df

    def portfolio_report(self, today=None, search=None):
        """One row per loan with its current accrual.

        Args:
            today: Day to accrue up to; defaults to the current date.
            search: Optional case-insensitive filter on client name.

        Returns:
            DataFrame with REPORT_COLUMNS, newest loans first.
        """
        client_names = {c['id']: c.get('name', '') for c in self.db.list_records(CLIENTS)}
        loans = self.loan_service.get_loans()
        df = self._loan_rows(loans, client_names, today)

        if search and not df.empty:
            term = search.strip().lower()
            df = df[df['client_name'].str.lower().str.contains(term, regex=False)].reset_index(drop=True)

        logger.debug("Portfolio report with %d loans", len(df))
        return df

    def portfolio_totals(self, df):
        """KPI totals for a report DataFrame."""
        if df.empty:
            return {'loan_count': 0, 'total_principal': 0.0,
                    'total_outstanding': 0.0, 'total_accrued_interest': 0.0}
        return {
            'loan_count': int(len(df)),
            'total_principal': round(float(df['principal'].sum()), 2),
            'total_outstanding': round(float(df['outstanding_principal'].sum()), 2),
            'total_accrued_interest': round(float(df['accrued_interest'].sum()), 2),
        }

    def client_report(self, client_id, today=None):
        """Report for a single client: their loans and KPI totals.

        Raises:
            ClientNotFoundError: If the client doesn't exist.
        """
        client = ClientService(self.db).get_client(client_id)
        loans = self.loan_service.get_loans(client_id=client_id)
        df = self._loan_rows(loans, {client_id: client.get('name', '')}, today)
        return ClientReport(client=client, loans_df=df, totals=self.portfolio_totals(df))
