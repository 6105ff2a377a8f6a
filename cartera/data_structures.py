from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import pandas as pd

from cartera.config import DEFAULT_INTEREST_RATE, DEFAULT_PAYMENT_METHOD


@dataclass
class LoanRecord:
    """Typed view of a loan document."""
    id: str
    client_id: str
    principal: float
    start_date: str
    rate: float = DEFAULT_INTEREST_RATE
    payment_method: str = DEFAULT_PAYMENT_METHOD
    status: str = "active"
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'LoanRecord':
        rate = record.get('rate')
        return cls(
            id=record['id'],
            client_id=record.get('client_id'),
            principal=record.get('principal'),
            start_date=record.get('start_date'),
            rate=DEFAULT_INTEREST_RATE if rate is None else rate,
            payment_method=record.get('payment_method') or DEFAULT_PAYMENT_METHOD,
            status=record.get('status', 'active'),
            created_at=record.get('created_at'),
        )

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class CarteraState:
    """Portfolio balance held in the cartera/estado document."""
    total_available: float = 0.0
    total_lent: float = 0.0
    total_estimated_profit: float = 0.0
    initialized: bool = True

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> 'CarteraState':
        if record is None:
            return cls(initialized=False)
        return cls(
            total_available=float(record.get('total_available', 0) or 0),
            total_lent=float(record.get('total_lent', 0) or 0),
            total_estimated_profit=float(record.get('total_estimated_profit', 0) or 0),
        )

    def to_record(self) -> Dict[str, float]:
        return {
            'total_available': round(self.total_available, 2),
            'total_lent': round(self.total_lent, 2),
            'total_estimated_profit': round(self.total_estimated_profit, 2),
        }


@dataclass
class ClientReport:
    """DTO for everything shown on a client's report."""
    client: Dict[str, Any]
    loans_df: pd.DataFrame
    totals: Dict[str, float] = field(default_factory=dict)

    @property
    def has_loans(self) -> bool:
        return not self.loans_df.empty
