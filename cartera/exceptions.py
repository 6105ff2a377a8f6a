"""Custom exceptions for the Cartera lending ledger."""


class CarteraError(Exception):
    """Base exception for all Cartera errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class InvalidInputError(CarteraError):
    """Raised when an amount, rate or date cannot be used for a calculation."""

    def __init__(self, message: str, field: str = None, value=None):
        details = {}
        if field:
            details['field'] = field
        if value is not None:
            details['value'] = value
        super().__init__(message, details)


class DatabaseError(CarteraError):
    """Raised when a document store operation fails."""
    pass


class TransactionError(DatabaseError):
    """Raised when a document store transaction fails to complete."""
    pass


class RecordNotFoundError(CarteraError):
    """Raised when a document cannot be found in its collection."""

    def __init__(self, collection: str, record_id: str, label: str = "Record"):
        details = {'collection': collection, 'id': record_id}
        super().__init__(f"{label} '{record_id}' not found", details)


class LoanNotFoundError(RecordNotFoundError):
    """Raised when a loan cannot be found."""

    def __init__(self, loan_id: str):
        super().__init__("prestamos", loan_id, label="Loan")


class ClientNotFoundError(RecordNotFoundError):
    """Raised when a client cannot be found."""

    def __init__(self, client_id: str):
        super().__init__("clientes", client_id, label="Client")


class ContributionNotFoundError(RecordNotFoundError):
    """Raised when an investor contribution cannot be found."""

    def __init__(self, contribution_id: str):
        super().__init__("aportes", contribution_id, label="Contribution")


class InsufficientFundsError(CarteraError):
    """Raised when the cartera cannot cover a disbursement or return."""

    def __init__(self, required: float, available: float):
        details = {
            'required': required,
            'available': available
        }
        message = f"Insufficient funds: required {required}, available {available}"
        super().__init__(message, details)


class LoanInactiveError(CarteraError):
    """Raised when an operation requires an active loan but the loan is closed."""

    def __init__(self, loan_id: str, status: str):
        details = {
            'loan_id': loan_id,
            'status': status
        }
        message = f"Loan '{loan_id}' is not active (status: {status})"
        super().__init__(message, details)


class ProviderNotFoundError(RecordNotFoundError):
    """Raised when a capital provider cannot be found."""

    def __init__(self, provider_id: str):
        super().__init__("proveedores", provider_id, label="Provider")
