"""Centralized configuration for the Cartera lending ledger.

This module contains the business rule constants, storage names and
default values used across the calculator and the services.
"""

# =============================================================================
# LOAN DEFAULTS
# =============================================================================

# Default interest rate charged per fortnight (15%)
DEFAULT_INTEREST_RATE = 0.15

# Default payment method recorded on new loans
DEFAULT_PAYMENT_METHOD = "efectivo"

# =============================================================================
# ACCRUAL SCHEDULE
# =============================================================================

# Mid-month period boundary
FORTNIGHT_DAY = 15

# Month-end period boundary (February uses its actual last day)
MONTH_END_DAY = 30

# Decimal places used when reporting currency amounts
CURRENCY_DECIMALS = 2

# =============================================================================
# DATE FORMATS
# =============================================================================

# Canonical date format for storage and input (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Day-first format found in older records; only accepted by the migration helper
LEGACY_DATE_FORMAT = "%d-%m-%Y"

# Timestamp format for created_at / recorded_at fields
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# =============================================================================
# DOCUMENT STORE
# =============================================================================

DEFAULT_DB_NAME = "cartera.db"

CLIENTS = "clientes"
LOANS = "prestamos"
PAYMENTS = "pagos"
INVESTORS = "inversionistas"
CONTRIBUTIONS = "aportes"
MOVEMENTS = "movimientos"
CARTERA = "cartera"

# Singleton document holding the portfolio balance
CARTERA_DOC_ID = "estado"

# Client phone numbers are stored as 0000-0000
PHONE_PATTERN = r"^\d{4}-\d{4}$"

# =============================================================================
# CAPITAL PROVIDERS
# =============================================================================

PROVIDERS = "proveedores"
PROVIDER_TRANSACTIONS = "transacciones_proveedor"
LOAN_ASSIGNMENTS = "asignaciones"

# Provider transaction types; only capital repayments lower a provider's balance
PROVIDER_TRANSACTION_TYPES = ("capital", "interes")
