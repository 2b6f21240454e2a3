"""
Module: accounting_kernel.db.types
Responsibility: Annotated type aliases for the column precisions used by the
    invoice engine, plus the annotation map that binds each alias to its SQL
    type.  Every model uses these aliases so that stored precision matches
    the rounding categories of accounting_kernel.domain.rounding.
Architecture position: Kernel > DB.  Imported by db/base.py and models/.
    MUST NOT import from models/, services/, selectors/, or domain/.
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import Integer, Numeric, String

# Monetary amount: 2 decimal places
Amount = Annotated[Decimal, "amount"]

# Physical quantity: 3 decimal places
Quantity = Annotated[Decimal, "quantity"]

# Unit price: 4 decimal places
UnitPrice = Annotated[Decimal, "unit_price"]

# Currency rate snapshot: 4 decimal places
CurrencyRate = Annotated[Decimal, "currency_rate"]

# Percentages with fractional part (discount): 2 decimal places
Percent = Annotated[Decimal, "percent"]

# Integer percentages (VAT, withholding)
IntPercent = Annotated[int, "int_percent"]

# ISO 4217 currency code (e.g., "TRY", "EUR")
CurrencyCode = Annotated[str, "currency_code"]

# Short identifier strings (codes, numbers, units)
ShortCode = Annotated[str, "short_code"]

# Free text
LongText = Annotated[str, "long_text"]


TYPE_ANNOTATION_MAP: dict = {
    Amount: Numeric(18, 2),
    Quantity: Numeric(18, 3),
    UnitPrice: Numeric(18, 4),
    CurrencyRate: Numeric(18, 4),
    Percent: Numeric(5, 2),
    IntPercent: Integer,
    CurrencyCode: String(3),
    ShortCode: String(50),
    LongText: String(500),
}
