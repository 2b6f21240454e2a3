"""
EngineConfig schema.

The frozen runtime artifact produced by the loader.  Services receive it by
injection; nothing downstream reads YAML or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

from accounting_kernel.domain.enums import InvoiceType
from accounting_kernel.domain.rounding import PrecisionCategory


@dataclass(frozen=True)
class EngineConfig:
    """
    Invoice engine configuration.

    Guarantees:
        - default_currency is one of allowed_currencies.
        - Every InvoiceType has a prefix; fallback_prefix covers anything else.
        - precision restates the fixed rounding contract exactly.
    """

    allowed_currencies: tuple[str, ...]
    default_currency: str
    default_currency_rate: Decimal
    invoice_prefixes: Mapping[InvoiceType, str]
    fallback_prefix: str
    sequence_width: int
    rounding_policy: str
    precision: Mapping[PrecisionCategory, int]
    checksum: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "invoice_prefixes", MappingProxyType(dict(self.invoice_prefixes))
        )
        object.__setattr__(self, "precision", MappingProxyType(dict(self.precision)))

    def prefix_for(self, invoice_type: InvoiceType | None) -> str:
        if invoice_type is None:
            return self.fallback_prefix
        return self.invoice_prefixes.get(invoice_type, self.fallback_prefix)

    def is_allowed_currency(self, code: str) -> bool:
        return code in self.allowed_currencies
