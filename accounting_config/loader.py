"""
Configuration Loader (``accounting_config.loader``).

Responsibility
--------------
Loads the engine YAML file and parses it into the frozen
``accounting_config.schema.EngineConfig``.  Runtime callers go through
``accounting_config.get_active_config()`` instead of calling this module.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* The rounding contract is fixed in the kernel: a file that restates it
  differently is rejected rather than silently ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Inconsistent values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from accounting_config.schema import EngineConfig
from accounting_kernel.domain.enums import InvoiceType
from accounting_kernel.domain.rounding import (
    DECIMAL_PLACES,
    ROUNDING_POLICY,
    PrecisionCategory,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_currencies(data: dict[str, Any]) -> tuple[tuple[str, ...], str, Decimal]:
    """Parse the currency section into (allowed, default, default_rate)."""
    allowed = tuple(str(code).strip().upper() for code in data["allowed"])
    if not allowed:
        raise ValueError("currencies.allowed must list at least one currency")
    for code in allowed:
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")

    default = str(data["default"]).strip().upper()
    if default not in allowed:
        raise ValueError(
            f"Default currency {default} is not in the allowed list {allowed}"
        )

    try:
        rate = Decimal(str(data.get("default_rate", "1.0")))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid default_rate: {data.get('default_rate')!r}") from exc
    if rate <= 0:
        raise ValueError(f"default_rate must be positive: {rate}")
    return allowed, default, rate


def parse_invoice_numbering(
    data: dict[str, Any],
) -> tuple[dict[InvoiceType, str], str, int]:
    """Parse the numbering section into (prefixes, fallback_prefix, width)."""
    raw_prefixes = data["prefixes"]
    prefixes: dict[InvoiceType, str] = {}
    for key, prefix in raw_prefixes.items():
        try:
            invoice_type = InvoiceType(key)
        except ValueError as exc:
            raise ValueError(f"Unknown invoice type in prefixes: {key!r}") from exc
        prefixes[invoice_type] = str(prefix)

    missing = [t.value for t in InvoiceType if t not in prefixes]
    if missing:
        raise ValueError(f"Missing invoice prefixes for: {', '.join(missing)}")

    width = int(data.get("sequence_width", 6))
    if width < 1:
        raise ValueError(f"sequence_width must be positive: {width}")
    return prefixes, str(data["fallback_prefix"]), width


def parse_rounding(data: dict[str, Any]) -> tuple[str, dict[PrecisionCategory, int]]:
    policy = data["policy"]
    if policy != ROUNDING_POLICY:
        raise ValueError(
            f"Unsupported rounding policy {policy!r}; the engine rounds {ROUNDING_POLICY}"
        )

    precision: dict[PrecisionCategory, int] = {}
    for key, places in data["precision"].items():
        category = PrecisionCategory(key)
        if int(places) != DECIMAL_PLACES[category]:
            raise ValueError(
                f"Precision for {key} must be {DECIMAL_PLACES[category]}, got {places}"
            )
        precision[category] = int(places)
    return policy, precision


def parse_engine_config(data: dict[str, Any], checksum: str = "") -> EngineConfig:
    """
    Parse an ``EngineConfig`` from the top-level YAML dict.

    Raises:
        KeyError: if a required section is missing.
        ValueError: if any value is inconsistent.
    """
    allowed, default, rate = parse_currencies(data["currencies"])
    prefixes, fallback, width = parse_invoice_numbering(data["invoice_numbering"])
    policy, precision = parse_rounding(data["rounding"])
    return EngineConfig(
        allowed_currencies=allowed,
        default_currency=default,
        default_currency_rate=rate,
        invoice_prefixes=prefixes,
        fallback_prefix=fallback,
        sequence_width=width,
        rounding_policy=policy,
        precision=precision,
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Compute SHA-256 checksum of canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
