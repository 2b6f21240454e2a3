"""
accounting_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``EngineConfig`` by injection and never read YAML or environment
    variables themselves.

Architecture position:
    Configuration -- sits above ``accounting_kernel.domain`` (it reuses the
    kernel's enums and rounding contract) and is injected into the
    kernel's services.

Failure modes:
    - ``FileNotFoundError`` -- the configured YAML file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema or consistency failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``engine_config_loaded`` log entry with the source path and checksum.
"""

from __future__ import annotations

import os
from pathlib import Path

from accounting_config.loader import compute_checksum, load_yaml_file, parse_engine_config
from accounting_config.schema import EngineConfig
from accounting_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_PATH_ENV = "ACCOUNTING_CONFIG_PATH"

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: ``config_path`` argument, then the
    ``ACCOUNTING_CONFIG_PATH`` environment variable, then the packaged
    ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        KeyError: If a required section is missing.
        ValueError: If configuration validation fails.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    data = load_yaml_file(path)
    checksum = compute_checksum(data)
    config = parse_engine_config(data, checksum=checksum)

    _logger.info(
        "engine_config_loaded",
        extra={
            "config_path": str(path),
            "checksum": checksum,
            "allowed_currencies": list(config.allowed_currencies),
            "rounding_policy": config.rounding_policy,
        },
    )
    return config


__all__ = ["CONFIG_PATH_ENV", "EngineConfig", "get_active_config"]
