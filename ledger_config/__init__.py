"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``load_config()``: the chart of accounts to seed, the entry-type
    extension packs per tenant, verification tuning and the epoch of the
    first open period.

Architecture position:
    Configuration.  Sits above ``ledger_kernel`` and below
    ``ledger_modules`` / ``ledger_services``.  The kernel MUST NEVER import
    from ``ledger_config``.

Audit relevance:
    Every ``load_config()`` call emits a ``LEDGER_CONFIG_TRACE`` log entry
    with the config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_config
from ledger_config.schema import (
    ChartAccountDef,
    LedgerConfig,
    TenantDef,
    VerificationSettings,
)
from ledger_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def load_config(path: Path | str | None = None) -> LedgerConfig:
    """
    Load and validate a ledger configuration file.

    Args:
        path: YAML file to load.  Defaults to the packaged ``ledger.yaml``.

    Raises:
        FileNotFoundError, yaml.YAMLError, KeyError, ValueError,
        ChartOfAccountsError.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))
    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "account_count": len(config.chart),
            "extension_packs": sorted(config.extension_packs),
            "path": str(config_path),
        },
    )
    return config


__all__ = [
    "ChartAccountDef",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "TenantDef",
    "VerificationSettings",
    "load_config",
]
