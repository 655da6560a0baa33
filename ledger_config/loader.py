"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the ledger YAML file and parses it into the typed
``ledger_config.schema`` dataclasses.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Chart codes are unique, and the chart covers every code the posting
  rules depend on (``ChartOfAccountsError`` otherwise).
* Every extension pack names only known entry types.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ChartAccountDef,
    LedgerConfig,
    TenantDef,
    VerificationSettings,
)
from ledger_kernel.domain.account_codes import validate_chart
from ledger_kernel.domain.entry_types import CORE_ENTRY_TYPES, EXTENSION_PACKS
from ledger_kernel.models.account import AccountType, NormalBalance

KNOWN_ENTRY_TYPES: frozenset[str] = CORE_ENTRY_TYPES.union(*EXTENSION_PACKS.values())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_account(data: dict[str, Any]) -> ChartAccountDef:
    """
    Parse a ``ChartAccountDef`` from a dict.

    Raises:
        KeyError: if code, name, type or normal_balance is missing.
        ValueError: if type or normal_balance is not a known value.
    """
    return ChartAccountDef(
        code=str(data["code"]),
        name=data["name"],
        account_type=AccountType(data["type"]),
        normal_balance=NormalBalance(data["normal_balance"]),
        is_cash=bool(data.get("is_cash", False)),
        is_cogs=bool(data.get("is_cogs", False)),
    )


def parse_chart(items: list[dict[str, Any]]) -> tuple[ChartAccountDef, ...]:
    chart = tuple(parse_account(item) for item in items)
    seen: set[str] = set()
    for definition in chart:
        if definition.code in seen:
            raise ValueError(f"Duplicate account code in chart: {definition.code}")
        seen.add(definition.code)
    return chart


def parse_extension_packs(data: dict[str, Any]) -> dict[str, frozenset[str]]:
    packs = {}
    for name, entry_types in data.items():
        unknown = sorted(set(entry_types) - KNOWN_ENTRY_TYPES)
        if unknown:
            raise ValueError(f"Extension pack '{name}' names unknown entry types: {unknown}")
        packs[name] = frozenset(entry_types)
    return packs


def parse_verification(data: dict[str, Any]) -> VerificationSettings:
    defaults = VerificationSettings()
    return VerificationSettings(
        timeout_seconds=float(data.get("timeout_seconds", defaults.timeout_seconds)),
        cost_tolerance_cents=int(data.get("cost_tolerance_cents", defaults.cost_tolerance_cents)),
        ar_correction_offset=str(data.get("ar_correction_offset", defaults.ar_correction_offset)),
        max_workers=int(data.get("max_workers", defaults.max_workers)),
    )


def parse_tenants(data: dict[str, Any], packs: dict[str, frozenset[str]]) -> dict[str, TenantDef]:
    tenants = {}
    for tenant_id, tenant_data in data.items():
        extensions = tuple((tenant_data or {}).get("extensions", ()))
        missing = [name for name in extensions if name not in packs]
        if missing:
            raise ValueError(f"Tenant '{tenant_id}' enables unknown packs: {missing}")
        tenants[str(tenant_id)] = TenantDef(tenant_id=str(tenant_id), extensions=extensions)
    return tenants


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a full ``LedgerConfig`` from the root YAML mapping.

    Raises:
        KeyError: if config_id or chart is missing.
        ChartOfAccountsError: if the chart lacks a required code.
    """
    chart = parse_chart(data["chart"])
    validate_chart(str(data["config_id"]), (d.code for d in chart))
    packs = parse_extension_packs(data.get("extension_packs", {}))

    return LedgerConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        epoch=parse_date(data.get("epoch", "2000-01-01")),
        chart=chart,
        extension_packs=packs,
        verification=parse_verification(data.get("verification", {})),
        tenants=parse_tenants(data.get("tenants", {}), packs),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization (deterministic)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
