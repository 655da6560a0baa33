"""
LedgerConfig schema.

The human-authored YAML configuration is parsed by the loader into these
frozen dataclasses.  Nothing here executes logic beyond trivial lookups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ledger_kernel.domain.tenant import TenantContext
from ledger_kernel.models.account import AccountType, NormalBalance

# ---------------------------------------------------------------------------
# Chart of accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChartAccountDef:
    """One account of the default chart."""

    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_cash: bool = False
    is_cogs: bool = False


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VerificationSettings:
    """Tuning for the verification and repair engine."""

    timeout_seconds: float = 30.0
    cost_tolerance_cents: int = 100
    ar_correction_offset: str = "4000"
    max_workers: int = 4


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TenantDef:
    """A named tenant and the extension packs it enables."""

    tenant_id: str
    extensions: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """The complete, validated ledger configuration."""

    config_id: str
    version: int
    epoch: date
    chart: tuple[ChartAccountDef, ...]
    extension_packs: dict[str, frozenset[str]]
    verification: VerificationSettings = field(default_factory=VerificationSettings)
    tenants: dict[str, TenantDef] = field(default_factory=dict)
    checksum: str = ""

    def account(self, code: str) -> ChartAccountDef | None:
        for definition in self.chart:
            if definition.code == code:
                return definition
        return None

    def entry_types_for(self, extensions: tuple[str, ...] | list[str]) -> frozenset[str]:
        """
        Union of the entry types granted by the named packs.

        Raises:
            ValueError: if a pack name is not configured.
        """
        granted: set[str] = set()
        for name in extensions:
            if name not in self.extension_packs:
                raise ValueError(
                    f"Unknown extension pack '{name}'. "
                    f"Configured: {sorted(self.extension_packs)}"
                )
            granted |= self.extension_packs[name]
        return frozenset(granted)

    def tenant_context(
        self,
        tenant_id: str,
        extensions: tuple[str, ...] | list[str] | None = None,
    ) -> TenantContext:
        """
        Build the TenantContext for ``tenant_id``.

        When ``extensions`` is None the packs configured for the tenant are
        used (none for an unconfigured tenant).
        """
        if extensions is None:
            tenant = self.tenants.get(tenant_id)
            extensions = tenant.extensions if tenant is not None else ()
        return TenantContext.with_extensions(tenant_id, self.entry_types_for(extensions))
