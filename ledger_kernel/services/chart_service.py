"""
ChartService -- idempotent seeding and metadata maintenance of the chart.

Seeding inserts codes that are missing and refreshes the metadata (name,
flags) of codes that exist.  Structural fields of an existing account
(account_type, normal_balance) are never rewritten: doing so would change
the meaning of every historical line on it.
"""

from dataclasses import dataclass
from typing import Iterable, Protocol

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType, NormalBalance
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.chart")


class AccountDefinition(Protocol):
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_cash: bool
    is_cogs: bool


@dataclass(frozen=True)
class SeedResult:
    created: tuple[str, ...]
    updated: tuple[str, ...]
    unchanged: tuple[str, ...]
    structure_conflicts: tuple[str, ...] = ()


class ChartService(BaseService):
    """Writes to the tenant's chart of accounts."""

    def seed(self, chart: Iterable[AccountDefinition], validate: bool = True) -> SeedResult:
        """
        Insert missing accounts and refresh metadata of existing ones.

        Args:
            chart: Account definitions (typically LedgerConfig.chart).
            validate: Run validate_chart afterwards so a chart lacking a
                code the posting rules need fails fast.

        Raises:
            ChartOfAccountsError: validate is True and a required code is
                missing after seeding.
        """
        selector = AccountSelector(self.session, self.tenant)
        existing = {account.code: account for account in selector.list_accounts()}
        created, updated, unchanged, conflicts = [], [], [], []

        for definition in chart:
            account_type = AccountType(definition.account_type)
            normal_balance = NormalBalance(definition.normal_balance)
            account = existing.get(definition.code)

            if account is None:
                self.session.add(
                    Account(
                        tenant_id=self.tenant_id,
                        code=definition.code,
                        name=definition.name,
                        account_type=account_type.value,
                        normal_balance=normal_balance.value,
                        is_cash=definition.is_cash,
                        is_cogs=definition.is_cogs,
                        is_active=True,
                    )
                )
                created.append(definition.code)
                continue

            if (
                account.account_type != account_type.value
                or account.normal_balance != normal_balance.value
            ):
                logger.warning(
                    "account_structure_conflict",
                    extra={
                        "account_code": account.code,
                        "stored_type": account.account_type,
                        "configured_type": account_type.value,
                        "stored_normal_balance": account.normal_balance,
                        "configured_normal_balance": normal_balance.value,
                    },
                )
                conflicts.append(account.code)

            changed = self._apply_metadata(
                account,
                name=definition.name,
                is_cash=definition.is_cash,
                is_cogs=definition.is_cogs,
            )
            (updated if changed else unchanged).append(account.code)

        self.session.flush()

        logger.info(
            "chart_seeded",
            extra={
                "created_count": len(created),
                "updated_count": len(updated),
                "unchanged_count": len(unchanged),
                "structure_conflicts": conflicts,
            },
        )

        if validate:
            selector.validate_chart()

        return SeedResult(tuple(created), tuple(updated), tuple(unchanged), tuple(conflicts))

    def update_metadata(
        self,
        code: str,
        name: str | None = None,
        is_cash: bool | None = None,
        is_cogs: bool | None = None,
        is_active: bool | None = None,
    ) -> Account:
        account = AccountSelector(self.session, self.tenant).get_by_code(code)
        if self._apply_metadata(
            account, name=name, is_cash=is_cash, is_cogs=is_cogs, is_active=is_active
        ):
            self.session.flush()
            logger.info("account_metadata_updated", extra={"account_code": account.code})
        return account

    @staticmethod
    def _apply_metadata(account: Account, **fields) -> bool:
        changed = False
        for name, value in fields.items():
            if value is not None and getattr(account, name) != value:
                setattr(account, name, value)
                changed = True
        return changed
