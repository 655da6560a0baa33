"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to react to ledger failures without parsing message
text. Every error here has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (account codes, entry ids, cents deltas)

Example:
    try:
        ledger.post(spec)
    except UnbalancedEntryError as e:
        log.warning("unbalanced", extra={"debits": e.debits, "credits": e.credits})

Reconciliation drift is NOT an exception: verification checks report it as
an ordinary CheckResult. Duplicate posting attempts are NOT exceptions
either: LedgerService.post_once() returns the pre-existing entry.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerKernelError (base)
    |
    +-- ValidationError                 rejected before any write
    |   +-- MissingFieldError
    |   +-- InvalidEntryTypeError
    |   +-- InvalidLineError
    |   +-- UnbalancedEntryError
    |   +-- ZeroAmountEntryError
    |   +-- InvalidTransferError
    |   +-- NoAdjustmentNeededError
    |   +-- InsufficientStockError
    |   +-- InvalidQuantityError
    |
    +-- NotFoundError                   fatal to the calling operation
    |   +-- AccountNotFoundError
    |   +-- EntryNotFoundError
    |   +-- IngredientNotFoundError
    |   +-- LocationNotFoundError
    |   +-- MovementNotFoundError
    |
    +-- AlreadyClosedError              second year-end close for a date
    +-- ChartOfAccountsError            seeded chart missing required codes
    +-- CorrectionError                 in-place edit would break the entry
    +-- UnknownRepairError
    +-- TransactionFailure
        +-- RepairFailedError           whole repair rolled back

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                   | When Raised
-------------|------------------------|-----------------------------------------
Validation   | MISSING_FIELD          | Required entry attribute absent
             | INVALID_ENTRY_TYPE     | entry_type not allowed for the tenant
             | INVALID_LINE           | Line has zero, negative or two sides
             | UNBALANCED_ENTRY       | Debits != Credits
             | ZERO_AMOUNT_ENTRY      | Entry totals zero
             | INVALID_TRANSFER       | Same account or non asset/liability
             | NO_ADJUSTMENT_NEEDED   | Reconciliation finds balances equal
             | INSUFFICIENT_STOCK     | Outflow exceeds quantity on hand
             | INVALID_QUANTITY       | Movement quantity is not positive
-------------|------------------------|-----------------------------------------
Not found    | ACCOUNT_NOT_FOUND      | Unknown account code or id
             | ENTRY_NOT_FOUND        | Unknown journal entry
             | INGREDIENT_NOT_FOUND   | Unknown ingredient code
             | LOCATION_NOT_FOUND     | Unknown location code
             | MOVEMENT_NOT_FOUND     | Unknown inventory movement
-------------|------------------------|-----------------------------------------
Close        | ALREADY_CLOSED         | Year-end close exists for the date
Chart        | CHART_OF_ACCOUNTS      | Required codes missing from the chart
Correction   | CORRECTION_REJECTED    | In-place edit rejected
Repair       | UNKNOWN_REPAIR         | No repair registered under the name
             | TRANSACTION_FAILURE    | Multi-step operation aborted
             | REPAIR_FAILED          | Repair rolled back in full
"""


class LedgerKernelError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_KERNEL_ERROR"


# Validation


class ValidationError(LedgerKernelError):
    """Input rejected before any write; retryable after correction."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required entry attribute is missing."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Journal entry is missing required field: {field_name}")


class InvalidEntryTypeError(ValidationError):
    """Entry type is not in the tenant's allowed set."""

    code: str = "INVALID_ENTRY_TYPE"

    def __init__(self, entry_type: str, tenant_id: str):
        self.entry_type = entry_type
        self.tenant_id = tenant_id
        super().__init__(
            f"Entry type '{entry_type}' is not allowed for tenant {tenant_id}"
        )


class InvalidLineError(ValidationError):
    """One or more lines violate the one-positive-side rule."""

    code: str = "INVALID_LINE"

    def __init__(self, line_indexes: tuple[int, ...], reason: str):
        self.line_indexes = line_indexes
        self.reason = reason
        numbers = ", ".join(str(i + 1) for i in line_indexes)
        super().__init__(f"Invalid journal line(s) {numbers}: {reason}")


class UnbalancedEntryError(ValidationError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: int, credits: int):
        self.debits = debits
        self.credits = credits
        self.difference = debits - credits
        super().__init__(
            f"Unbalanced entry: debits={debits}, credits={credits} "
            f"(difference {debits - credits})"
        )


class ZeroAmountEntryError(ValidationError):
    """Journal entry has no lines or totals zero."""

    code: str = "ZERO_AMOUNT_ENTRY"

    def __init__(self, reference: str | None):
        self.reference = reference
        super().__init__(f"Journal entry {reference or '(no reference)'} has a zero total")


class InvalidTransferError(ValidationError):
    """Transfer between the same account or a non-transferable account."""

    code: str = "INVALID_TRANSFER"

    def __init__(self, from_code: str, to_code: str, reason: str):
        self.from_code = from_code
        self.to_code = to_code
        self.reason = reason
        super().__init__(f"Invalid transfer {from_code} -> {to_code}: {reason}")


class NoAdjustmentNeededError(ValidationError):
    """Reconciliation requested but recorded and actual values match."""

    code: str = "NO_ADJUSTMENT_NEEDED"

    def __init__(self, subject: str, compared: str = "balances"):
        self.subject = subject
        super().__init__(f"No adjustment needed - {compared} match")


class InsufficientStockError(ValidationError):
    """Outflow exceeds the quantity on hand."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, ingredient_code: str, location_code: str, on_hand: int, requested: int):
        self.ingredient_code = ingredient_code
        self.location_code = location_code
        self.on_hand = on_hand
        self.requested = requested
        super().__init__(
            f"Insufficient stock of {ingredient_code} @ {location_code}: "
            f"on hand {on_hand}, requested {requested}"
        )


class InvalidQuantityError(ValidationError):
    """Inventory movement with a zero or negative quantity."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, ingredient_code: str, quantity: int):
        self.ingredient_code = ingredient_code
        self.quantity = quantity
        super().__init__(f"Quantity of {ingredient_code} must be positive, got {quantity}")


# Not found


class NotFoundError(LedgerKernelError):
    """Referenced record does not exist."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str | int):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class EntryNotFoundError(NotFoundError):
    """Journal entry was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_ref: str | int):
        self.entry_ref = entry_ref
        super().__init__(f"Journal entry not found: {entry_ref}")


class IngredientNotFoundError(NotFoundError):
    """Ingredient was not found."""

    code: str = "INGREDIENT_NOT_FOUND"

    def __init__(self, ingredient_code: str):
        self.ingredient_code = ingredient_code
        super().__init__(f"Ingredient not found: {ingredient_code}")


class LocationNotFoundError(NotFoundError):
    """Inventory location was not found."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_code: str):
        self.location_code = location_code
        super().__init__(f"Location not found: {location_code}")


class MovementNotFoundError(NotFoundError):
    """Inventory movement was not found (or is not of the expected type)."""

    code: str = "MOVEMENT_NOT_FOUND"

    def __init__(self, movement_id: int, movement_type: str | None = None):
        self.movement_id = movement_id
        self.movement_type = movement_type
        kind = f"{movement_type} movement" if movement_type else "Inventory movement"
        super().__init__(f"{kind.capitalize()} not found: {movement_id}")


# Close / chart / correction


class AlreadyClosedError(LedgerKernelError):
    """A year-end close already exists on or after the requested date."""

    code: str = "ALREADY_CLOSED"

    def __init__(self, close_date, last_close_date=None):
        self.close_date = close_date
        self.last_close_date = last_close_date or close_date
        if self.last_close_date == close_date:
            message = f"Year-end close already exists for {close_date}"
        else:
            message = (
                f"Year-end close already exists for {self.last_close_date}, "
                f"after the requested {close_date}"
            )
        super().__init__(message)


class ChartOfAccountsError(LedgerKernelError):
    """The tenant's chart is missing codes the posting rules depend on."""

    code: str = "CHART_OF_ACCOUNTS"

    def __init__(self, tenant_id: str, missing_codes: tuple[str, ...]):
        self.tenant_id = tenant_id
        self.missing_codes = missing_codes
        super().__init__(
            f"Chart of accounts for tenant {tenant_id} is missing: "
            f"{', '.join(missing_codes)}"
        )


class CorrectionError(LedgerKernelError):
    """In-place correction rejected."""

    code: str = "CORRECTION_REJECTED"

    def __init__(self, line_id: int, reason: str):
        self.line_id = line_id
        self.reason = reason
        super().__init__(f"Correction of journal line #{line_id} rejected: {reason}")


class UnknownRepairError(LedgerKernelError):
    """No repair is registered under the requested name."""

    code: str = "UNKNOWN_REPAIR"

    def __init__(self, repair_name: str):
        self.repair_name = repair_name
        super().__init__(f"Unknown repair type: {repair_name}")


# Transactions


class TransactionFailure(LedgerKernelError):
    """A multi-step operation aborted and was rolled back."""

    code: str = "TRANSACTION_FAILURE"


class RepairFailedError(TransactionFailure):
    """A repair failed part-way; none of its changes persisted."""

    code: str = "REPAIR_FAILED"

    def __init__(self, repair_name: str, cause: str):
        self.repair_name = repair_name
        self.cause = cause
        super().__init__(f"Repair '{repair_name}' rolled back: {cause}")
