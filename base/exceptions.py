"""
Error taxonomy of the billing workflow.

Business-rule errors (validation, missing references, stock, state) are
client-correctable and map to 4xx responses. ``PersistenceFailure`` wraps
infrastructure errors; by the time it is raised the enclosing transaction
has already been rolled back.
"""


class BillingError(Exception):
    """Root of all billing workflow errors."""

    default_message = "Billing operation failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(BillingError):
    default_message = "Validation failed"

    def __init__(self, errors=None, message=None):
        self.errors = dict(errors or {})
        if message is None and self.errors:
            message = f"Validation failed: {self.errors}"
        super().__init__(message)


class NotFound(BillingError):
    default_message = "Not found"


class CustomerNotFound(NotFound):
    def __init__(self, customer_id):
        self.customer_id = customer_id
        super().__init__(f"Customer not found with ID: {customer_id}")


class ItemNotFound(NotFound):
    def __init__(self, item_id):
        self.item_id = item_id
        super().__init__(f"Item not found with ID: {item_id}")


class BillNotFound(NotFound):
    def __init__(self, lookup):
        self.lookup = lookup
        super().__init__(f"Bill not found: {lookup}")


class ItemInactive(BillingError):
    def __init__(self, item_id, name=""):
        self.item_id = item_id
        super().__init__(f"Item is not active: {name or item_id}")


class InsufficientStock(BillingError):
    def __init__(self, item_id, available, requested, name=""):
        self.item_id = item_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for item: {name or item_id} "
            f"(Available: {available}, Required: {requested})"
        )


class InvalidState(BillingError):
    default_message = "Illegal state transition"


class PersistenceFailure(BillingError):
    default_message = "Failed to persist billing data"
