"""
Error taxonomy shared by the billing and inventory modules.

- ValidationError: bad or missing input (no part selected, non-positive
  quantity or price, empty draft, duplicate part). Nothing is changed.
- StoreError: the store failed a fetch, insert, update or delete. State is
  left as it was before the call.
- PartialCommitWarning: a bill header was saved but its items were not.

The HTTP handlers for these live in app.main.
"""
from typing import Optional


class BillingError(Exception):
    """Base class for errors surfaced to the user as a single message."""

    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BillingError):
    default_message = "Invalid input"


class StoreError(BillingError):
    default_message = "The store could not complete the request. Please try again."


class PartialCommitWarning(UserWarning):
    """Issued when a bill header is kept without its line items."""
