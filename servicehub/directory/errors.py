from __future__ import annotations


class DirectoryError(RuntimeError):
    """Base error for profile and customer records."""


class CustomerValidationError(DirectoryError):
    """Raised when a new customer record is incomplete or malformed."""


class DuplicateCustomerError(DirectoryError):
    """Raised when a live customer already uses the given mobile number."""
