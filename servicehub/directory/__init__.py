"""Profiles, customers and caller identities."""

from .errors import CustomerValidationError, DirectoryError, DuplicateCustomerError
from .models import Actor, Customer, CustomerDraft, Profile, Role
from .repository import DirectoryRepository

__all__ = [
    "Actor",
    "Customer",
    "CustomerDraft",
    "CustomerValidationError",
    "DirectoryError",
    "DirectoryRepository",
    "DuplicateCustomerError",
    "Profile",
    "Role",
]
