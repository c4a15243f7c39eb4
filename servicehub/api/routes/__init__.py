"""Route modules exposed by the API package."""

from . import chat, customers, notifications, ping, statuses, technicians, templates, tickets

__all__ = ["chat", "customers", "notifications", "ping", "statuses", "technicians", "templates", "tickets"]
