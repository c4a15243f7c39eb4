"""ServiceHub: ticket lifecycle API for a device-repair service center."""

__version__ = "0.1.0"
