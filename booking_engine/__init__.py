"""Booking scheduling and pricing rule engine for cleaning operations."""

__version__ = "0.1.0"
