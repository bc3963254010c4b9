"""Booking and service-request lifecycle engine for marine operations."""

__version__ = "0.1.0"
