"""Delivery slot allocation and order split planning service."""

__version__ = "0.1.0"
