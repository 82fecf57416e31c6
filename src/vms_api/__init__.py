"""Visitor management backend: company-scoped visitor check-in API."""

__version__ = "1.0.0"
