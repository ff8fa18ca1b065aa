"""Dual-regime income-tax computation engine (FY 2025-26)."""

__version__ = "0.1.0"
