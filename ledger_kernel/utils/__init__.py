"""Kernel utilities: currency formatting and reference strings."""
