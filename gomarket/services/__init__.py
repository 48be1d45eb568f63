"""Shared services: money helpers."""
from .money import format_value, round_money, to_decimal, to_float

__all__ = [
    "format_value",
    "round_money",
    "to_decimal",
    "to_float",
]
