"""JustBill: hospital bill extraction and government price-ceiling checks."""

__version__ = "1.0.0"
