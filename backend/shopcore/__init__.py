"""Order-management backend: customers, products and transactions."""

__version__ = "1.0.0"
