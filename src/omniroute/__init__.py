"""omniroute - cross-chain source selection and quote aggregation."""

__version__ = "0.1.0"
