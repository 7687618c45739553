from .shift import shifted_product

__all__ = ["shifted_product"]
