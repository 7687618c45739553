from .flooring import DIVISOR_FLOOR, divisor_flooring, identity

__all__ = ["DIVISOR_FLOOR", "divisor_flooring", "identity"]
