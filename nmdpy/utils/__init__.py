from .generators import constant, generate, uniform, unity, zero

__all__ = ["constant", "generate", "uniform", "unity", "zero"]
