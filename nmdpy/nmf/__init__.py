from .base import IterativeMethodBase
from .cost_function import cost_function_name, cost_functions
from .deconvolver import Deconvolver

__all__ = ["IterativeMethodBase", "Deconvolver", "cost_function_name", "cost_functions"]
