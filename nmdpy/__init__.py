from .nmf import Deconvolver, cost_function_name

try:
    from ._version import __version__
except ModuleNotFoundError:
    __version__ = "0.1.0"

__all__ = ["__version__", "Deconvolver", "cost_function_name"]
