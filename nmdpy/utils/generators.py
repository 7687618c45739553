from typing import Callable, Optional, Tuple

import numpy as np

__all__ = ["zero", "unity", "constant", "uniform", "generate"]

GeneratorFunction = Callable[[int, int], float]


def zero(row: int, col: int) -> float:
    r"""Generator returning ``0.0`` for every entry."""
    return 0.0


def unity(row: int, col: int) -> float:
    r"""Generator returning ``1.0`` for every entry."""
    return 1.0


def constant(value: float) -> GeneratorFunction:
    r"""Build generator returning ``value`` for every entry.

    Args:
        value (float):
            Value of each entry.

    Returns:
        Generator function of (row, col).
    """

    def _constant(row: int, col: int) -> float:
        return value

    return _constant


def uniform(rng: Optional[np.random.Generator] = None) -> GeneratorFunction:
    r"""Build generator drawing from uniform distribution on :math:`[0, 1)`.

    Args:
        rng (numpy.random.Generator, optional):
            Random number generator.
            If ``None`` is given, ``np.random.default_rng()`` is used.
            Default: ``None``.

    Returns:
        Generator function of (row, col). The indices are ignored.
    """
    if rng is None:
        rng = np.random.default_rng()

    def _uniform(row: int, col: int) -> float:
        return rng.random()

    return _uniform


def generate(shape: Tuple[int, int], generator: GeneratorFunction) -> np.ndarray:
    r"""Fill matrix by generator function.

    Args:
        shape (tuple[int, int]):
            Shape of matrix, i.e. (n_rows, n_cols).
        generator (callable):
            Function of (row, col) returning value of the entry.

    Returns:
        numpy.ndarray of float64 with shape of ``shape``.

    Examples:

        .. code-block:: python

            >>> generate((2, 3), lambda i, j: i + j)
            array([[0., 1., 2.],
                   [1., 2., 3.]])
    """
    n_rows, n_cols = shape
    output = np.empty((n_rows, n_cols), dtype=np.float64)

    for i in range(n_rows):
        for j in range(n_cols):
            output[i, j] = generator(i, j)

    return output
