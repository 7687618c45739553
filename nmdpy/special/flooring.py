import numpy as np

DIVISOR_FLOOR = 1e-9


def identity(input: np.ndarray) -> np.ndarray:
    r"""Identity function."""
    return input


def divisor_flooring(input: np.ndarray, eps: float = DIVISOR_FLOOR) -> np.ndarray:
    r"""Replace non-positive entries by ``eps``.

    Entries in :math:`(0, \epsilon)` are kept as they are.
    This is used for denominators of multiplicative updates.

    Args:
        input (numpy.ndarray):
            Denominator or matrix to floor. Scalars are also accepted.
        eps (float):
            Value assigned to entries satisfying ``input <= 0``.
            Default: ``1e-9``.

    Returns:
        numpy.ndarray of the same shape as ``input``.

    Examples:

        .. code-block:: python

            >>> import numpy as np

            >>> divisor_flooring(np.array([-1.0, 0.0, 1e-12, 2.0]))
            array([1.e-09, 1.e-09, 1.e-12, 2.e+00])
    """
    return np.where(input <= 0, eps, input)
