from typing import Optional

import numpy as np

__all__ = ["shifted_product"]


def shifted_product(
    basis: np.ndarray,
    activation: np.ndarray,
    shift: int,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    r"""Compute product of basis and activation shifted by ``shift`` columns.

    .. math::
        \boldsymbol{W}_{p}\overset{p\rightarrow}{\boldsymbol{H}},

    where :math:`\overset{p\rightarrow}{\boldsymbol{H}}` is ``activation``
    shifted by :math:`p` columns to the right, i.e. the leftmost :math:`p` columns
    are zeros and the rightmost :math:`p` columns are discarded.
    Only the leftmost ``n_cols - shift`` columns of ``activation`` take part in the product,
    so the shifted copy is never built.

    Args:
        basis (numpy.ndarray):
            Basis matrix with shape of (n_rows, n_basis).
        activation (numpy.ndarray):
            Activation matrix with shape of (n_basis, n_cols).
        shift (int):
            Number of columns to shift. ``0 <= shift <= n_cols``.
        out (numpy.ndarray, optional):
            Buffer with shape of (n_rows, n_cols) to store the result.
            Its content is fully overwritten.

    Returns:
        numpy.ndarray with shape of (n_rows, n_cols).

    Examples:

        .. code-block:: python

            >>> import numpy as np

            >>> W = np.ones((1, 1))
            >>> H = np.array([[1.0, 2.0, 3.0]])
            >>> shifted_product(W, H, 1)
            array([[0., 1., 2.]])
    """
    n_rows = basis.shape[0]
    n_cols = activation.shape[-1]

    if shift < 0 or shift > n_cols:
        raise ValueError("shift should be in [0, {}], but {} is given.".format(n_cols, shift))

    if out is None:
        out = np.empty((n_rows, n_cols), dtype=np.result_type(basis, activation))

    out[:, :shift] = 0
    np.matmul(basis, activation[:, : n_cols - shift], out=out[:, shift:])

    return out
