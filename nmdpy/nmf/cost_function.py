from typing import Optional, Tuple

__all__ = [
    "ED",
    "KL",
    "ED_SPARSE",
    "KL_SPARSE",
    "KL_CONTINUOUS",
    "ED_SPARSE_NORMALIZED",
    "cost_functions",
    "cost_function_name",
    "parse_cost_function",
    "validate_cost_function",
]

ED = "ED"
KL = "KL"
ED_SPARSE = "ED-sparse"
KL_SPARSE = "KL-sparse"
KL_CONTINUOUS = "KL-continuous"
ED_SPARSE_NORMALIZED = "ED-sparse-normalized"

EUCLIDEAN_DIVERGENCE = "euclidean"
KL_DIVERGENCE = "kl"

# (divergence, regularization)
_cost_functions = {
    ED: (EUCLIDEAN_DIVERGENCE, None),
    KL: (KL_DIVERGENCE, None),
    ED_SPARSE: (EUCLIDEAN_DIVERGENCE, "sparse"),
    KL_SPARSE: (KL_DIVERGENCE, "sparse"),
    KL_CONTINUOUS: (KL_DIVERGENCE, "continuous"),
    ED_SPARSE_NORMALIZED: (EUCLIDEAN_DIVERGENCE, "sparse-normalized"),
}
_names = {
    ED: "Squared Euclidean distance",
    KL: "Extended KL divergence",
    ED_SPARSE: "Squared Euclidean distance + sparseness constraint",
    KL_SPARSE: "Extended KL divergence + sparseness constraint",
    ED_SPARSE_NORMALIZED: "Squared ED (normalized basis) + sparseness",
    KL_CONTINUOUS: "Extended KL divergence + continuity constraint",
}

cost_functions = list(_cost_functions.keys())


def cost_function_name(cost_function: str) -> str:
    r"""Return human-readable name of cost function.

    Args:
        cost_function (str):
            Keyword of cost function, e.g. ``ED-sparse``.

    Returns:
        Name of cost function. ``Unknown`` is returned for unsupported keywords.
    """
    return _names.get(cost_function, "Unknown")


def parse_cost_function(cost_function: str) -> Tuple[str, Optional[str]]:
    r"""Split cost function into divergence and regularization.

    Args:
        cost_function (str):
            Keyword of cost function.

    Returns:
        Tuple of divergence (``euclidean`` or ``kl``) and regularization
        (``None``, ``sparse``, ``continuous``, or ``sparse-normalized``).
    """
    if cost_function not in _cost_functions:
        raise ValueError(
            "Invalid cost function {}. Choose from {}.".format(cost_function, cost_functions)
        )

    return _cost_functions[cost_function]


def validate_cost_function(cost_function: str, n_shifts: int) -> Tuple[str, Optional[str]]:
    r"""Check whether cost function is applicable with given number of shifts.

    Regularized cost functions are implemented for NMF (``n_shifts=1``) only.

    Args:
        cost_function (str):
            Keyword of cost function.
        n_shifts (int):
            Number of basis frames.

    Returns:
        Tuple of divergence and regularization. See :func:`parse_cost_function`.
    """
    divergence, regularization = parse_cost_function(cost_function)

    if regularization is not None and n_shifts > 1:
        if regularization == "continuous":
            raise NotImplementedError("Continuous NMD is not implemented.")
        else:
            raise NotImplementedError("Sparse NMD is not implemented.")

    return divergence, regularization
