import numpy as np
import pytest

from nmdpy.special import DIVISOR_FLOOR, divisor_flooring, identity


def test_divisor_flooring():
    X = np.array([[-1.0, 0.0], [1e-12, 2.0]])

    Y = divisor_flooring(X)

    assert np.array_equal(Y, np.array([[DIVISOR_FLOOR, DIVISOR_FLOOR], [1e-12, 2.0]]))
    assert np.all(X[0] <= 0), "input should not be modified."


@pytest.mark.parametrize("eps", [1e-9, 1e-3])
def test_divisor_flooring_eps(eps: float):
    X = np.array([-1.0, 0.0, 1e-12, 2.0])

    Y = divisor_flooring(X, eps=eps)

    assert np.all(Y > 0)
    assert Y[0] == Y[1] == eps
    assert Y[2] == 1e-12
    assert Y[-1] == 2.0


def test_divisor_flooring_scalar():
    assert float(divisor_flooring(0.0)) == DIVISOR_FLOOR
    assert float(divisor_flooring(3.0)) == 3.0


def test_identity():
    X = np.array([-1.0, 0.0])

    assert identity(X) is X
