import math

import numpy as np
import pytest

from nmdpy.nmf import Deconvolver

n_rows, n_cols = 4, 6
n_basis = 2


def _create_deconvolver(n_shifts: int = 1, seed: int = 42) -> Deconvolver:
    rng = np.random.default_rng(seed)
    V = rng.random((n_rows, n_cols)) + 0.1

    deconvolver = Deconvolver(V, n_basis, n_shifts=n_shifts, rng=rng)

    for p in range(n_shifts):
        deconvolver.set_w(p, rng.random((n_rows, n_basis)) + 0.1)

    deconvolver.set_h(rng.random((n_basis, n_cols)) + 0.1)
    deconvolver.set_sparsity(rng.random((n_basis, n_cols)))
    deconvolver.set_continuity(rng.random((n_basis, n_cols)))

    return deconvolver


def _reconstruct(basis, H):
    L = np.zeros((n_rows, n_cols))

    for p, W in enumerate(basis):
        for k in range(n_rows):
            for j in range(p, n_cols):
                L[k, j] += sum(W[k, i] * H[i, j - p] for i in range(n_basis))

    return L


def _update_basis_ed(V, W, H):
    W_new = np.empty_like(W)

    for k in range(n_rows):
        for i in range(n_basis):
            num = sum(V[k, j] * H[i, j] for j in range(n_cols))
            denom = sum(
                W[k, l] * sum(H[l, j] * H[i, j] for j in range(n_cols)) for l in range(n_basis)
            )
            W_new[k, i] = W[k, i] * num / denom

    return W_new


def _update_basis_kl(V, W, H):
    L = _reconstruct([W], H)
    W_new = np.empty_like(W)

    for k in range(n_rows):
        for i in range(n_basis):
            num = sum(V[k, j] / L[k, j] * H[i, j] for j in range(n_cols))
            denom = sum(H[i, j] for j in range(n_cols))
            W_new[k, i] = W[k, i] * num / denom

    return W_new


def _sparse_constants(h):
    norm_sq = sum(x**2 for x in h)
    norm = math.sqrt(norm_sq)

    cs_plus = math.sqrt(n_cols) / norm
    cs_minus = math.sqrt(n_cols) * sum(h) / norm**3

    return cs_plus, cs_minus


def test_ed_sparse_update():
    deconvolver = _create_deconvolver()
    V, S = deconvolver.observation, deconvolver.sparsity
    W, H = deconvolver.basis[0].copy(), deconvolver.activation.copy()

    deconvolver.decompose("ED-sparse", max_steps=1)

    W = _update_basis_ed(V, W, H)
    H_new = np.empty_like(H)

    for i in range(n_basis):
        cs_plus, cs_minus = _sparse_constants(H[i])

        for j in range(n_cols):
            num = sum(W[k, i] * V[k, j] for k in range(n_rows))
            num += S[i, j] * H[i, j] * cs_minus
            denom = sum(
                sum(W[k, i] * W[k, l] for k in range(n_rows)) * H[l, j] for l in range(n_basis)
            )
            denom += S[i, j] * cs_plus
            H_new[i, j] = H[i, j] * num / denom

    assert np.allclose(deconvolver.basis[0], W)
    assert np.allclose(deconvolver.activation, H_new)


def test_kl_sparse_update():
    deconvolver = _create_deconvolver()
    V, S = deconvolver.observation, deconvolver.sparsity
    W, H = deconvolver.basis[0].copy(), deconvolver.activation.copy()

    deconvolver.decompose("KL-sparse", max_steps=1)

    W = _update_basis_kl(V, W, H)
    L = _reconstruct([W], H)
    H_new = np.empty_like(H)

    for i in range(n_basis):
        cs_plus, cs_minus = _sparse_constants(H[i])

        for j in range(n_cols):
            num = sum(W[k, i] * V[k, j] / L[k, j] for k in range(n_rows))
            num += S[i, j] * H[i, j] * cs_minus
            denom = sum(W[k, i] for k in range(n_rows)) + S[i, j] * cs_plus
            H_new[i, j] = H[i, j] * num / denom

    assert np.allclose(deconvolver.basis[0], W)
    assert np.allclose(deconvolver.activation, H_new)


def test_kl_continuous_update():
    deconvolver = _create_deconvolver()
    V, C = deconvolver.observation, deconvolver.continuity
    W, H = deconvolver.basis[0].copy(), deconvolver.activation.copy()

    deconvolver.decompose("KL-continuous", max_steps=1)

    W = _update_basis_kl(V, W, H)
    L = _reconstruct([W], H)
    H_new = np.empty_like(H)

    for i in range(n_basis):
        norm_sq = sum(H[i, j] ** 2 for j in range(n_cols))
        delta_sq = sum((H[i, j] - H[i, j - 1]) ** 2 for j in range(1, n_cols))

        ct_plus = 4 * n_cols / norm_sq
        ct_minus1 = 2 * n_cols / norm_sq
        ct_minus2 = 2 * n_cols * delta_sq / norm_sq**2

        for j in range(n_cols):
            left = H[i, j - 1] if j > 0 else 0
            right = H[i, j + 1] if j < n_cols - 1 else 0

            num = sum(W[k, i] * V[k, j] / L[k, j] for k in range(n_rows))
            num += C[i, j] * ((left + right) * ct_minus1 + H[i, j] * ct_minus2)
            denom = sum(W[k, i] for k in range(n_rows)) + C[i, j] * H[i, j] * ct_plus
            H_new[i, j] = H[i, j] * num / denom

    assert np.allclose(deconvolver.basis[0], W)
    assert np.allclose(deconvolver.activation, H_new)


def test_ed_sparse_normalized_update():
    deconvolver = _create_deconvolver()
    V, S = deconvolver.observation, deconvolver.sparsity
    W, H = deconvolver.basis[0].copy(), deconvolver.activation.copy()

    deconvolver.decompose("ED-sparse-normalized", max_steps=1)

    for i in range(n_basis):
        W[:, i] = W[:, i] / math.sqrt(sum(W[k, i] ** 2 for k in range(n_rows)))

    WtW = np.array(
        [
            [sum(W[k, i] * W[k, l] for k in range(n_rows)) for l in range(n_basis)]
            for i in range(n_basis)
        ]
    )
    H_new = np.empty_like(H)

    for i in range(n_basis):
        for j in range(n_cols):
            num = sum(W[k, i] * V[k, j] for k in range(n_rows))
            denom = sum(WtW[i, l] * H[l, j] for l in range(n_basis)) + S[i, j]
            H_new[i, j] = H[i, j] * num / denom

    H = H_new
    HHt = np.array(
        [
            [sum(H[i, j] * H[l, j] for j in range(n_cols)) for l in range(n_basis)]
            for i in range(n_basis)
        ]
    )
    W_new = np.empty_like(W)

    for i in range(n_basis):
        # diagonal entries of H H^T W^T W and H V^T W
        hhtwtw = sum(HHt[i, l] * WtW[l, i] for l in range(n_basis))
        hvtw = sum(H[i, j] * V[k, j] * W[k, i] for j in range(n_cols) for k in range(n_rows))

        for k in range(n_rows):
            num = sum(V[k, j] * H[i, j] for j in range(n_cols)) + hhtwtw * W[k, i]
            denom = sum(W[k, l] * HHt[l, i] for l in range(n_basis)) + hvtw * W[k, i]
            W_new[k, i] = W[k, i] * num / denom

    assert np.allclose(deconvolver.activation, H_new)
    assert np.allclose(deconvolver.basis[0], W_new)


@pytest.mark.parametrize("n_shifts", [2, 3])
def test_nmd_ed_activation_update(n_shifts: int):
    deconvolver = _create_deconvolver(n_shifts=n_shifts)
    deconvolver.set_w_constant()

    V = deconvolver.observation
    basis = [W.copy() for W in deconvolver.basis]
    H = deconvolver.activation.copy()

    deconvolver.decompose("ED", max_steps=1)

    L = _reconstruct(basis, H)
    H_new = np.zeros_like(H)

    for p, W in enumerate(basis):
        for i in range(n_basis):
            # columns j >= n_cols - p receive no estimate from p-th frame
            for j in range(n_cols - p):
                num = sum(W[k, i] * V[k, j + p] for k in range(n_rows))
                denom = sum(W[k, i] * L[k, j + p] for k in range(n_rows))
                H_new[i, j] += H[i, j] * num / denom

    H_new /= n_shifts

    assert np.allclose(deconvolver.activation, H_new)

    for W, W_reference in zip(deconvolver.basis, basis):
        assert np.array_equal(W, W_reference)


@pytest.mark.parametrize("n_shifts", [2, 3])
def test_nmd_kl_activation_update(n_shifts: int):
    deconvolver = _create_deconvolver(n_shifts=n_shifts)
    deconvolver.set_w_constant()

    V = deconvolver.observation
    basis = [W.copy() for W in deconvolver.basis]
    H = deconvolver.activation.copy()

    deconvolver.decompose("KL", max_steps=1)

    L = _reconstruct(basis, H)
    H_new = np.zeros_like(H)

    for p, W in enumerate(basis):
        for i in range(n_basis):
            denom = sum(W[k, i] for k in range(n_rows))

            for j in range(n_cols - p):
                num = sum(W[k, i] * V[k, j + p] / L[k, j + p] for k in range(n_rows))
                H_new[i, j] += H[i, j] * num / denom

    H_new /= n_shifts

    assert np.allclose(deconvolver.activation, H_new)
