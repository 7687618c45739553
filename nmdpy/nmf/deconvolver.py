import functools
import warnings
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from ..linalg.shift import shifted_product
from ..special.flooring import DIVISOR_FLOOR, divisor_flooring, identity
from ..utils.generators import GeneratorFunction, generate, uniform
from .base import IterativeMethodBase
from .cost_function import (
    ED,
    EUCLIDEAN_DIVERGENCE,
    KL_DIVERGENCE,
    parse_cost_function,
    validate_cost_function,
)

__all__ = ["Deconvolver"]

normalizations = ["frobenius", "shift"]
EPS = DIVISOR_FLOOR


class Deconvolver(IterativeMethodBase):
    r"""Non-negative matrix deconvolution (NMD).

    Given a non-negative observation :math:`\boldsymbol{V}`,
    NMD estimates bases :math:`\boldsymbol{W}_{0},\ldots,\boldsymbol{W}_{T-1}`
    and activation :math:`\boldsymbol{H}` satisfying

    .. math::
        \boldsymbol{V}
        \approx\boldsymbol{\Lambda}
        = \sum_{p=0}^{T-1}\boldsymbol{W}_{p}\overset{p\rightarrow}{\boldsymbol{H}},

    where :math:`\overset{p\rightarrow}{\boldsymbol{H}}` is :math:`\boldsymbol{H}`
    shifted by :math:`p` columns to the right. When :math:`T=1`, NMD reduces to NMF.

    Args:
        observation (numpy.ndarray):
            Non-negative matrix with shape of (n_rows, n_cols), e.g. magnitude spectrogram.
        n_basis (int):
            Number of bases.
        n_shifts (int):
            Number of basis frames :math:`T`, which should not exceed ``n_cols``.
            Default: ``1``.
        w_generator (callable, optional):
            Function of (row, col) to initialize each basis matrix.
            If ``None`` is given, uniform random values are used.
        h_generator (callable, optional):
            Function of (row, col) to initialize activation.
            If ``None`` is given, uniform random values are used.
        flooring_fn (callable, optional):
            A flooring function applied to denominators of multiplicative updates.
            This function is expected to return the same shape tensor as the input.
            If you explicitly set ``flooring_fn=None``,
            the identity function (``lambda x: x``) is used.
            Default: ``functools.partial(divisor_flooring, eps=1e-9)``.
        normalization (bool or str):
            Normalization applied after decomposition.
            ``frobenius`` (or ``True``) scales activation to unit Frobenius norm
            and keeps the approximation unchanged.
            ``shift`` additionally corrects each basis for columns shifted out of the activation.
            Default: ``False``.
        callbacks (callable or list[callable], optional):
            Callback functions. Each function is called before decomposition and at each iteration.
            Default: ``None``.
        record_loss (bool):
            Record the loss at each iteration of the update algorithm if ``record_loss=True``.
            Default: ``False``.
        notification_delay (int):
            Progress observer is notified every ``notification_delay`` iterations.
            Default: ``25``.
        rng (numpy.random.Generator, optioinal):
            Random number generator used by default generators.
            If ``None`` is given, ``np.random.default_rng()`` is used.
            Default: ``None``.
    """

    def __init__(
        self,
        observation: np.ndarray,
        n_basis: int,
        n_shifts: int = 1,
        w_generator: Optional[GeneratorFunction] = None,
        h_generator: Optional[GeneratorFunction] = None,
        flooring_fn: Optional[Callable[[np.ndarray], np.ndarray]] = functools.partial(
            divisor_flooring, eps=EPS
        ),
        normalization: Union[bool, str] = False,
        callbacks: Optional[
            Union[Callable[["Deconvolver"], None], List[Callable[["Deconvolver"], None]]]
        ] = None,
        record_loss: bool = False,
        notification_delay: int = 25,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(
            callbacks=callbacks, record_loss=record_loss, notification_delay=notification_delay
        )

        observation = np.asarray(observation, dtype=np.float64)

        if observation.ndim != 2:
            raise ValueError(
                "2D observation is expected, but {}D is given.".format(observation.ndim)
            )

        n_rows, n_cols = observation.shape

        if n_basis < 1:
            raise ValueError("n_basis should be positive, but {} is given.".format(n_basis))

        if n_shifts < 1 or n_shifts > n_cols:
            raise ValueError(
                "Invalid number of shifts: {}: observation has only {} columns.".format(
                    n_shifts, n_cols
                )
            )

        _warn_if_negative(observation, name="observation")

        if normalization and type(normalization) is not bool:
            if normalization not in normalizations:
                raise ValueError(
                    "normalization should be one of {}, but {} is given.".format(
                        normalizations, normalization
                    )
                )

        self.observation = observation.copy()
        self.n_basis = n_basis
        self.n_shifts = n_shifts

        if flooring_fn is None:
            self.flooring_fn = identity
        else:
            self.flooring_fn = flooring_fn

        self.normalization = normalization

        if rng is None:
            rng = np.random.default_rng()

        self.rng = rng

        if w_generator is None:
            w_generator = uniform(rng)

        if h_generator is None:
            h_generator = uniform(rng)

        self.generate_w(w_generator)
        self.generate_h(h_generator)

        # zeros mean no regularization
        self.sparsity = np.zeros((n_basis, n_cols))
        self.continuity = np.zeros((n_basis, n_cols))

        self.approx = np.zeros((n_rows, n_cols))
        self._old_approx = None

        self.w_constant = False
        self.w_col_constant = np.zeros(n_basis, dtype=bool)

        self.cost_function = None
        self.absolute_error = None
        self.relative_error = None
        self.v_frob = np.linalg.norm(self.observation)

    def __call__(
        self,
        cost_function: str = ED,
        max_steps: int = 100,
        eps: float = 0.0,
        progress_observer: Optional[Callable[[float], None]] = None,
    ) -> Tuple[List[np.ndarray], np.ndarray]:
        r"""Decompose observation.

        See :meth:`decompose` for arguments.

        Returns:
            Tuple of list of bases and activation.
        """
        self.decompose(
            cost_function, max_steps=max_steps, eps=eps, progress_observer=progress_observer
        )

        return self.basis, self.activation

    def __repr__(self) -> str:
        s = "Deconvolver("
        s += "n_basis={n_basis}"
        s += ", n_shifts={n_shifts}"
        s += ", normalization={normalization}"
        s += ", record_loss={record_loss}"

        if self.cost_function is not None:
            s += ", cost_function={cost_function}"

        s += ")"

        return s.format(**self.__dict__)

    @property
    def n_rows(self) -> int:
        return self.observation.shape[0]

    @property
    def n_cols(self) -> int:
        return self.observation.shape[1]

    def get_w(self, index: int) -> np.ndarray:
        r"""Return basis matrix of ``index``-th frame."""
        return self.basis[index]

    def set_w(self, index: int, basis: np.ndarray) -> None:
        r"""Replace basis matrix of ``index``-th frame.

        Args:
            index (int):
                Index of frame.
            basis (numpy.ndarray):
                Basis matrix with shape of (n_rows, n_basis).
        """
        if index < 0 or index >= self.n_shifts:
            raise ValueError(
                "index should be in [0, {}), but {} is given.".format(self.n_shifts, index)
            )

        basis = np.asarray(basis, dtype=np.float64)
        expected_shape = self.basis[index].shape

        if basis.shape != expected_shape:
            raise ValueError(
                "The shape of basis is expected {}, but {} is given.".format(
                    expected_shape, basis.shape
                )
            )

        _warn_if_negative(basis, name="basis")

        self.basis[index] = basis.copy()

    def set_h(self, activation: np.ndarray) -> None:
        r"""Replace activation matrix.

        Args:
            activation (numpy.ndarray):
                Activation matrix with shape of (n_basis, n_cols).
        """
        activation = np.asarray(activation, dtype=np.float64)
        expected_shape = (self.n_basis, self.n_cols)

        if activation.shape != expected_shape:
            raise ValueError(
                "The shape of activation is expected {}, but {} is given.".format(
                    expected_shape, activation.shape
                )
            )

        _warn_if_negative(activation, name="activation")

        self.activation = activation.copy()

    def generate_w(self, generator: GeneratorFunction) -> None:
        r"""Fill bases of all frames by ``generator``."""
        shape = (self.n_rows, self.n_basis)
        self.basis = [generate(shape, generator) for _ in range(self.n_shifts)]

    def generate_h(self, generator: GeneratorFunction) -> None:
        r"""Fill activation by ``generator``."""
        self.activation = generate((self.n_basis, self.n_cols), generator)

    def set_sparsity(self, sparsity: Union[float, np.ndarray]) -> None:
        r"""Set weights of sparsity constraint.

        Args:
            sparsity (float or numpy.ndarray):
                Scalar or weights with shape of (n_basis, n_cols).
        """
        self.sparsity = self._broadcast_weight(sparsity, name="sparsity")

    def set_continuity(self, continuity: Union[float, np.ndarray]) -> None:
        r"""Set weights of temporal continuity constraint.

        Args:
            continuity (float or numpy.ndarray):
                Scalar or weights with shape of (n_basis, n_cols).
        """
        self.continuity = self._broadcast_weight(continuity, name="continuity")

    def _broadcast_weight(self, weight: Union[float, np.ndarray], name: str) -> np.ndarray:
        weight = np.asarray(weight, dtype=np.float64)
        expected_shape = (self.n_basis, self.n_cols)

        try:
            weight = np.broadcast_to(weight, expected_shape)
        except ValueError as e:
            raise ValueError(
                "The shape of {} is expected {}, but {} is given.".format(
                    name, expected_shape, weight.shape
                )
            ) from e

        return weight.copy()

    def set_w_constant(self, flag: bool = True) -> None:
        r"""Freeze (or unfreeze) all bases."""
        self.w_constant = flag

    def set_w_column_constant(self, index: int, flag: bool = True) -> None:
        r"""Freeze (or unfreeze) ``index``-th column of bases of all frames."""
        if index < 0 or index >= self.n_basis:
            raise ValueError(
                "index should be in [0, {}), but {} is given.".format(self.n_basis, index)
            )

        self.w_col_constant[index] = flag

    def decompose(
        self,
        cost_function: str,
        max_steps: int = 100,
        eps: float = 0.0,
        progress_observer: Optional[Callable[[float], None]] = None,
    ) -> None:
        r"""Decompose observation by multiplicative updates.

        Args:
            cost_function (str):
                Keyword of cost function. ``ED``, ``KL``, ``ED-sparse``, ``KL-sparse``,
                ``KL-continuous``, and ``ED-sparse-normalized`` are supported.
                Regularized cost functions require ``n_shifts=1``.
            max_steps (int):
                The maximum number of iterations.
                Default: ``100``.
            eps (float):
                Threshold of relative change of approximation.
                If ``eps <= 0``, convergence is not checked.
                Default: ``0.0``.
            progress_observer (callable, optional):
                Function receiving progress in :math:`[0, 1]`.
                It is called every ``self.notification_delay`` iterations and once with ``1.0``
                at the end.
        """
        divergence, regularization = validate_cost_function(cost_function, self.n_shifts)

        self.cost_function = cost_function
        self._divergence, self._regularization = divergence, regularization
        self._old_approx = None

        try:
            super().__call__(max_steps=max_steps, eps=eps, progress_observer=progress_observer)

            if self.normalization:
                self.normalize_matrices()

            # T=1 Euclidean updates keep approximation only if eps > 0.
            self.compute_approx()

            if progress_observer is not None:
                progress_observer(1.0)
        finally:
            self._old_approx = None

    def is_converged(self, eps: float) -> bool:
        r"""Check convergence at the beginning of each iteration.

        KL-based updates and Euclidean NMD need approximation in every iteration,
        so it is computed regardless of ``eps``.

        Args:
            eps (float):
                Threshold of convergence check.

        Returns:
            ``True`` if converged.
        """
        if self._divergence == EUCLIDEAN_DIVERGENCE and self.n_shifts == 1:
            return self.check_convergence(eps, recompute=True)

        self.compute_approx()

        return self.check_convergence(eps, recompute=False)

    def update_once(self) -> None:
        r"""Update bases and activation once."""
        divergence, regularization = self._divergence, self._regularization

        if divergence == EUCLIDEAN_DIVERGENCE:
            if regularization is None:
                if self.n_shifts == 1:
                    self.update_once_nmf_ed()
                else:
                    self.update_once_nmd_ed()
            elif regularization == "sparse":
                self.update_once_nmf_ed_sparse()
            elif regularization == "sparse-normalized":
                self.update_once_nmf_ed_sparse_normalized()
            else:
                raise ValueError("Not support {}.".format(self.cost_function))
        elif divergence == KL_DIVERGENCE:
            if regularization is None:
                self.update_once_nmd_kl()
            elif regularization == "sparse":
                self.update_once_nmf_kl_sparse()
            elif regularization == "continuous":
                self.update_once_nmf_kl_continuous()
            else:
                raise ValueError("Not support {}.".format(self.cost_function))
        else:
            raise ValueError("Not support {}.".format(self.cost_function))

    def update_once_nmf_ed(self) -> None:
        r"""Update bases and activation once by Lee-Seung rules for squared Euclidean distance.

        .. math::
            \boldsymbol{W}
            &\leftarrow\boldsymbol{W}\odot
            \frac{\boldsymbol{V}\boldsymbol{H}^{\mathsf{T}}}
            {\boldsymbol{W}(\boldsymbol{H}\boldsymbol{H}^{\mathsf{T}})}, \\
            \boldsymbol{H}
            &\leftarrow\boldsymbol{H}\odot
            \frac{\boldsymbol{W}^{\mathsf{T}}\boldsymbol{V}}
            {(\boldsymbol{W}^{\mathsf{T}}\boldsymbol{W})\boldsymbol{H}}.
        """
        self.update_basis_ed()

        H = self.activation
        num, denom = self._compute_activation_terms_ed()
        denom = self.flooring_fn(denom)

        self.activation = H * num / denom

    def update_once_nmd_ed(self) -> None:
        r"""Update bases and activation once for squared Euclidean distance with :math:`T>1`.

        Each basis is updated by

        .. math::
            \boldsymbol{W}_{p}
            \leftarrow\boldsymbol{W}_{p}\odot
            \frac{\boldsymbol{V}(\overset{p\rightarrow}{\boldsymbol{H}})^{\mathsf{T}}}
            {\boldsymbol{\Lambda}(\overset{p\rightarrow}{\boldsymbol{H}})^{\mathsf{T}}},

        and the approximation is updated by the difference of
        :math:`\boldsymbol{W}_{p}\overset{p\rightarrow}{\boldsymbol{H}}`.
        Activation is updated by the average of estimates of all frames:

        .. math::
            \boldsymbol{H}
            \leftarrow\frac{1}{T}\sum_{p}\boldsymbol{H}\odot
            \frac{\boldsymbol{W}_{p}^{\mathsf{T}}\overset{\leftarrow p}{\boldsymbol{V}}}
            {\boldsymbol{W}_{p}^{\mathsf{T}}\overset{\leftarrow p}{\boldsymbol{\Lambda}}}.
        """
        V = self.observation
        n_cols = self.n_cols
        n_shifts = self.n_shifts

        if not self.w_constant:
            wph = np.empty_like(self.approx)

            for p in range(n_shifts):
                W, H = self.basis[p], self.activation
                H_valid = H[:, : n_cols - p]

                num = V[:, p:] @ H_valid.T
                denom = self.approx[:, p:] @ H_valid.T
                denom = self.flooring_fn(denom)

                self.approx -= self.compute_wph(p, out=wph)
                self.basis[p] = self._freeze_columns(W, W * num / denom)
                self.approx += self.compute_wph(p, out=wph)
                self.ensure_nonnegativity(self.approx)

        H = self.activation
        H_sum = np.zeros_like(H)

        for p in range(n_shifts):
            W = self.basis[p]

            num = W.T @ V[:, p:]
            denom = W.T @ self.approx[:, p:]
            denom = self.flooring_fn(denom)

            H_sum[:, : n_cols - p] += H[:, : n_cols - p] * num / denom

        self.activation = H_sum / n_shifts

    def update_once_nmd_kl(self) -> None:
        r"""Update bases and activation once for generalized KL divergence.

        .. math::
            \boldsymbol{W}_{p}
            &\leftarrow\boldsymbol{W}_{p}\odot
            \frac{(\boldsymbol{V}\oslash\boldsymbol{\Lambda})
            (\overset{p\rightarrow}{\boldsymbol{H}})^{\mathsf{T}}}
            {\boldsymbol{1}(\overset{p\rightarrow}{\boldsymbol{H}})^{\mathsf{T}}}, \\
            \boldsymbol{H}
            &\leftarrow\frac{1}{T}\boldsymbol{H}\odot\sum_{p}
            \frac{\boldsymbol{W}_{p}^{\mathsf{T}}
            (\overset{\leftarrow p}{\boldsymbol{V}\oslash\boldsymbol{\Lambda}})}
            {\boldsymbol{W}_{p}^{\mathsf{T}}\boldsymbol{1}}.

        When :math:`T=1`, approximation is recomputed by a single product after the basis update.
        """
        V = self.observation
        n_cols = self.n_cols
        n_shifts = self.n_shifts

        V_over_approx = V / self.flooring_fn(self.approx)

        if not self.w_constant:
            wph = np.empty_like(self.approx)

            for p in range(n_shifts):
                W, H = self.basis[p], self.activation
                H_valid = H[:, : n_cols - p]

                if n_shifts > 1:
                    self.approx -= self.compute_wph(p, out=wph)

                num = V_over_approx[:, p:] @ H_valid.T
                H_row_sums = self.flooring_fn(H_valid.sum(axis=1))

                self.basis[p] = self._freeze_columns(W, W * num / H_row_sums)

                if n_shifts > 1:
                    self.approx += self.compute_wph(p, out=wph)
                    self.ensure_nonnegativity(self.approx)

        if n_shifts == 1:
            self.compute_approx()

        V_over_approx = V / self.flooring_fn(self.approx)

        H = self.activation
        H_update = np.zeros_like(H)

        for p in range(n_shifts):
            W = self.basis[p]

            W_col_sums = self.flooring_fn(W.sum(axis=0))
            num = W.T @ V_over_approx[:, p:]

            H_update[:, : n_cols - p] += num / W_col_sums[:, np.newaxis]

        self.activation = H * H_update / n_shifts

    def update_once_nmf_ed_sparse(self) -> None:
        r"""Update bases and activation once for squared Euclidean distance
        with sparsity constraint.

        The bases are updated as in :meth:`update_once_nmf_ed`. Activation is updated by

        .. math::
            h_{ij}
            \leftarrow h_{ij}
            \frac{[\boldsymbol{W}^{\mathsf{T}}\boldsymbol{V}]_{ij}+s_{ij}h_{ij}c_{i}^{-}}
            {[(\boldsymbol{W}^{\mathsf{T}}\boldsymbol{W})\boldsymbol{H}]_{ij}+s_{ij}c_{i}^{+}},

        where

        .. math::
            c_{i}^{+}
            = \frac{\sqrt{N}}{\|\boldsymbol{h}_{i}\|_{2}},
            \quad c_{i}^{-}
            = \frac{\sqrt{N}\|\boldsymbol{h}_{i}\|_{1}}{\|\boldsymbol{h}_{i}\|_{2}^{3}}.
        """
        self.update_basis_ed()

        H, S = self.activation, self.sparsity
        num, denom = self._compute_activation_terms_ed()
        cs_plus, cs_minus = self._compute_sparse_constants(H)

        num = num + S * H * cs_minus[:, np.newaxis]
        denom = denom + S * cs_plus[:, np.newaxis]
        denom = self.flooring_fn(denom)

        self.activation = H * num / denom

    def update_once_nmf_kl_sparse(self) -> None:
        r"""Update bases and activation once for generalized KL divergence
        with sparsity constraint.

        .. math::
            h_{ij}
            \leftarrow h_{ij}
            \frac{[\boldsymbol{W}^{\mathsf{T}}(\boldsymbol{V}\oslash\boldsymbol{\Lambda})]_{ij}
            +s_{ij}h_{ij}c_{i}^{-}}
            {\sum_{k}w_{ki}+s_{ij}c_{i}^{+}}.

        See :meth:`update_once_nmf_ed_sparse` for :math:`c_{i}^{+}` and :math:`c_{i}^{-}`.
        """
        H, S = self.activation, self.sparsity

        V_over_approx = self.update_basis_kl()
        cs_plus, cs_minus = self._compute_sparse_constants(H)

        W = self.basis[0]
        W_col_sums = W.sum(axis=0)

        num = W.T @ V_over_approx + S * H * cs_minus[:, np.newaxis]
        denom = W_col_sums[:, np.newaxis] + S * cs_plus[:, np.newaxis]
        denom = self.flooring_fn(denom)

        self.activation = H * num / denom

    def update_once_nmf_kl_continuous(self) -> None:
        r"""Update bases and activation once for generalized KL divergence
        with temporal continuity constraint.

        .. math::
            h_{ij}
            \leftarrow h_{ij}
            \frac{[\boldsymbol{W}^{\mathsf{T}}(\boldsymbol{V}\oslash\boldsymbol{\Lambda})]_{ij}
            +c_{ij}\{(h_{i,j-1}+h_{i,j+1})c_{i}^{-1}+h_{ij}c_{i}^{-2}\}}
            {\sum_{k}w_{ki}+c_{ij}h_{ij}c_{i}^{+}},

        where

        .. math::
            c_{i}^{+}
            = \frac{4N}{\|\boldsymbol{h}_{i}\|_{2}^{2}},
            \quad c_{i}^{-1}
            = \frac{2N}{\|\boldsymbol{h}_{i}\|_{2}^{2}},
            \quad c_{i}^{-2}
            = \frac{2N\sum_{j}(h_{ij}-h_{i,j-1})^{2}}{\|\boldsymbol{h}_{i}\|_{2}^{4}}.

        :math:`h_{i,-1}` and :math:`h_{iN}` are regarded as zeros.
        """
        H, C = self.activation, self.continuity
        n_cols = self.n_cols

        V_over_approx = self.update_basis_kl()

        W = self.basis[0]
        W_col_sums = W.sum(axis=0)

        H_row_sum_sq = self.flooring_fn(np.sum(H**2, axis=1))
        H_delta_sum_sq = np.sum(np.diff(H, axis=1) ** 2, axis=1)

        ct_plus = 4 * n_cols / H_row_sum_sq
        ct_minus1 = 2 * n_cols / H_row_sum_sq
        ct_minus2 = 2 * n_cols * H_delta_sum_sq / (H_row_sum_sq**2)

        H_neighbors = np.zeros_like(H)
        H_neighbors[:, 1:] += H[:, :-1]
        H_neighbors[:, :-1] += H[:, 1:]

        num = W.T @ V_over_approx
        num = num + C * (
            H_neighbors * ct_minus1[:, np.newaxis] + H * ct_minus2[:, np.newaxis]
        )
        denom = W_col_sums[:, np.newaxis] + C * H * ct_plus[:, np.newaxis]
        denom = self.flooring_fn(denom)

        self.activation = H * num / denom

    def update_once_nmf_ed_sparse_normalized(self) -> None:
        r"""Update bases and activation once for squared Euclidean distance
        with sparsity constraint and normalized bases.

        Each column of basis is first normalized to unit norm. Then,

        .. math::
            \boldsymbol{H}
            &\leftarrow\boldsymbol{H}\odot
            \frac{\boldsymbol{W}^{\mathsf{T}}\boldsymbol{V}}
            {(\boldsymbol{W}^{\mathsf{T}}\boldsymbol{W})\boldsymbol{H}+\boldsymbol{S}}, \\
            w_{ij}
            &\leftarrow w_{ij}
            \frac{[\boldsymbol{V}\boldsymbol{H}^{\mathsf{T}}]_{ij}
            +[\boldsymbol{H}\boldsymbol{H}^{\mathsf{T}}\boldsymbol{W}^{\mathsf{T}}\boldsymbol{W}]_{jj}
            w_{ij}}
            {[\boldsymbol{W}\boldsymbol{H}\boldsymbol{H}^{\mathsf{T}}]_{ij}
            +[\boldsymbol{H}\boldsymbol{V}^{\mathsf{T}}\boldsymbol{W}]_{jj}w_{ij}}.
        """
        V, S = self.observation, self.sparsity

        W = self.basis[0]
        norm = np.sqrt(np.sum(W**2, axis=0))
        norm = self.flooring_fn(norm)
        W = W / norm
        self.basis[0] = W

        H = self.activation
        WtW = W.T @ W

        num = W.T @ V
        denom = WtW @ H + S
        denom = self.flooring_fn(denom)

        H = H * num / denom
        self.activation = H

        if self.w_constant:
            return

        HHt = H @ H.T

        num = V @ H.T + np.diag(HHt @ WtW) * W
        denom = W @ HHt + np.diag((H @ V.T) @ W) * W
        denom = self.flooring_fn(denom)

        self.basis[0] = self._freeze_columns(W, W * num / denom)

    def update_basis_ed(self) -> None:
        r"""Update basis of NMF for squared Euclidean distance.

        :math:`\boldsymbol{W}(\boldsymbol{H}\boldsymbol{H}^{\mathsf{T}})` is computed
        instead of :math:`(\boldsymbol{W}\boldsymbol{H})\boldsymbol{H}^{\mathsf{T}}`.
        """
        if self.w_constant:
            return

        V, H = self.observation, self.activation
        W = self.basis[0]

        num = V @ H.T
        denom = W @ (H @ H.T)
        denom = self.flooring_fn(denom)

        self.basis[0] = self._freeze_columns(W, W * num / denom)

    def update_basis_kl(self) -> np.ndarray:
        r"""Update basis of NMF for generalized KL divergence.

        Approximation should be computed in advance.

        Returns:
            numpy.ndarray of :math:`\boldsymbol{V}\oslash\boldsymbol{\Lambda}`
            computed with updated approximation.
        """
        V, H = self.observation, self.activation

        V_over_approx = V / self.flooring_fn(self.approx)

        if self.w_constant:
            return V_over_approx

        W = self.basis[0]

        num = V_over_approx @ H.T
        H_row_sums = self.flooring_fn(H.sum(axis=1))

        self.basis[0] = self._freeze_columns(W, W * num / H_row_sums)

        self.compute_approx()

        return V / self.flooring_fn(self.approx)

    def _compute_activation_terms_ed(self) -> Tuple[np.ndarray, np.ndarray]:
        # (W^T W) H instead of W^T (W H)
        V, H = self.observation, self.activation
        W = self.basis[0]

        num = W.T @ V
        denom = (W.T @ W) @ H

        return num, denom

    def _compute_sparse_constants(self, activation: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        H = activation
        sqrt_n = np.sqrt(H.shape[-1])

        H_row_sum_sq = self.flooring_fn(np.sum(H**2, axis=1))
        H_row_length = np.sqrt(H_row_sum_sq)

        cs_plus = sqrt_n / H_row_length
        cs_minus = sqrt_n * H.sum(axis=1) / (H_row_sum_sq * H_row_length)

        return cs_plus, cs_minus

    def _freeze_columns(self, basis: np.ndarray, updated_basis: np.ndarray) -> np.ndarray:
        return np.where(self.w_col_constant, basis, updated_basis)

    def check_convergence(self, eps: float, recompute: bool = False) -> bool:
        r"""Check relative change of approximation.

        .. math::
            \frac{\|\boldsymbol{\Lambda}-\boldsymbol{\Lambda}_{\mathrm{old}}\|_{F}}
            {\|\boldsymbol{\Lambda}_{\mathrm{old}}\|_{F}}<\epsilon

        The first call after :meth:`decompose` starts only stores the approximation.

        Args:
            eps (float):
                Threshold. If ``eps <= 0``, ``False`` is always returned.
            recompute (bool):
                If ``True``, approximation is computed before the check.
                Default: ``False``.

        Returns:
            ``True`` if converged.
        """
        if eps <= 0:
            return False

        if recompute:
            self.compute_approx()

        if self._old_approx is None:
            self._old_approx = self.approx.copy()

            return False

        old_norm = self.flooring_fn(np.linalg.norm(self._old_approx))
        zeta = np.linalg.norm(self.approx - self._old_approx) / old_norm
        self._old_approx[...] = self.approx

        return bool(zeta < eps)

    def compute_wph(self, index: int, out: Optional[np.ndarray] = None) -> np.ndarray:
        r"""Compute contribution of ``index``-th frame to approximation."""
        return shifted_product(self.basis[index], self.activation, index, out=out)

    def compute_approx(self) -> None:
        r"""Compute approximation from current bases and activation."""
        self.approx = self.reconstruct(self.basis, self.activation, out=self.approx)

    def reconstruct(
        self,
        basis: List[np.ndarray],
        activation: np.ndarray,
        out: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        r"""Reconstruct observation from bases and activation.

        Args:
            basis (list[numpy.ndarray]):
                Bases of all frames. Each basis has shape of (n_rows, n_basis).
            activation (numpy.ndarray):
                Activation with shape of (n_basis, n_cols).
            out (numpy.ndarray, optional):
                Buffer with shape of (n_rows, n_cols) to store the result.

        Returns:
            numpy.ndarray of reconstructed matrix with shape of (n_rows, n_cols).
        """
        n_rows = basis[0].shape[0]
        n_cols = activation.shape[-1]

        if out is None:
            out = np.empty((n_rows, n_cols))

        if len(basis) == 1:
            np.matmul(basis[0], activation, out=out)
        else:
            wph = np.empty_like(out)
            out[...] = 0

            for p, W in enumerate(basis):
                out += shifted_product(W, activation, p, out=wph)

        return out

    @staticmethod
    def ensure_nonnegativity(matrix: np.ndarray, eps: float = EPS) -> np.ndarray:
        r"""Replace non-positive entries of ``matrix`` by ``eps`` in place.

        Args:
            matrix (numpy.ndarray):
                Matrix to be modified.
            eps (float):
                Value assigned to non-positive entries.
                Default: ``1e-9``.

        Returns:
            ``matrix`` itself.
        """
        matrix[matrix <= 0] = eps

        return matrix

    def normalize_matrices(
        self,
        normalization: Optional[Union[bool, str]] = None,
        flooring_fn: Optional[Union[str, Callable[[np.ndarray], np.ndarray]]] = "self",
    ) -> None:
        r"""Normalize activation to unit Frobenius norm and rescale bases.

        Activation is normalized by

        .. math::
            \boldsymbol{H}\leftarrow\frac{\boldsymbol{H}}{\|\boldsymbol{H}\|_{F}}.

        If ``normalization="frobenius"``, each basis is multiplied by
        :math:`\|\boldsymbol{H}\|_{F}`, so the approximation is unchanged.
        If ``normalization="shift"``, each basis is multiplied by
        :math:`\|\boldsymbol{H}\|_{F}-e_{p}`, where :math:`e_{p}` is the energy of
        the rightmost :math:`p` columns of the normalized activation,
        i.e. the columns shifted out of the :math:`p`-th frame.

        Args:
            normalization (bool or str, optional):
                Type of normalization. If ``None``, ``self.normalization`` is used.
                ``True`` and ``False`` are regarded as ``frobenius``.
            flooring_fn (callable or str, optional):
                A flooring function applied to scales of bases in ``shift`` normalization.
                If ``self`` is given as str, ``self.flooring_fn`` is used.
                Default: ``self``.
        """
        if normalization is None:
            normalization = self.normalization

        if type(normalization) is bool:
            normalization = "frobenius"

        if flooring_fn is None:
            flooring_fn = identity
        elif type(flooring_fn) is str and flooring_fn == "self":
            flooring_fn = self.flooring_fn

        H = self.activation
        H_norm = np.linalg.norm(H)

        if H_norm <= 0:
            warnings.warn("Activation is all zero, so normalization is skipped.", UserWarning)

            return

        H = H / H_norm

        if normalization == "frobenius":
            scales = [H_norm] * self.n_shifts
        elif normalization == "shift":
            energy = np.sum(H[:, ::-1] ** 2, axis=0)
            energy_right = np.concatenate([[0], np.cumsum(energy)])
            scales = [flooring_fn(H_norm - energy_right[p]) for p in range(self.n_shifts)]
        else:
            raise NotImplementedError("Normalization {} is not implemented.".format(normalization))

        self.activation = H
        self.basis = [W * scale for W, scale in zip(self.basis, scales)]

    def compute_error(self) -> None:
        r"""Compute absolute and relative errors of current approximation.

        .. math::
            \mathrm{absolute\ error}
            = \|\boldsymbol{\Lambda}-\boldsymbol{V}\|_{F},
            \quad\mathrm{relative\ error}
            = \frac{\|\boldsymbol{\Lambda}-\boldsymbol{V}\|_{F}}{\|\boldsymbol{V}\|_{F}}.
        """
        self.absolute_error = float(np.linalg.norm(self.approx - self.observation))
        self.relative_error = self.absolute_error / self.v_frob

    def compute_loss(self) -> float:
        r"""Compute divergence between observation and reconstruction.

        Regularization terms are not included.

        Returns:
            Frobenius norm of residual for Euclidean cost functions,
            and generalized KL divergence for KL cost functions.
        """
        V = self.observation
        R = self.reconstruct(self.basis, self.activation)

        if self.cost_function is None:
            divergence = EUCLIDEAN_DIVERGENCE
        else:
            divergence, _ = parse_cost_function(self.cost_function)

        if divergence == KL_DIVERGENCE:
            R = self.flooring_fn(R)
            mask = V > 0
            loss = np.sum(V[mask] * np.log(V[mask] / R[mask])) - np.sum(V) + np.sum(R)
        else:
            loss = np.linalg.norm(V - R)

        return float(loss)


def _warn_if_negative(input: np.ndarray, name: str) -> None:
    if np.any(input < 0):
        warnings.warn(
            "Non-negative {} is expected, but negative entries are found.".format(name),
            UserWarning,
        )
