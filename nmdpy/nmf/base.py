from typing import Callable, List, Optional, Union

__all__ = [
    "IterativeMethodBase",
]


class IterativeMethodBase:
    r"""Base class of iterative method.

    This class provides prototype of iterative updates with early stopping.

    Args:
        callbacks (callable or list[callable], optional):
            Callback functions. Each function is called before iterations and at each iteration.
            Default: ``None``.
        record_loss (bool):
            Record the loss at each iteration of the update algorithm if ``record_loss=True``.
            Default: ``False``.
        notification_delay (int):
            Progress observer is notified every ``notification_delay`` iterations.
            Default: ``25``.
    """

    def __init__(
        self,
        callbacks: Optional[
            Union[
                Callable[["IterativeMethodBase"], None],
                List[Callable[["IterativeMethodBase"], None]],
            ]
        ] = None,
        record_loss: bool = False,
        notification_delay: int = 25,
    ) -> None:
        if callbacks is not None:
            if callable(callbacks):
                callbacks = [callbacks]
            self.callbacks = callbacks
        else:
            self.callbacks = None

        self.record_loss = record_loss

        if self.record_loss:
            self.loss = []
        else:
            self.loss = None

        if notification_delay < 1:
            raise ValueError("notification_delay should be positive.")

        self.notification_delay = notification_delay
        self.num_steps = 0

    def __call__(
        self,
        max_steps: int = 100,
        eps: float = 0.0,
        progress_observer: Optional[Callable[[float], None]] = None,
        initial_call: bool = True,
    ) -> None:
        r"""Iteratively call ``update_once`` until convergence or ``max_steps``.

        Args:
            max_steps (int):
                The maximum number of iterations.
                Default: ``100``.
            eps (float):
                Threshold of convergence check. If ``eps <= 0``,
                iterations are stopped only by ``max_steps``.
                Default: ``0.0``.
            progress_observer (callable, optional):
                Function receiving progress in :math:`[0, 1]`.
                This is called every ``self.notification_delay`` iterations.
            initial_call (bool):
                If ``True``, perform callbacks (and computation of loss if necessary)
                before iterations.
        """
        self.num_steps = 0

        if initial_call:
            if self.record_loss:
                loss = self.compute_loss()
                self.loss.append(loss)

            if self.callbacks is not None:
                for callback in self.callbacks:
                    callback(self)

        while self.num_steps < max_steps:
            if self.is_converged(eps):
                break

            self.update_once()
            self.next_step(max_steps, progress_observer=progress_observer)

    def next_step(
        self, max_steps: int, progress_observer: Optional[Callable[[float], None]] = None
    ) -> None:
        r"""Count up iterations and notify observers.

        Args:
            max_steps (int):
                The maximum number of iterations, used to compute progress.
            progress_observer (callable, optional):
                Function receiving progress in :math:`[0, 1]`.
        """
        self.num_steps += 1

        if self.record_loss:
            loss = self.compute_loss()
            self.loss.append(loss)

        if self.callbacks is not None:
            for callback in self.callbacks:
                callback(self)

        if progress_observer is not None and self.num_steps % self.notification_delay == 0:
            progress_observer(self.num_steps / max_steps)

    def is_converged(self, eps: float) -> bool:
        r"""Check convergence before each iteration.

        Args:
            eps (float):
                Threshold of convergence check.

        Returns:
            ``True`` if iterations should be stopped.
        """
        raise NotImplementedError("Implement 'is_converged' method.")

    def update_once(self) -> None:
        r"""Update parameters once."""
        raise NotImplementedError("Implement 'update_once' method.")

    def compute_loss(self) -> float:
        r"""Compute loss.

        Returns:
            Computed loss. The type is expected ``float``.
        """
        raise NotImplementedError("Implement 'compute_loss' method.")
