"""
GradLite training loop

One cycle:
1. Reset parameter gradients (never automatic)
2. Forward pass and loss
3. Backward pass
4. Gradient descent step with the scheduled learning rate
"""

import itertools
import time

from .nn import l2_penalty


class Trainer:
    """
    Drives a model through repeated zero_grad / forward / backward / step cycles.

    Args:
        model: Module (or any callable with parameters()) mapping inputs to outputs
        loss_fn: Callable (output, target) -> 1x1 loss node
        optimizer: Optimizer over model.parameters()
        schedule: Optional callable cycle -> learning rate
        logger: Optional TrainingLogger
        regularization: Optional L2 coefficient added to the loss
    """

    def __init__(self, model, loss_fn, optimizer, schedule=None, logger=None,
                 regularization=None):
        self.model = model
        self.loss_fn = loss_fn
        self.optimizer = optimizer
        self.schedule = schedule
        self.logger = logger
        self.regularization = regularization
        self.history = []
        self.cycle = 0

    def loss(self, inputs, targets):
        """Build the loss node for one batch, regularization included"""
        loss = self.loss_fn(self.model(inputs), targets)
        if self.regularization:
            loss = loss + l2_penalty(self.model.parameters(), self.regularization)
        return loss

    def train_step(self, inputs, targets):
        """
        Run one cycle on a single batch.

        Returns:
            Loss value (float) before the update
        """
        if self.schedule is not None:
            self.optimizer.lr = self.schedule(self.cycle)

        self.optimizer.zero_grad()
        loss = self.loss(inputs, targets)
        loss.backward()
        self.optimizer.step()

        value = loss.item()
        self.history.append((self.optimizer.lr, value))

        if self.logger is not None:
            self.logger.log_cycle(self.cycle, value, self.optimizer.lr,
                                  self._named_parameters())

        self.cycle += 1
        return value

    def fit(self, batches, cycles, log_interval=100, verbose=True):
        """
        Train for a fixed number of cycles.

        Args:
            batches: Callable cycle -> (inputs, targets), or an iterable of
                (inputs, targets) pairs which is repeated as needed
            cycles: Number of cycles to run
            log_interval: Print progress every this many cycles
            verbose: Print progress at all

        Returns:
            List of loss values, one per cycle
        """
        if cycles < 1:
            raise ValueError(f"cycles must be positive, got {cycles}")
        if log_interval < 1:
            raise ValueError(f"log_interval must be positive, got {log_interval}")
        if callable(batches):
            first = self.cycle
            source = (batches(first + i) for i in range(cycles))
        else:
            source = itertools.cycle(list(batches))

        # Logging every cycle is too slow for long runs
        logger, self.logger = self.logger, None
        start = time.time()
        losses = []
        try:
            for i, (inputs, targets) in zip(range(cycles), source):
                losses.append(self.train_step(inputs, targets))
                if i % log_interval == 0 or i == cycles - 1:
                    if verbose:
                        print(f"  Cycle {i:5d}: Loss = {losses[-1]:.6f} "
                              f"(lr {self.optimizer.lr:.2e})")
                    if logger is not None:
                        logger.log_cycle(self.cycle - 1, losses[-1],
                                         self.optimizer.lr,
                                         self._named_parameters())
        finally:
            self.logger = logger

        if logger is not None and losses:
            n_values = sum(p.size for p in self.model.parameters())
            logger.log_summary(len(losses), losses[-1], n_values,
                               time.time() - start)
        return losses

    def _named_parameters(self):
        return {f"param{i}": p for i, p in enumerate(self.model.parameters())}

    def __repr__(self):
        return f"Trainer(optimizer={self.optimizer!r}, cycles={self.cycle})"
