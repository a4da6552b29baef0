"""
GradLite Optimizers

Optimizers update parameters based on their gradients.
The goal: minimize the loss function by adjusting weights.

Gradient reset is NOT automatic. Call zero_grad() before every backward
pass, otherwise gradients from earlier iterations keep piling up.
"""

import math

import numpy as np


class Optimizer:
    """Base class for all optimizers"""

    def __init__(self, parameters):
        """
        Args:
            parameters: Iterable of parameter nodes to optimize
        """
        self.parameters = list(parameters)

    def zero_grad(self):
        """Reset gradients to zero before backward pass"""
        for p in self.parameters:
            p.zero_grad()

    def step(self):
        """Update parameters (must be implemented by subclass)"""
        raise NotImplementedError


class SGD(Optimizer):
    """
    Gradient Descent

    Updates weights by moving in the opposite direction of the gradient:
        weight = weight - learning_rate * gradient

    Args:
        parameters: Iterable of parameter nodes to optimize
        lr: Learning rate (how big of a step to take). May be changed
            between steps, which is how schedules are applied
        momentum: Momentum factor (default 0 = no momentum)
    """

    def __init__(self, parameters, lr=0.01, momentum=0.0):
        super().__init__(parameters)
        self.lr = lr
        self.momentum = momentum

        # Track velocity for momentum (one for each parameter)
        self.velocities = [np.zeros_like(p.data) for p in self.parameters]

    def step(self):
        """
        Update all parameters in place using their gradients.

        Without momentum:
            param = param - lr * grad

        With momentum:
            velocity = momentum * velocity - lr * grad
            param = param + velocity
        """
        for i, param in enumerate(self.parameters):
            if self.momentum == 0:
                param.data -= self.lr * param.grad
            else:
                self.velocities[i] = self.momentum * self.velocities[i] - self.lr * param.grad
                param.data += self.velocities[i]

    def __repr__(self):
        return f"SGD(lr={self.lr}, momentum={self.momentum})"


# =========================
# LEARNING RATE SCHEDULES
# =========================
# A schedule maps a cycle number (starting at 0) to a learning rate.

def constant_lr(lr):
    """Same learning rate for every cycle"""
    def schedule(cycle):
        return lr
    return schedule


def log_linear_lr(start, end, cycles):
    """
    Move from start to end in equal steps of log(lr).

    Handy both for decaying the rate during training and for sweeping a
    range to find a good one.

    Args:
        start: Learning rate of the first cycle (> 0)
        end: Learning rate of the last cycle (> 0)
        cycles: Total number of cycles
    """
    if start <= 0 or end <= 0:
        raise ValueError("log-linear learning rates must be positive")
    log_step = (math.log(end) - math.log(start)) / max(cycles - 1, 1)

    def schedule(cycle):
        return math.exp(math.log(start) + log_step * cycle)
    return schedule


def step_decay_lr(lr, factor=0.1, every=100):
    """Multiply the learning rate by factor every `every` cycles"""
    def schedule(cycle):
        return lr * factor ** (cycle // every)
    return schedule
