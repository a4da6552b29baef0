import matplotlib

# Plots are written to files in tests, never shown
matplotlib.use('Agg')

import numpy as np
import pytest

from gradlite import Node


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


def numerical_grad(f, node, eps=1e-6):
    """Central finite differences of the scalar f() with respect to node's values."""
    grad = np.zeros_like(node.data)
    for index in np.ndindex(*node.shape):
        original = node.data[index]
        node.data[index] = original + eps
        plus = f().item()
        node.data[index] = original - eps
        minus = f().item()
        node.data[index] = original
        grad[index] = (plus - minus) / (2 * eps)
    return grad


def check_gradients(f, *leaves, rtol=1e-5, atol=1e-6):
    """Compare the backward pass of f() with finite differences for every leaf."""
    for leaf in leaves:
        leaf.zero_grad()
    f().backward()
    for leaf in leaves:
        np.testing.assert_allclose(leaf.grad, numerical_grad(f, leaf), rtol=rtol, atol=atol)


@pytest.fixture
def gradcheck():
    return check_gradients


def leaf(rng, shape, low=None, high=None):
    if low is not None:
        return Node(rng.uniform(low, high, shape), requires_grad=True)
    return Node(rng.standard_normal(shape), requires_grad=True)


@pytest.fixture
def make_leaf(rng):
    def make(shape, low=None, high=None):
        return leaf(rng, shape, low, high)
    return make
