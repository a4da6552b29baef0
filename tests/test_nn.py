import numpy as np
import pytest

from gradlite import Node, ops, ShapeMismatch
from gradlite.nn import (Linear, Embedding, Flatten, Sequential, ReLU, LeakyReLU,
                         Sigmoid, Tanh, Softmax, MSELoss, CrossEntropyLoss, NLLLoss,
                         l2_penalty)


def test_linear_shapes_and_parameters(rng):
    layer = Linear(3, 4, rng=rng)
    out = layer(Node(rng.standard_normal((5, 3))))
    assert out.shape == (5, 4)
    assert [p.shape for p in layer.parameters()] == [(3, 4), (1, 4)]
    assert all(p.requires_grad for p in layer.parameters())

    no_bias = Linear(3, 4, bias=False, rng=rng)
    assert len(no_bias.parameters()) == 1


def test_linear_rejects_wrong_input_width(rng):
    with pytest.raises(ShapeMismatch):
        Linear(3, 4, rng=rng)(Node.zeros((2, 5)))


def test_linear_from_nodes():
    w = Node.matrix([1, 2, 3, 4], 2, 2, requires_grad=True)
    b = Node.row_vector([10, 20], requires_grad=True)
    layer = Linear.from_nodes(w, b)
    assert layer(Node.row_vector([1, 1])).values() == [14.0, 26.0]

    with pytest.raises(ShapeMismatch):
        Linear.from_nodes(w, Node.row_vector([1, 2, 3]))
    with pytest.raises(ShapeMismatch):
        Linear.from_nodes(Node.zeros((0, 0)))


def test_linear_bias_gradient_sums_over_rows(rng):
    layer = Linear(2, 3, rng=rng)
    ops.sum(layer(Node(rng.standard_normal((4, 2))))).backward()
    assert layer.bias.grads() == [4.0, 4.0, 4.0]


def test_embedding_and_flatten(rng):
    embed = Embedding(6, 2, rng=rng)
    indices = np.array([[0, 1, 2], [3, 4, 5]])
    rows = embed(indices)
    assert rows.shape == (6, 2)
    flat = Flatten(3)(rows)
    assert flat.shape == (2, 6)
    np.testing.assert_array_equal(flat.data[1], embed.weight.data[3:].ravel())

    with pytest.raises(ShapeMismatch):
        Flatten(4)(rows)


def test_sequential(rng):
    model = Sequential(Linear(2, 4, rng=rng), Tanh(), Linear(4, 1, rng=rng))
    assert len(model) == 3
    assert isinstance(model[1], Tanh)
    assert len(model.parameters()) == 4
    assert model(Node.zeros((7, 2))).shape == (7, 1)
    assert "Linear(in_features=2" in repr(model)


def test_zero_grad(rng):
    model = Sequential(Linear(2, 2, rng=rng), ReLU())
    ops.sum(model(Node.ones((1, 2)))).backward()
    model.zero_grad()
    assert all(not p.grad.any() for p in model.parameters())


@pytest.mark.parametrize("layer, fn", [
    (ReLU(), lambda x: np.maximum(0, x)),
    (LeakyReLU(0.2), lambda x: np.where(x > 0, x, 0.2 * x)),
    (Sigmoid(), lambda x: 1 / (1 + np.exp(-x))),
    (Tanh(), np.tanh),
])
def test_activations(layer, fn, rng):
    x = rng.standard_normal((3, 4))
    np.testing.assert_allclose(layer(Node(x)).data, fn(x))
    assert layer.parameters() == []


def test_softmax_layer(rng):
    out = Softmax()(Node(rng.standard_normal((2, 5))))
    np.testing.assert_allclose(out.data.sum(axis=1), [1.0, 1.0])


def test_mse_loss():
    loss = MSELoss()(Node.row_vector([1.0, 2.0]), Node.row_vector([0.0, 4.0]))
    assert loss.item() == pytest.approx(2.5)


def test_cross_entropy_loss_matches_nll_of_softmax(rng):
    logits = Node(rng.standard_normal((4, 3)))
    target = Node(np.eye(3)[[2, 0, 1, 1]])
    ce = CrossEntropyLoss()(logits, target).item()
    nll = NLLLoss()(ops.softmax(logits), target).item()
    assert ce == pytest.approx(nll)


def test_nll_loss_averages_over_rows():
    probs = Node([[0.5, 0.5], [0.25, 0.75]])
    target = Node([[1.0, 0.0], [0.0, 1.0]])
    expected = -(np.log(0.5) + np.log(0.75)) / 2
    assert NLLLoss()(probs, target).item() == pytest.approx(expected)


def test_l2_penalty():
    a = Node.row_vector([1.0, 2.0], requires_grad=True)
    b = Node.scalar(3.0, requires_grad=True)
    penalty = l2_penalty([a, b], 0.5)
    # 0.5 * (1 + 4 + 9) / 2 parameter nodes
    assert penalty.item() == pytest.approx(3.5)
    penalty.backward()
    assert a.grads() == pytest.approx([0.5, 1.0])
    assert b.grads() == pytest.approx([1.5])

    with pytest.raises(ValueError):
        l2_penalty([a], 0.0)
