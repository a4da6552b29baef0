"""
GradLite Neural Network Layers

Small building blocks assembled from gradlite operations. Inputs are row
oriented: every row of an input matrix is one example.
"""

import numpy as np

from . import ops
from .errors import ShapeMismatch
from .node import Node


class Module:
    """
    Base class for all neural network modules.

    A module can contain parameters (weights) and define a forward pass.
    """

    name = ''

    def parameters(self):
        """Return all trainable parameters in this module"""
        return []

    def zero_grad(self):
        """Zero out gradients for all parameters"""
        for p in self.parameters():
            p.zero_grad()

    def __call__(self, *args, **kwargs):
        """Make module callable: model(x) calls model.forward(x)"""
        return self.forward(*args, **kwargs)


class Linear(Module):
    """
    Fully connected linear layer: y = x @ W + b

    Args:
        in_features: Number of input features
        out_features: Number of output features
        bias: Whether to include bias term (default True)
        rng: numpy Generator used for the initial weights
        name: Label used when exporting parameters
    """

    def __init__(self, in_features, out_features, bias=True, rng=None, name='linear'):
        self.in_features = in_features
        self.out_features = out_features
        self.name = name

        # He initialization: scale by sqrt(2/in_features)
        # Stored as (in_features, out_features) so rows of x can do x @ W
        scale = np.sqrt(2.0 / in_features)
        self.weight = Node.randn((in_features, out_features), rng=rng,
                                 scale=scale, requires_grad=True)

        self.use_bias = bias
        if bias:
            self.bias = Node.zeros((1, out_features), requires_grad=True)
        else:
            self.bias = None

    @classmethod
    def from_nodes(cls, weight, bias=None, name='linear'):
        """
        Build a layer around existing weight (in x out) and bias (1 x out) nodes.
        """
        if weight.size == 0:
            raise ShapeMismatch("cannot create a layer from an empty weight")
        if bias is not None and bias.shape != (1, weight.cols):
            raise ShapeMismatch(
                f"bias {bias.shape} does not fit weight {weight.shape}")
        layer = cls.__new__(cls)
        layer.in_features, layer.out_features = weight.shape
        layer.name = name
        layer.weight = weight
        layer.use_bias = bias is not None
        layer.bias = bias
        return layer

    def forward(self, x):
        """
        Forward pass: y = x @ W + b

        Args:
            x: Input node of shape (batch, in_features)

        Returns:
            Output node of shape (batch, out_features)
        """
        out = x @ self.weight
        if self.use_bias:
            # (1, out) bias broadcasts over every row
            out = out + self.bias
        return out

    def parameters(self):
        """Return trainable parameters"""
        if self.use_bias:
            return [self.weight, self.bias]
        return [self.weight]

    def __repr__(self):
        return f"Linear(in_features={self.in_features}, out_features={self.out_features}, bias={self.use_bias})"


class Embedding(Module):
    """
    Lookup table turning symbol indices into learned vectors.

    Args:
        num_embeddings: Number of distinct symbols
        embedding_dim: Length of each vector
        rng: numpy Generator used for the initial table
        name: Label used when exporting parameters
    """

    def __init__(self, num_embeddings, embedding_dim, rng=None, name='embedding'):
        self.num_embeddings = num_embeddings
        self.embedding_dim = embedding_dim
        self.name = name
        self.weight = Node.randn((num_embeddings, embedding_dim), rng=rng,
                                 requires_grad=True)

    def forward(self, indices):
        """
        Args:
            indices: Integer array of shape (batch, block) or (n,)

        Returns:
            Node of shape (batch * block, embedding_dim), one row per index
        """
        return ops.embedding(self.weight, indices)

    def parameters(self):
        return [self.weight]

    def __repr__(self):
        return f"Embedding({self.num_embeddings}, {self.embedding_dim})"


class Flatten(Module):
    """
    Join every `group` consecutive rows into one row.

    Turns (batch * block, dim) embeddings into (batch, block * dim).
    """

    def __init__(self, group, name='flatten'):
        self.group = group
        self.name = name

    def forward(self, x):
        if x.rows % self.group:
            raise ShapeMismatch(f"{x.rows} rows cannot be grouped by {self.group}")
        return ops.reshape(x, (x.rows // self.group, x.cols * self.group))

    def __repr__(self):
        return f"Flatten(group={self.group})"


class Sequential(Module):
    """
    Container for stacking layers sequentially.

    Example:
        model = Sequential(
            Linear(2, 4),
            Tanh(),
            Linear(4, 1)
        )
        output = model(input)
    """

    def __init__(self, *layers):
        self.layers = layers

    def forward(self, x):
        """Forward pass through all layers"""
        for layer in self.layers:
            x = layer(x)
        return x

    def parameters(self):
        """Return all parameters from all layers"""
        params = []
        for layer in self.layers:
            params.extend(layer.parameters())
        return params

    def __len__(self):
        return len(self.layers)

    def __getitem__(self, index):
        return self.layers[index]

    def __repr__(self):
        layer_str = '\n  '.join(str(layer) for layer in self.layers)
        return f"Sequential(\n  {layer_str}\n)"


# =========================
# ACTIVATION FUNCTIONS
# =========================

class ReLU(Module):
    """ReLU activation: max(0, x)"""

    name = 'relu'

    def forward(self, x):
        return ops.relu(x)

    def __repr__(self):
        return "ReLU()"


class LeakyReLU(Module):
    """Leaky ReLU: keeps a small slope for negative inputs so units don't die"""

    name = 'leaky_relu'

    def __init__(self, slope=0.01):
        self.slope = slope

    def forward(self, x):
        return ops.leaky_relu(x, self.slope)

    def __repr__(self):
        return f"LeakyReLU(slope={self.slope})"


class Sigmoid(Module):
    """Sigmoid activation: squashes values to range (0, 1)"""

    name = 'sigmoid'

    def forward(self, x):
        return ops.sigmoid(x)

    def __repr__(self):
        return "Sigmoid()"


class Tanh(Module):
    """Tanh activation: squashes values to range (-1, 1), zero-centered"""

    name = 'tanh'

    def forward(self, x):
        return ops.tanh(x)

    def __repr__(self):
        return "Tanh()"


class Softmax(Module):
    """Row-wise softmax: logits to probabilities"""

    name = 'softmax'

    def forward(self, x):
        return ops.softmax(x)

    def __repr__(self):
        return "Softmax()"


# =========================
# LOSS FUNCTIONS
# =========================

class MSELoss(Module):
    """
    Mean Squared Error Loss: mean((pred - target)^2)

    Used for regression problems.
    """

    def forward(self, pred, target):
        diff = pred - target
        return ops.mean(diff * diff)

    def __repr__(self):
        return "MSELoss()"


class CrossEntropyLoss(Module):
    """
    Softmax + cross-entropy on raw logits, averaged over rows.

    Takes logits, not probabilities: the softmax is part of the loss, which
    keeps it stable for large logits and makes its gradient simply
    (softmax(logits) - target).
    """

    def forward(self, logits, target):
        return ops.softmax_cross_entropy(logits, target)

    def __repr__(self):
        return "CrossEntropyLoss()"


class NLLLoss(Module):
    """
    Negative log-likelihood of one-hot targets under predicted probabilities.

    Loss = mean over rows of -log(sum(pred * target, row))
    """

    def forward(self, pred, target):
        # Row sums: probability each example assigns to its target
        picked = (pred * target) @ Node.ones((pred.cols, 1))
        return -ops.mean(ops.log(picked))

    def __repr__(self):
        return "NLLLoss()"


def l2_penalty(parameters, coefficient):
    """
    Regularization term punishing large weights:
    coefficient * sum(p^2 over all parameters) / number of parameter nodes
    """
    if coefficient <= 0:
        raise ValueError("regularization coefficient must be positive")
    parameters = list(parameters)
    total = ops.sum(ops.concat([ops.reshape(p * p, (1, p.size)) for p in parameters]))
    return total * coefficient / len(parameters)
