"""
GradLite Node - a matrix-shaped value that remembers how it was made

Every node is a (rows, columns) matrix. Scalars are 1x1, row vectors 1xN,
column vectors Nx1. A node holds:
1. Data (the actual numbers)
2. Gradient (how much changing this affects the final output)
3. History (the operation and operand nodes that created it)

Operations on nodes live in ops.py; the backward pass lives in engine.py.
"""

import itertools
import operator
from enum import Enum

import numpy as np

from .errors import ShapeMismatch, IndexOutOfRange

# Source of node ids, shared by every node in the process
_node_ids = itertools.count()


class NodeKind(Enum):
    """What kind of matrix a node holds, judged from its shape"""
    EMPTY = 'empty'
    SCALAR = 'scalar'
    ROW_VECTOR = 'row vector'
    COLUMN_VECTOR = 'column vector'
    MATRIX = 'matrix'


def _as_matrix(values, shape):
    """Turn raw values into a float64 (rows, cols) array, checking the size."""
    try:
        data = np.array(values, dtype=np.float64)
    except ValueError as e:
        raise ShapeMismatch(f"values do not form a matrix: {e}") from e

    if shape is None:
        if data.ndim == 0:
            return data.reshape(1, 1)
        if data.ndim == 1:
            return data.reshape(1, data.size)
        if data.ndim > 2:
            raise ShapeMismatch(
                f"nodes are at most 2-D, got values of shape {data.shape}")
        return data

    rows, cols = shape
    if rows < 0 or cols < 0:
        raise ShapeMismatch(f"invalid shape {shape}")
    if data.size != rows * cols:
        raise ShapeMismatch(
            f"{data.size} values cannot fill a {rows}x{cols} node")
    return data.reshape(rows, cols)


class Node:
    """
    A vertex in the computation graph.

    Leaves are created directly (parameters, encoded inputs). Every other
    node is created by an operation in ops.py, which computes the value right
    away and records the operands plus an Op tag selecting the backward rule.

    Gradients are accumulated: each consumer adds its share into the
    gradient buffer, so it must be reset with zero_grad() between iterations.
    """

    def __init__(self, values, shape=None, requires_grad=False,
                 _operands=(), _op=None, _ctx=None):
        """
        Create a new node.

        Args:
            values: A number, a (nested) sequence or a numpy array
            shape: Target (rows, columns). Defaults to the shape of values,
                with numbers becoming 1x1 and flat sequences row vectors
            requires_grad: Marks the node as a trainable parameter
            _operands: Nodes this node was derived from (internal)
            _op: Op tag selecting the backward rule (internal)
            _ctx: Extra data the backward rule needs (internal)

        Raises:
            ShapeMismatch: if the number of values is not rows * columns
        """
        self.data = _as_matrix(values, shape)
        self.grad = np.zeros_like(self.data)
        self.requires_grad = requires_grad

        self.id = next(_node_ids)
        self._operands = tuple(_operands)
        self._op = _op
        self._ctx = _ctx if _ctx is not None else {}

    # =========================
    # CONSTRUCTORS
    # =========================

    @staticmethod
    def scalar(value, requires_grad=False):
        """Create a 1x1 node"""
        return Node([value], shape=(1, 1), requires_grad=requires_grad)

    @staticmethod
    def row_vector(values, requires_grad=False):
        """Create a 1xN node"""
        values = list(values)
        return Node(values, shape=(1, len(values)), requires_grad=requires_grad)

    @staticmethod
    def col_vector(values, requires_grad=False):
        """Create an Nx1 node"""
        values = list(values)
        return Node(values, shape=(len(values), 1), requires_grad=requires_grad)

    @staticmethod
    def matrix(values, rows, cols, requires_grad=False):
        """Create a rows x cols node from row-major values"""
        return Node(values, shape=(rows, cols), requires_grad=requires_grad)

    @staticmethod
    def zeros(shape, requires_grad=False):
        """Create a node of zeros"""
        return Node(np.zeros(shape), requires_grad=requires_grad)

    @staticmethod
    def ones(shape, requires_grad=False):
        """Create a node of ones"""
        return Node(np.ones(shape), requires_grad=requires_grad)

    @staticmethod
    def randn(shape, rng=None, scale=1.0, requires_grad=False):
        """
        Create a node with values drawn from a normal distribution.

        Args:
            shape: (rows, columns)
            rng: numpy Generator to draw from. Pass a seeded one for
                reproducible runs; a fresh unseeded one is used otherwise
            scale: Standard deviation
            requires_grad: Marks the node as a trainable parameter
        """
        rng = rng if rng is not None else np.random.default_rng()
        return Node(rng.standard_normal(shape) * scale,
                    requires_grad=requires_grad)

    # =========================
    # SHAPE
    # =========================

    @property
    def shape(self):
        """(rows, columns)"""
        return self.data.shape

    @property
    def rows(self):
        return self.data.shape[0]

    @property
    def cols(self):
        return self.data.shape[1]

    @property
    def size(self):
        """Number of values, rows * columns"""
        return self.data.size

    def __len__(self):
        return self.data.size

    @property
    def kind(self):
        """Categorise the node as scalar, vector or matrix"""
        rows, cols = self.shape
        if rows == 0 or cols == 0:
            return NodeKind.EMPTY
        if rows == 1 and cols == 1:
            return NodeKind.SCALAR
        if cols == 1:
            return NodeKind.COLUMN_VECTOR
        if rows == 1:
            return NodeKind.ROW_VECTOR
        return NodeKind.MATRIX

    # =========================
    # GRAPH
    # =========================

    @property
    def operands(self):
        """Nodes this node was derived from (empty for leaves)"""
        return self._operands

    @property
    def op(self):
        """The Op that produced this node, None for leaves"""
        return self._op

    @property
    def ctx(self):
        return self._ctx

    @property
    def is_leaf(self):
        return self._op is None

    def backward(self):
        """Run the backward pass from this node (see engine.backward)"""
        from .engine import backward
        backward(self)

    # =========================
    # ACCESSORS
    # =========================

    def _position(self, index):
        """Map a flat index or a (row, col) pair to a (row, col) pair."""
        rows, cols = self.shape
        if len(index) == 1:
            i = operator.index(index[0])
            if not 0 <= i < rows * cols:
                raise IndexOutOfRange(
                    f"index {i} out of range for a node of size {rows * cols}")
            return divmod(i, cols)
        if len(index) == 2:
            row, col = operator.index(index[0]), operator.index(index[1])
            if not (0 <= row < rows and 0 <= col < cols):
                raise IndexOutOfRange(
                    f"index ({row}, {col}) out of range for shape {self.shape}")
            return row, col
        raise TypeError(f"expected a flat index or (row, col), got {index!r}")

    def value_at(self, *index):
        """Read one value by flat index or by (row, col)"""
        return float(self.data[self._position(index)])

    def grad_at(self, *index):
        """Read one gradient by flat index or by (row, col)"""
        return float(self.grad[self._position(index)])

    def set_value_at(self, index, value):
        """Overwrite one value; index is a flat index or a (row, col) tuple"""
        index = index if isinstance(index, tuple) else (index,)
        self.data[self._position(index)] = value

    def values(self):
        """All values as a flat row-major list"""
        return self.data.ravel().tolist()

    def grads(self):
        """All gradients as a flat row-major list"""
        return self.grad.ravel().tolist()

    def item(self):
        """Get the value of a 1x1 node as a Python float"""
        if self.data.size != 1:
            raise ShapeMismatch(f"item() needs a scalar node, got {self.shape}")
        return float(self.data[0, 0])

    def numpy(self):
        """Get the underlying numpy array"""
        return self.data

    # =========================
    # MUTATION
    # =========================

    def set_values(self, values):
        """Overwrite all values in place, keeping the shape"""
        values = np.asarray(values, dtype=np.float64)
        if values.size != self.data.size:
            raise ShapeMismatch(
                f"{values.size} values cannot replace {self.data.size}")
        self.data[...] = values.reshape(self.shape)

    def add_grad(self, grad):
        """Accumulate into the gradient buffer"""
        grad = np.asarray(grad, dtype=np.float64)
        if grad.size != self.grad.size:
            raise ShapeMismatch(
                f"gradient of size {grad.size} does not fit {self.shape}")
        self.grad += grad.reshape(self.shape)

    def zero_grad(self):
        """Reset gradients to zero (call this before each backward pass)"""
        self.grad = np.zeros_like(self.data)

    def __repr__(self):
        """String representation for debugging"""
        rows, cols = self.shape
        op = self._op.value if self._op is not None else 'leaf'
        return (f"Node({self.kind.value} {rows}x{cols}, op={op}, "
                f"data={self.data.ravel().tolist()}, "
                f"grad={self.grad.ravel().tolist()})")

    # =========================
    # OPERATORS
    # =========================

    def __add__(self, other):
        return ops.add(self, other)

    def __radd__(self, other):
        return ops.add(other, self)

    def __sub__(self, other):
        return ops.sub(self, other)

    def __rsub__(self, other):
        return ops.sub(other, self)

    def __mul__(self, other):
        return ops.mul(self, other)

    def __rmul__(self, other):
        return ops.mul(other, self)

    def __truediv__(self, other):
        return ops.div(self, other)

    def __rtruediv__(self, other):
        return ops.div(other, self)

    def __matmul__(self, other):
        return ops.matmul(self, other)

    def __rmatmul__(self, other):
        return ops.matmul(other, self)

    def __pow__(self, power):
        return ops.power(self, power)

    def __neg__(self):
        return ops.neg(self)

    def relu(self):
        return ops.relu(self)

    def tanh(self):
        return ops.tanh(self)

    def sigmoid(self):
        return ops.sigmoid(self)

    def exp(self):
        return ops.exp(self)

    def log(self):
        return ops.log(self)

    def sum(self):
        return ops.sum(self)

    def mean(self):
        return ops.mean(self)

    def softmax(self):
        return ops.softmax(self)

    def transpose(self):
        return ops.transpose(self)

    @property
    def T(self):
        return ops.transpose(self)

    def reshape(self, rows, cols):
        return ops.reshape(self, (rows, cols))


# ops imports Node, so it can only be loaded once the class exists
from . import ops  # noqa: E402
