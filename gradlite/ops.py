"""
GradLite Operations

Each operation is a plain function that builds a new Node from its operands.
The forward value is computed immediately; the backward rule is looked up
later by the node's Op tag in BACKWARD_RULES.

Every backward rule receives the output node and ADDS its contribution into
the operands' gradients (never overwrites), so a node used in several places
collects the sum of all its paths.
"""

from enum import Enum

import numpy as np

from .errors import ShapeMismatch, IndexOutOfRange
from .node import Node


class Op(Enum):
    """Closed set of operations that know how to differentiate themselves"""
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    NEG = 'neg'
    MATMUL = '@'
    TRANSPOSE = 'transpose'
    RESHAPE = 'reshape'
    POW = '**'
    EXP = 'exp'
    LOG = 'log'
    TANH = 'Tanh'
    SIGMOID = 'Sigmoid'
    RELU = 'ReLU'
    LEAKY_RELU = 'LeakyReLU'
    SUM = 'sum'
    SOFTMAX = 'softmax'
    SOFTMAX_CROSS_ENTROPY = 'softmax_cross_entropy'
    EMBEDDING = 'embedding'
    CONCAT = 'concat'


# Op -> function(out_node) adding gradients into out_node.operands
BACKWARD_RULES = {}


def backward_rule(op):
    """Register the decorated function as the backward rule for op."""
    def register(fn):
        BACKWARD_RULES[op] = fn
        return fn
    return register


def _lift(x):
    """Wrap plain numbers/sequences into leaf nodes."""
    return x if isinstance(x, Node) else Node(x)


def _broadcast_shape(a, b, name):
    """
    Shape of an elementwise result.

    Each dimension must be equal or 1 in one of the operands, which covers
    scalar, row-vector and column-vector broadcasting.
    """
    shape = []
    for dim_a, dim_b in zip(a.shape, b.shape):
        if dim_a == dim_b or dim_b == 1:
            shape.append(dim_a)
        elif dim_a == 1:
            shape.append(dim_b)
        else:
            raise ShapeMismatch(f"cannot {name} {a.shape} and {b.shape}")
    return tuple(shape)


def _unbroadcast(grad, shape):
    """Sum a gradient over the dimensions that were broadcast from size 1."""
    for axis, dim in enumerate(shape):
        if dim == 1 and grad.shape[axis] != 1:
            grad = grad.sum(axis=axis, keepdims=True)
    return grad


# =========================
# ELEMENTWISE ARITHMETIC
# =========================

def add(a, b):
    """
    Addition: out = a + b

    During backward pass:
    - d(out)/d(a) = 1, so grad_a += grad_out
    - d(out)/d(b) = 1, so grad_b += grad_out
    """
    a, b = _lift(a), _lift(b)
    _broadcast_shape(a, b, 'add')
    return Node(a.data + b.data, _operands=(a, b), _op=Op.ADD)


@backward_rule(Op.ADD)
def _add_backward(out):
    a, b = out.operands
    a.grad += _unbroadcast(out.grad, a.shape)
    b.grad += _unbroadcast(out.grad, b.shape)


def sub(a, b):
    """Subtraction: out = a - b"""
    a, b = _lift(a), _lift(b)
    _broadcast_shape(a, b, 'subtract')
    return Node(a.data - b.data, _operands=(a, b), _op=Op.SUB)


@backward_rule(Op.SUB)
def _sub_backward(out):
    a, b = out.operands
    a.grad += _unbroadcast(out.grad, a.shape)
    b.grad -= _unbroadcast(out.grad, b.shape)


def mul(a, b):
    """
    Element-wise multiplication: out = a * b

    During backward pass:
    - grad_a += b * grad_out
    - grad_b += a * grad_out
    """
    a, b = _lift(a), _lift(b)
    _broadcast_shape(a, b, 'multiply')
    return Node(a.data * b.data, _operands=(a, b), _op=Op.MUL)


@backward_rule(Op.MUL)
def _mul_backward(out):
    a, b = out.operands
    a.grad += _unbroadcast(out.grad * b.data, a.shape)
    b.grad += _unbroadcast(out.grad * a.data, b.shape)


def scale(a, s):
    """Multiply every value of a by the scalar s (a number or a 1x1 node)"""
    s = _lift(s)
    if s.size != 1:
        raise ShapeMismatch(f"scale needs a scalar factor, got {s.shape}")
    return mul(a, s)


def div(a, b):
    """
    Element-wise division: out = a / b

    During backward pass:
    - grad_a += grad_out / b
    - grad_b -= grad_out * a / b^2
    """
    a, b = _lift(a), _lift(b)
    _broadcast_shape(a, b, 'divide')
    with np.errstate(divide='ignore', invalid='ignore'):
        value = a.data / b.data
    return Node(value, _operands=(a, b), _op=Op.DIV)


@backward_rule(Op.DIV)
def _div_backward(out):
    a, b = out.operands
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        a.grad += _unbroadcast(out.grad / b.data, a.shape)
        b.grad -= _unbroadcast(out.grad * a.data / b.data ** 2, b.shape)


def neg(a):
    """Negation: out = -a"""
    a = _lift(a)
    return Node(-a.data, _operands=(a,), _op=Op.NEG)


@backward_rule(Op.NEG)
def _neg_backward(out):
    a, = out.operands
    a.grad -= out.grad


# =========================
# MATRIX OPERATIONS
# =========================

def matmul(a, b):
    """
    Matrix multiplication: out = a @ b, (m x n) @ (n x p) = (m x p)

    During backward pass:
    - grad_a += grad_out @ b.T
    - grad_b += a.T @ grad_out
    """
    a, b = _lift(a), _lift(b)
    if a.cols != b.rows:
        raise ShapeMismatch(
            f"matmul needs left columns == right rows, got {a.shape} @ {b.shape}")
    return Node(a.data @ b.data, _operands=(a, b), _op=Op.MATMUL)


@backward_rule(Op.MATMUL)
def _matmul_backward(out):
    a, b = out.operands
    a.grad += out.grad @ b.data.T
    b.grad += a.data.T @ out.grad


def transpose(a):
    """Swap rows and columns"""
    a = _lift(a)
    return Node(a.data.T, _operands=(a,), _op=Op.TRANSPOSE)


@backward_rule(Op.TRANSPOSE)
def _transpose_backward(out):
    a, = out.operands
    a.grad += out.grad.T


def reshape(a, shape):
    """
    Reinterpret the row-major values of a with a new (rows, cols) shape.

    The number of values must not change.
    """
    a = _lift(a)
    rows, cols = shape
    if rows * cols != a.size:
        raise ShapeMismatch(f"cannot reshape {a.shape} into {shape}")
    return Node(a.data.reshape(rows, cols), _operands=(a,), _op=Op.RESHAPE)


@backward_rule(Op.RESHAPE)
def _reshape_backward(out):
    a, = out.operands
    a.grad += out.grad.reshape(a.shape)


def concat(nodes, axis=1):
    """
    Join nodes side by side (axis=1) or on top of each other (axis=0).

    The other dimension must agree across all nodes.
    """
    nodes = [_lift(n) for n in nodes]
    if not nodes:
        raise ShapeMismatch("concat needs at least one node")
    if axis not in (0, 1):
        raise ShapeMismatch(f"concat axis must be 0 or 1, got {axis}")

    other = 1 - axis
    for node in nodes[1:]:
        if node.shape[other] != nodes[0].shape[other]:
            raise ShapeMismatch(
                f"cannot concat {nodes[0].shape} and {node.shape} along axis {axis}")

    sizes = [node.shape[axis] for node in nodes]
    value = np.concatenate([node.data for node in nodes], axis=axis)
    return Node(value, _operands=tuple(nodes), _op=Op.CONCAT,
                _ctx={'axis': axis, 'sizes': sizes})


@backward_rule(Op.CONCAT)
def _concat_backward(out):
    axis = out.ctx['axis']
    offsets = np.cumsum(out.ctx['sizes'])[:-1]
    pieces = np.split(out.grad, offsets, axis=axis)
    for node, piece in zip(out.operands, pieces):
        node.grad += piece


def embedding(table, indices):
    """
    Look up rows of a table: out[i] = table[indices[i]]

    Equivalent to multiplying one-hot rows with the table, without building
    the one-hot matrix.

    During backward pass:
    - each output row's gradient is added into the table row it came from
    """
    table = _lift(table)
    indices = np.asarray(indices)
    if indices.size and not np.issubdtype(indices.dtype, np.integer):
        raise IndexOutOfRange(f"embedding indices must be integers, got {indices.dtype}")
    indices = indices.astype(np.int64).ravel()
    if np.any(indices < 0) or np.any(indices >= table.rows):
        raise IndexOutOfRange(
            f"embedding indices {indices.tolist()} out of range for {table.rows} rows")
    return Node(table.data[indices], shape=(indices.size, table.cols),
                _operands=(table,), _op=Op.EMBEDDING,
                _ctx={'indices': indices})


@backward_rule(Op.EMBEDDING)
def _embedding_backward(out):
    table, = out.operands
    # add.at accumulates repeated indices instead of keeping the last one
    np.add.at(table.grad, out.ctx['indices'], out.grad)


# =========================
# POWER, EXP, LOG
# =========================

def power(a, exponent):
    """
    Power: out = a ** exponent

    The exponent is a number or a 1x1 node. A node exponent is an operand
    too and receives gradient.

    During backward pass:
    - grad_a += exponent * a^(exponent-1) * grad_out
    - grad_exponent += sum(ln(a) * out * grad_out)
    """
    a = _lift(a)
    if isinstance(exponent, Node):
        if exponent.size != 1:
            raise ShapeMismatch(
                f"power needs a scalar exponent, got {exponent.shape}")
        operands = (a, exponent)
        p = exponent.item()
    else:
        operands = (a,)
        p = float(exponent)

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        value = np.power(a.data, p)
    return Node(value, _operands=operands, _op=Op.POW, _ctx={'exponent': p})


@backward_rule(Op.POW)
def _pow_backward(out):
    a = out.operands[0]
    p = out.ctx['exponent']
    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        a.grad += out.grad * p * np.power(a.data, p - 1)
        if len(out.operands) == 2:
            exponent = out.operands[1]
            # d(a^p)/dp = a^p ln(a), taken as 0 where a^p is 0
            slope = np.where(out.data == 0, 0.0, out.data * np.log(np.abs(a.data)))
            exponent.grad += np.sum(out.grad * slope)


def exp(a):
    """
    Exponential.

    During backward pass:
    - grad_a += exp(a) * grad_out
    """
    a = _lift(a)
    with np.errstate(over='ignore'):
        value = np.exp(a.data)
    return Node(value, _operands=(a,), _op=Op.EXP)


@backward_rule(Op.EXP)
def _exp_backward(out):
    a, = out.operands
    a.grad += out.grad * out.data


def log(a):
    """
    Natural logarithm. Non-positive values give -inf/nan.

    During backward pass:
    - grad_a += grad_out / a
    """
    a = _lift(a)
    with np.errstate(divide='ignore', invalid='ignore'):
        value = np.log(a.data)
    return Node(value, _operands=(a,), _op=Op.LOG)


@backward_rule(Op.LOG)
def _log_backward(out):
    a, = out.operands
    with np.errstate(divide='ignore', invalid='ignore'):
        a.grad += out.grad / a.data


# =========================
# ACTIVATION FUNCTIONS
# =========================

def tanh(a):
    """
    Tanh activation: out = tanh(a)

    During backward pass:
    - grad_a += (1 - out^2) * grad_out
    """
    a = _lift(a)
    return Node(np.tanh(a.data), _operands=(a,), _op=Op.TANH)


@backward_rule(Op.TANH)
def _tanh_backward(out):
    a, = out.operands
    a.grad += (1 - out.data ** 2) * out.grad


def sigmoid(a):
    """
    Sigmoid activation: out = 1 / (1 + exp(-a))

    During backward pass:
    - grad_a += out * (1 - out) * grad_out
    """
    a = _lift(a)
    with np.errstate(over='ignore'):
        value = 1 / (1 + np.exp(-a.data))
    return Node(value, _operands=(a,), _op=Op.SIGMOID)


@backward_rule(Op.SIGMOID)
def _sigmoid_backward(out):
    a, = out.operands
    a.grad += out.data * (1 - out.data) * out.grad


def relu(a):
    """
    ReLU activation: out = max(0, a)

    During backward pass:
    - grad_a += (a > 0) * grad_out
    """
    a = _lift(a)
    return Node(np.maximum(0, a.data), _operands=(a,), _op=Op.RELU)


@backward_rule(Op.RELU)
def _relu_backward(out):
    a, = out.operands
    a.grad += (a.data > 0) * out.grad


def leaky_relu(a, slope=0.01):
    """Leaky ReLU: a where a > 0, slope * a elsewhere"""
    a = _lift(a)
    return Node(np.where(a.data > 0, a.data, slope * a.data),
                _operands=(a,), _op=Op.LEAKY_RELU, _ctx={'slope': slope})


@backward_rule(Op.LEAKY_RELU)
def _leaky_relu_backward(out):
    a, = out.operands
    a.grad += np.where(a.data > 0, 1.0, out.ctx['slope']) * out.grad


# =========================
# REDUCTIONS
# =========================

def sum(a):
    """
    Sum of all values, as a 1x1 node.

    During backward pass:
    - gradient of sum is 1 everywhere: grad_a += grad_out
    """
    a = _lift(a)
    return Node(a.data.sum(), shape=(1, 1), _operands=(a,), _op=Op.SUM)


@backward_rule(Op.SUM)
def _sum_backward(out):
    a, = out.operands
    a.grad += out.grad[0, 0]


def mean(a):
    """Mean of all values, as a 1x1 node"""
    a = _lift(a)
    return div(sum(a), Node.scalar(a.size))


# =========================
# PROBABILITIES AND LOSSES
# =========================

def _stable_softmax(x):
    """Row-wise softmax with the row max subtracted first."""
    shifted = x - x.max(axis=1, keepdims=True)
    exp_x = np.exp(shifted)
    return exp_x / exp_x.sum(axis=1, keepdims=True), shifted, exp_x


def softmax(a):
    """
    Softmax over each row: converts logits to probabilities.

    During backward pass:
    - grad_a += s * (grad_out - sum(grad_out * s, row))
    """
    a = _lift(a)
    if a.cols == 0:
        raise ShapeMismatch("softmax of an empty row")
    probs, _, _ = _stable_softmax(a.data)
    return Node(probs, _operands=(a,), _op=Op.SOFTMAX)


@backward_rule(Op.SOFTMAX)
def _softmax_backward(out):
    a, = out.operands
    s = out.data
    dot = np.sum(out.grad * s, axis=1, keepdims=True)
    a.grad += s * (out.grad - dot)


def softmax_cross_entropy(logits, target):
    """
    Softmax followed by cross-entropy, fused into one operation.

    loss = -sum(target * log_softmax(logits)) / rows

    Each row of logits is one example and each row of target its (usually
    one-hot) distribution. The log-softmax is computed from max-shifted
    logits, so huge logits never materialise as exponentials.

    During backward pass:
    - grad_logits += grad_out * (softmax(logits) * sum(target) - target) / rows,
      with sum(target) taken per row; for one-hot rows that is softmax - target
    - target is treated as a constant
    """
    logits, target = _lift(logits), _lift(target)
    if logits.shape != target.shape:
        raise ShapeMismatch(
            f"logits {logits.shape} and target {target.shape} must match")
    if logits.cols == 0:
        raise ShapeMismatch("softmax of an empty row")

    probs, shifted, exp_x = _stable_softmax(logits.data)
    log_probs = shifted - np.log(exp_x.sum(axis=1, keepdims=True))
    loss = -np.sum(target.data * log_probs) / max(logits.rows, 1)
    return Node(loss, shape=(1, 1), _operands=(logits, target),
                _op=Op.SOFTMAX_CROSS_ENTROPY, _ctx={'probs': probs})


@backward_rule(Op.SOFTMAX_CROSS_ENTROPY)
def _softmax_cross_entropy_backward(out):
    logits, target = out.operands
    rows = max(logits.rows, 1)
    mass = target.data.sum(axis=1, keepdims=True)
    logits.grad += out.grad[0, 0] * (out.ctx['probs'] * mass - target.data) / rows


def cross_entropy(probs, target):
    """
    Cross-entropy of probabilities against a target distribution,
    averaged over rows: -sum(target * ln(probs)) / rows
    """
    probs, target = _lift(probs), _lift(target)
    if probs.shape != target.shape:
        raise ShapeMismatch(
            f"probabilities {probs.shape} and target {target.shape} must match")
    return div(neg(sum(mul(target, log(probs)))), Node.scalar(max(probs.rows, 1)))
