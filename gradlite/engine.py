"""
GradLite backward engine

Orders the graph below a root node and applies the chain rule in reverse.
"""

import numpy as np

from .errors import UnsupportedOperation
from .ops import BACKWARD_RULES


def topological_order(root):
    """
    List every node reachable from root, operands before the nodes using them.

    Depth-first post-order. A node reached through several paths (a shared
    ancestor) appears exactly once. Uses an explicit stack so long chains
    don't run into Python's recursion limit.

    Args:
        root: Node to trace back from

    Returns:
        List of nodes with root last
    """
    topo = []
    visited = set()
    stack = [(root, False)]

    while stack:
        node, finished = stack.pop()
        if finished:
            topo.append(node)
            continue
        if node.id in visited:
            continue
        visited.add(node.id)

        # Revisit this node once all its operands are done
        stack.append((node, True))
        for operand in reversed(node.operands):
            if operand.id not in visited:
                stack.append((operand, False))

    return topo


def backward(root):
    """
    Compute d(root)/d(node) for every node reachable from root.

    The root gradient is seeded with ones, then nodes are visited in reverse
    topological order. By the time a node's backward rule runs, every
    consumer of that node has already added its share into node.grad.

    Gradients of intermediate nodes are cleared first. Leaf gradients are
    accumulated, not reset: call zero_grad() on the parameters before every
    backward pass.

    Raises:
        UnsupportedOperation: if a node's Op has no registered backward rule
    """
    topo = topological_order(root)
    for node in topo:
        if not node.is_leaf:
            node.grad = np.zeros_like(node.data)

    # Initialize gradient of output to 1 (dL/dL = 1)
    root.grad = np.ones_like(root.data)

    for node in reversed(topo):
        if node.is_leaf:
            continue
        rule = BACKWARD_RULES.get(node.op)
        if rule is None:
            raise UnsupportedOperation(
                f"no backward rule registered for {node.op!r}")
        rule(node)
