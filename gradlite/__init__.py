"""
GradLite - reverse-mode automatic differentiation over matrices
Nodes, operations with backward rules, and gradient descent
"""

from .node import Node, NodeKind
from .ops import Op
from .engine import backward, topological_order
from .errors import (GradliteError, ShapeMismatch, IndexOutOfRange,
                     UnsupportedOperation, DecodingError, EncodingError)
from .params import export_parameters, import_parameters, ParameterBundle
from . import ops
from . import nn
from . import optim
from . import logger
from . import visualize
from .train import Trainer

__version__ = "0.1.0"
