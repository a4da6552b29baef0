"""
GradLite parameter export / import

Two levels:
- export_parameters / import_parameters move the values of a list of
  parameter nodes to and from one flat float64 array.
- ParameterBundle groups the values per layer by name and reads/writes them
  as a plain text file, one value per line.
"""

import warnings

import numpy as np

from .errors import ShapeMismatch


def export_parameters(parameters):
    """
    Flatten the values of parameter nodes into one array.

    Args:
        parameters: Iterable of nodes, in a fixed order

    Returns:
        1-D float64 numpy array, the row-major values of every node in turn
    """
    parameters = list(parameters)
    if not parameters:
        return np.zeros(0)
    return np.concatenate([p.data.ravel() for p in parameters])


def import_parameters(parameters, flat):
    """
    Restore parameter values from an array made by export_parameters.

    Args:
        parameters: The same nodes, in the same order, as were exported
        flat: Flat sequence of values

    Raises:
        ShapeMismatch: if the number of values doesn't match the parameters
    """
    parameters = list(parameters)
    flat = np.asarray(flat, dtype=np.float64).ravel()
    total = sum(p.size for p in parameters)
    if flat.size != total:
        raise ShapeMismatch(
            f"got {flat.size} values for parameters holding {total}")

    offset = 0
    for p in parameters:
        p.set_values(flat[offset:offset + p.size])
        offset += p.size


def _create_new(filename):
    """Open filename for writing, appending .0, .1, ... if it already exists."""
    candidate = filename
    counter = 0
    while True:
        try:
            f = open(candidate, 'x')
        except FileExistsError:
            candidate = f"{filename}.{counter}"
            counter += 1
            continue
        if candidate != filename:
            print(f"Changing export filename to {candidate}")
        return f, candidate


class ParameterBundle:
    """
    Parameter values of a stack of layers, grouped by layer name.

    File format:
        Layer 0: <name>
        Parameter: 0
        <value>
        <value>
        Parameter: 1
        ...
    """

    def __init__(self, layers_data=None):
        """
        Args:
            layers_data: List of (layer_name, [values array, ...]) tuples
        """
        self.layers_data = layers_data if layers_data is not None else []

    @classmethod
    def from_layers(cls, layers):
        """Copy the current parameter values out of a sequence of layers."""
        return cls([
            (layer.name, [p.data.ravel().copy() for p in layer.parameters()])
            for layer in layers
        ])

    def load_into(self, layers):
        """
        Write the stored values back into a sequence of layers.

        A different layer name only produces a warning; a different number
        or size of parameters is an error.
        """
        layers = list(layers)
        if len(layers) != len(self.layers_data):
            raise ShapeMismatch(
                f"bundle holds {len(self.layers_data)} layers, model has {len(layers)}")

        for (stored_name, stored), layer in zip(self.layers_data, layers):
            if stored_name != layer.name:
                warnings.warn(
                    f"layer name {layer.name!r} does not match stored layer name {stored_name!r}")
            params = layer.parameters()
            if len(stored) != len(params):
                raise ShapeMismatch(
                    f"layer {layer.name!r} has {len(params)} parameters, "
                    f"bundle stores {len(stored)}")
            for values, param in zip(stored, params):
                if values.size != param.size:
                    raise ShapeMismatch(
                        f"parameter of size {param.size} in layer {layer.name!r} "
                        f"does not match stored size {values.size}")
                param.set_values(values)

    def save(self, filename):
        """
        Write the bundle to a new text file.

        An existing file is never overwritten; a numeric suffix is added
        instead.

        Returns:
            The filename actually written
        """
        f, filename = _create_new(filename)
        with f:
            for i, (name, params) in enumerate(self.layers_data):
                f.write(f"Layer {i}: {name}\n")
                for n, values in enumerate(params):
                    f.write(f"Parameter: {n}\n")
                    for v in values:
                        # repr round-trips a float exactly
                        f.write(f"{float(v)!r}\n")
        return filename

    @classmethod
    def load(cls, filename):
        """
        Read a bundle written by save().

        Raises:
            FileNotFoundError: if the file does not exist
            ValueError: if a line is malformed or out of place
        """
        layers_data = []
        with open(filename, 'r') as f:
            for lineno, line in enumerate(f, 1):
                line = line.rstrip('\n')
                if line.startswith('Layer'):
                    if ': ' not in line:
                        raise ValueError(f"{filename}:{lineno}: layer line without a name")
                    layers_data.append((line.split(': ', 1)[1], []))
                elif line.startswith('Parameter'):
                    if not layers_data:
                        raise ValueError(f"{filename}:{lineno}: parameter before any layer")
                    layers_data[-1][1].append([])
                elif line:
                    if not layers_data or not layers_data[-1][1]:
                        raise ValueError(f"{filename}:{lineno}: value before any parameter")
                    layers_data[-1][1][-1].append(float(line))

        return cls([
            (name, [np.array(values, dtype=np.float64) for values in params])
            for name, params in layers_data
        ])

    def num_values(self):
        """Total number of stored values"""
        return sum(values.size for _, params in self.layers_data for values in params)

    def __eq__(self, other):
        if not isinstance(other, ParameterBundle):
            return NotImplemented
        if len(self.layers_data) != len(other.layers_data):
            return False
        for (name_a, params_a), (name_b, params_b) in zip(self.layers_data, other.layers_data):
            if name_a != name_b or len(params_a) != len(params_b):
                return False
            if not all(np.array_equal(a, b) for a, b in zip(params_a, params_b)):
                return False
        return True

    def __repr__(self):
        names = ', '.join(name for name, _ in self.layers_data)
        return f"ParameterBundle([{names}], values={self.num_values()})"
