"""
Coordinate-to-color classifier built on gradlite.
"""

import time

import numpy as np

from gradlite import Node, ParameterBundle
from gradlite.nn import CrossEntropyLoss, Linear, Sequential, Tanh
from gradlite.optim import SGD, constant_lr, log_linear_lr
from gradlite.train import Trainer

from .color_key import Color, ColorKey

INPUT_DIM = 2
OUTPUT_DIM = len(Color)


class ColorPredictor:
    """
    Learns which Color a ColorKey gives to a point (x, y).

    Layers:
        Linear 2 -> layer_size, tanh
        n_hidden_layers x (Linear + tanh)
        Linear layer_size -> 4 logits, one per Color

    Args:
        color_function: Callable (x, y) -> (is_red, is_blue)
        n_hidden_layers: Number of layer_size x layer_size layers
        layer_size: Width of the hidden layers
        regularization: Optional L2 coefficient
        rng: numpy Generator for initialization and sampling
    """

    def __init__(self, color_function, n_hidden_layers=2, layer_size=30,
                 regularization=None, rng=None, logger=None):
        self.color_key = ColorKey(color_function)
        self.rng = rng if rng is not None else np.random.default_rng()

        layers = [
            Linear(INPUT_DIM, layer_size, rng=self.rng, name='Resizing layer (in)'),
            Tanh(),
        ]
        for n in range(n_hidden_layers):
            layers.append(Linear(layer_size, layer_size, rng=self.rng, name=f'Hidden layer {n}'))
            layers.append(Tanh())
        layers.append(Linear(layer_size, OUTPUT_DIM, rng=self.rng, name='Resizing layer (out)'))

        self.model = Sequential(*layers)
        self.loss_fn = CrossEntropyLoss()
        self.optimizer = SGD(self.model.parameters())
        self.trainer = Trainer(self.model, self.loss_fn, self.optimizer,
                               logger=logger, regularization=regularization)

    def sample_batch(self, batch_size, x_range=(-1.0, 1.0), y_range=(-1.0, 1.0)):
        """
        Draw uniformly distributed points and their colors.

        Returns:
            (coords, targets): (batch_size, 2) node of points and
            (batch_size, 4) node of one-hot colors
        """
        xs = self.rng.uniform(x_range[0], x_range[1], batch_size)
        ys = self.rng.uniform(y_range[0], y_range[1], batch_size)
        targets = np.zeros((batch_size, OUTPUT_DIM))
        for i, (x, y) in enumerate(zip(xs, ys)):
            targets[i, self.color_key.color(x, y).value] = 1.0
        return Node(np.column_stack([xs, ys]), shape=(batch_size, INPUT_DIM)), Node(targets)

    def train(self, cycles, batch_size, learning_rate, x_range=(-1.0, 1.0),
              y_range=(-1.0, 1.0), verbose=True, log_interval=100):
        """
        Train on a fresh batch of points every cycle.

        Args:
            cycles: Number of training cycles
            batch_size: Points per cycle
            learning_rate: Fixed rate, or a (start, end) pair swept
                log-linearly over the cycles
            x_range: (min, max) of sampled x
            y_range: (min, max) of sampled y
            verbose: Print progress
            log_interval: Print every this many cycles

        Returns:
            List of (learning_rate, loss) pairs, one per cycle
        """
        if isinstance(learning_rate, (tuple, list)):
            schedule = log_linear_lr(learning_rate[0], learning_rate[1], cycles)
        else:
            schedule = constant_lr(learning_rate)
        # Schedules count from the start of this run
        first = self.trainer.cycle
        self.trainer.schedule = lambda cycle: schedule(cycle - first)

        start = time.time()
        self.trainer.fit(lambda cycle: self.sample_batch(batch_size, x_range, y_range),
                         cycles, log_interval=log_interval, verbose=verbose)
        history = self.trainer.history[-cycles:]

        n_params = sum(p.size for p in self.model.parameters())
        print(f"Trained network with {n_params} parameters for {cycles} cycles "
              f"in {(time.time() - start) * 1000:.0f} ms achieving a loss of: {history[-1][1]:.3e}")
        return history

    def probabilities(self, x, y):
        """Probability of every Color at one point"""
        return self.model(Node.row_vector([x, y])).softmax().data[0]

    def predict(self, x, y):
        """Most likely Color at (x, y)"""
        return Color(int(np.argmax(self.probabilities(x, y))))

    def predict_batch(self, coords):
        """Color indices for an (n, 2) array of points"""
        coords = np.asarray(coords, dtype=np.float64)
        return np.argmax(self.model(Node(coords, shape=coords.shape)).data, axis=1)

    def accuracy(self, n=1000, x_range=(-1.0, 1.0), y_range=(-1.0, 1.0)):
        """Share of n random points whose predicted color matches the key"""
        coords, targets = self.sample_batch(n, x_range, y_range)
        predicted = np.argmax(self.model(coords).data, axis=1)
        return float(np.mean(predicted == np.argmax(targets.data, axis=1)))

    def parameter_bundle(self):
        return ParameterBundle.from_layers(self.model.layers)

    def load_parameter_bundle(self, bundle):
        bundle.load_into(self.model.layers)

    def export_parameters(self, filename):
        """Save all parameters to a new file; returns the name actually used."""
        return self.parameter_bundle().save(filename)

    def import_parameters(self, filename):
        self.load_parameter_bundle(ParameterBundle.load(filename))
