"""
Next-letter predictor built on gradlite.

Reads the last block_size characters and predicts a distribution over the
next one. Generation samples from that distribution until the sentinel
comes up.
"""

import time

import numpy as np

from gradlite import Node, ParameterBundle
from gradlite.nn import CrossEntropyLoss, Embedding, Flatten, Linear, Sequential, Tanh
from gradlite.optim import SGD, constant_lr
from gradlite.train import Trainer

from .dataset import SENTINEL


class ReText:
    """
    Character-level MLP language model.

    Layers:
        embedding (n_chars -> embed_dim) per context character
        flatten to one row of block_size * embed_dim
        tanh, Linear to layer_dim, tanh
        n_hidden_layers x (Linear + tanh)
        Linear to n_chars logits

    Args:
        dataset: TextDataset providing the text and character set
        block_size: Number of context characters
        embed_dim: Length of each character vector
        n_hidden_layers: Number of layer_dim x layer_dim layers
        layer_dim: Width of the hidden layers
        regularization: Optional L2 coefficient
        rng: numpy Generator for initialization and sampling
    """

    def __init__(self, dataset, block_size=3, embed_dim=2, n_hidden_layers=1,
                 layer_dim=32, regularization=None, rng=None, logger=None):
        self.dataset = dataset
        self.charset = dataset.charset
        self.block_size = block_size
        self.rng = rng if rng is not None else np.random.default_rng()

        n_chars = len(self.charset)
        layers = [
            Embedding(n_chars, embed_dim, rng=self.rng, name='Embedding layer'),
            Flatten(block_size, name='Reshaping layer'),
            Tanh(),
            Linear(block_size * embed_dim, layer_dim, rng=self.rng,
                   name='Resizing layer (in)'),
            Tanh(),
        ]
        for n in range(n_hidden_layers):
            layers.append(Linear(layer_dim, layer_dim, rng=self.rng, name=f'Hidden layer {n}'))
            layers.append(Tanh())
        layers.append(Linear(layer_dim, n_chars, rng=self.rng, name='Resizing layer (out)'))

        self.model = Sequential(*layers)
        self.loss_fn = CrossEntropyLoss()
        self.optimizer = SGD(self.model.parameters())
        self.trainer = Trainer(self.model, self.loss_fn, self.optimizer,
                               logger=logger, regularization=regularization)

    def _targets(self, targets):
        """One-hot rows for an array of target indices"""
        return Node(np.eye(len(self.charset))[targets])

    def _batch(self, batch_size, validation=False):
        contexts, targets = self.dataset.sample_examples(
            self.block_size, batch_size, rng=self.rng, validation=validation)
        return contexts, self._targets(targets)

    def train(self, cycles, learning_rate, batch_size, verbose=True, log_interval=100):
        """
        Train on freshly sampled examples every cycle.

        Args:
            cycles: Number of training cycles
            learning_rate: Fixed rate, or a schedule (callable cycle -> rate)
            batch_size: Examples per cycle
            verbose: Print progress
            log_interval: Print every this many cycles

        Returns:
            List of training losses
        """
        self.trainer.schedule = learning_rate if callable(learning_rate) else constant_lr(learning_rate)

        start = time.time()
        losses = self.trainer.fit(lambda cycle: self._batch(batch_size), cycles,
                                  log_interval=log_interval, verbose=verbose)
        n_params = sum(p.size for p in self.model.parameters())
        print(f"Trained network with {n_params} parameters for {cycles} cycles "
              f"in {(time.time() - start) * 1000:.0f} ms achieving a loss of: {losses[-1]:.3e}")
        return losses

    def validate(self, batch_size=1000):
        """Loss on a sample of the validation lines (no parameter update)."""
        contexts, targets = self._batch(batch_size, validation=True)
        return self.loss_fn(self.model(contexts), targets).item()

    def probabilities(self, context):
        """
        Distribution over the next character.

        Args:
            context: The last block_size characters

        Returns:
            1-D numpy array, one probability per character of the set
        """
        if len(context) != self.block_size:
            raise ValueError(f"context must hold {self.block_size} characters, got {context!r}")
        indices = np.array([self.charset.indices(context)])
        return self.model(indices).softmax().data[0]

    def predict(self, seed, length, rng=None, logger=None):
        """
        Continue a text by sampling one character at a time.

        Stops after length characters or when the sentinel is sampled.

        Args:
            seed: Start of the text; may be empty
            length: Maximum number of characters to add
            rng: numpy Generator for sampling, defaults to the model's
            logger: Optional InferenceLogger

        Returns:
            seed followed by the generated characters

        Raises:
            EncodingError: if the seed contains unknown characters
        """
        rng = rng if rng is not None else self.rng
        text = SENTINEL * self.block_size + seed
        # Fail on unknown characters before sampling anything
        self.charset.indices(seed)

        for step in range(length):
            context = text[-self.block_size:]
            probs = self.probabilities(context)
            c = self.charset.chars[rng.choice(len(probs), p=probs / probs.sum())]
            if logger is not None:
                logger.log_step(step, self.charset.encode_string(context), probs, note=repr(c))
            if c == SENTINEL:
                break
            text += c

        return text[self.block_size:]

    def embedding_vectors(self):
        """Copy of the embedding table, one row per character"""
        return self.model[0].weight.data.copy()

    @property
    def characters(self):
        return self.charset.chars

    def parameter_bundle(self):
        return ParameterBundle.from_layers(self.model.layers)

    def load_parameter_bundle(self, bundle):
        bundle.load_into(self.model.layers)

    def export_parameters(self, filename):
        """Save all parameters to a new file; returns the name actually used."""
        return self.parameter_bundle().save(filename)

    def import_parameters(self, filename):
        self.load_parameter_bundle(ParameterBundle.load(filename))
