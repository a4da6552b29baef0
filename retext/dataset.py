"""
Text dataset for the next-letter predictor.

Loads lines of text and turns them into (context, next character) examples.
"""

from typing import List, Optional, Tuple

import numpy as np

from .charset import CharSet

# Pads the start of every line and marks its end
SENTINEL = '^'


class TextDataset:
    """
    Lines of text split into training and validation parts.

    The character set covers every character of the text plus the sentinel.
    """

    def __init__(self, lines: List[str], training_ratio: float = 0.9,
                 alphabetic_only: bool = False):
        """
        Initialize dataset.

        Args:
            lines: Lines of text, without line breaks
            training_ratio: Share of lines used for training, the rest is
                kept for validation
            alphabetic_only: Build the character set from letters only;
                lines are reduced to the known characters
        """
        if not 0 < training_ratio <= 1:
            raise ValueError(f"training ratio must be in (0, 1], got {training_ratio}")

        # The sentinel never occurs as data
        lines = [line.replace(SENTINEL, '') for line in lines]
        self.charset = CharSet.from_text('\n'.join(lines), alphabetic_only=alphabetic_only)
        self.charset.add_character(SENTINEL)

        lines = [''.join(c for c in line if c in self.charset) for line in lines]
        lines = [line for line in lines if line]
        if not lines:
            raise ValueError("dataset holds no usable text")

        n_training = max(1, int(len(lines) * training_ratio))
        self.training_data = lines[:n_training]
        self.validation_data = lines[n_training:]

    @classmethod
    def from_file(cls, filepath: str, training_ratio: float = 0.9,
                  lowercase: bool = True, alphabetic_only: bool = False) -> 'TextDataset':
        """
        Load a dataset from a text file (one example per line).

        Args:
            filepath: Path to text file
            training_ratio: Share of lines used for training
            lowercase: Lowercase the text before building the character set
            alphabetic_only: Keep letters only
        """
        print(f"Loading dataset from {filepath}...")
        with open(filepath, 'r', encoding='utf-8') as f:
            text = f.read()
        if lowercase:
            text = text.lower()
        dataset = cls(text.splitlines(), training_ratio, alphabetic_only)
        print(f"  Loaded {len(dataset.training_data)} training and "
              f"{len(dataset.validation_data)} validation lines, "
              f"{len(dataset.charset)} characters")
        return dataset

    def line_examples(self, line: str, block_size: int) -> List[Tuple[List[int], int]]:
        """
        Every (context, next) pair of one line.

        The line is padded with block_size sentinels in front and one at the
        end, so the first context is all sentinels and the last target is the
        sentinel.
        """
        padded = self.charset.indices(SENTINEL * block_size + line + SENTINEL)
        return [(padded[i:i + block_size], padded[i + block_size])
                for i in range(len(padded) - block_size)]

    def sample_examples(self, block_size: int, n: int,
                        rng: Optional[np.random.Generator] = None,
                        validation: bool = False) -> Tuple[np.ndarray, np.ndarray]:
        """
        Collect n consecutive examples starting at a random line.

        Lines are taken in order, wrapping around, until n examples are
        gathered or every line has been used once.

        Args:
            block_size: Number of context characters
            n: Number of examples wanted
            rng: numpy Generator choosing the start line
            validation: Draw from the validation lines instead

        Returns:
            (contexts, targets): int arrays of shape (m, block_size) and (m,),
            m <= n
        """
        data = self.validation_data if validation else self.training_data
        if not data:
            raise ValueError("no validation data" if validation else "no training data")
        rng = rng if rng is not None else np.random.default_rng()

        start = int(rng.integers(len(data)))
        examples = []
        for offset in range(len(data)):
            examples.extend(self.line_examples(data[(start + offset) % len(data)], block_size))
            if len(examples) >= n:
                break
        examples = examples[:n]

        contexts = np.array([context for context, _ in examples], dtype=np.int64)
        targets = np.array([target for _, target in examples], dtype=np.int64)
        return contexts.reshape(len(examples), block_size), targets

    def __len__(self) -> int:
        """Return number of lines."""
        return len(self.training_data) + len(self.validation_data)
