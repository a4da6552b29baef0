"""
Character set for the next-letter predictor.

Maps characters to indices and one-hot rows and back. It does not depend on
where the text comes from, so it works for any dataset.
"""

from typing import Iterable, List

import numpy as np

from gradlite import Node
from gradlite.errors import DecodingError, EncodingError


class CharSet:
    """
    Ordered set of known characters.

    The position of a character in the set is its index, and the column of
    the 1 in its one-hot row.
    """

    def __init__(self, chars: Iterable[str] = ()):
        """
        Args:
            chars: Initial characters, duplicates are ignored
        """
        self.chars: List[str] = []
        self.char2id = {}
        for c in chars:
            self.add_character(c)

    @classmethod
    def from_text(cls, text: str, alphabetic_only: bool = False) -> 'CharSet':
        """
        Collect every distinct character of a text, sorted.

        Line breaks are never included.

        Args:
            text: Source text
            alphabetic_only: Keep letters only
        """
        chars = set(text) - {'\n', '\r'}
        if alphabetic_only:
            chars = {c for c in chars if c.isalpha()}
        return cls(sorted(chars))

    def add_character(self, c: str):
        """
        Add a character (e.g. a sentinel) at the end, if not yet known.

        Args:
            c: Single character
        """
        if len(c) != 1:
            raise ValueError(f"expected a single character, got {c!r}")
        if c not in self.char2id:
            self.char2id[c] = len(self.chars)
            self.chars.append(c)

    def index(self, c: str) -> int:
        """
        Get the index of a character.

        Raises:
            EncodingError: if the character is not in the set
        """
        try:
            return self.char2id[c]
        except KeyError:
            raise EncodingError(f"character {c!r} is not in the character set") from None

    def indices(self, s: str) -> List[int]:
        """Convert a string to a list of indices."""
        return [self.index(c) for c in s]

    def encode(self, c: str) -> Node:
        """One-hot row (1 x len(self)) for a single character."""
        return self.encode_string(c)

    def encode_string(self, s: str) -> Node:
        """
        Encode a string as a (len(s) x len(self)) matrix, one one-hot row per
        character.
        """
        values = np.zeros((len(s), len(self.chars)))
        values[np.arange(len(s)), self.indices(s)] = 1.0
        return Node(values, shape=values.shape)

    def decode(self, vector) -> str:
        """
        Interpret a one-hot vector as a character.

        Args:
            vector: Node or array with exactly one positive entry

        Raises:
            DecodingError: if not exactly one entry is positive, or the
                positive entry is past the known characters
        """
        values = vector.values() if isinstance(vector, Node) else np.ravel(vector).tolist()
        hot = [i for i, v in enumerate(values) if v > 0]
        if len(hot) != 1:
            raise DecodingError(f"cannot decode {values}: expected exactly one positive entry")
        if hot[0] >= len(self.chars):
            raise DecodingError(f"index {hot[0]} does not select a known character")
        return self.chars[hot[0]]

    def decode_string(self, matrix) -> str:
        """Decode every row of a matrix (Node or 2-D array) and join the characters."""
        rows = matrix.data if isinstance(matrix, Node) else np.atleast_2d(matrix)
        return ''.join(self.decode(row) for row in rows)

    def __len__(self) -> int:
        return len(self.chars)

    def __contains__(self, c: str) -> bool:
        return c in self.char2id

    def __str__(self) -> str:
        # repr escapes control characters such as '\t'
        return ''.join(c if c.isprintable() else repr(c)[1:-1] for c in self.chars)
