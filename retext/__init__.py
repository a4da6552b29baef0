"""Character-level next-letter predictor built on gradlite."""

from .charset import CharSet
from .dataset import TextDataset, SENTINEL
from .model import ReText

__all__ = ['CharSet', 'TextDataset', 'SENTINEL', 'ReText']
