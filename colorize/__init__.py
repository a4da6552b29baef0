"""Coordinate-to-color classifier built on gradlite."""

from .color_key import Color, ColorKey, quadrants, circles, KEYS
from .model import ColorPredictor

__all__ = ['Color', 'ColorKey', 'quadrants', 'circles', 'KEYS', 'ColorPredictor']
