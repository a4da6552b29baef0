"""
Colors and color keys for the coordinate classifier.

A color key decides, for a point (x, y), whether it is red and whether it
is blue. The four combinations are the four classes the model learns.
"""

from enum import Enum


class Color(Enum):
    """Class of a point; the value is the index of the model output"""
    NONE = 0
    RED = 1
    BLUE = 2
    BOTH = 3

    @classmethod
    def from_flags(cls, is_red, is_blue):
        """Color for a pair of red/blue flags"""
        if is_red:
            return cls.BOTH if is_blue else cls.RED
        return cls.BLUE if is_blue else cls.NONE

    @property
    def flags(self):
        """(is_red, is_blue)"""
        return self in (Color.RED, Color.BOTH), self in (Color.BLUE, Color.BOTH)

    def __int__(self):
        return self.value


class ColorKey:
    """
    Wraps a function (x, y) -> (is_red, is_blue).

    Example:
        key = ColorKey(lambda x, y: (x * x + y * y < 0.5, y > 0))
        key.color(0.1, 0.2)  # Color.BOTH
    """

    def __init__(self, function):
        self.function = function

    def color(self, x, y):
        return Color.from_flags(*self.function(x, y))

    def __call__(self, x, y):
        return self.color(x, y)


def quadrants(x, y):
    """Red left of the y axis, blue below the x axis"""
    return x < 0, y < 0


def circles(x, y):
    """Red inside a circle around (-0.25, 0), blue inside one around (0.25, 0)"""
    return (x + 0.25) ** 2 + y ** 2 < 0.25, (x - 0.25) ** 2 + y ** 2 < 0.25


# Keys selectable from the command line
KEYS = {
    'quadrants': quadrants,
    'circles': circles,
}
