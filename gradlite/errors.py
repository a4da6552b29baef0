"""
GradLite Errors

Shape and index problems are programming errors: they are raised right where
the bad node is built, so the traceback points at the offending line.
"""


class GradliteError(Exception):
    """Base class for every error raised by gradlite"""


class ShapeMismatch(GradliteError, ValueError):
    """Operand shapes do not fit the requested operation or construction"""


class IndexOutOfRange(GradliteError, IndexError):
    """An accessor index lies outside a node's buffer"""


class UnsupportedOperation(GradliteError, NotImplementedError):
    """Backward was requested through an operation with no gradient rule"""


class EncodingError(GradliteError, KeyError):
    """A symbol cannot be turned into a one-hot vector"""


class DecodingError(GradliteError, ValueError):
    """A value buffer does not represent a valid discrete selection"""
