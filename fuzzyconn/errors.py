"""
Exceptions raised by the fuzzy connectedness segmentation package.
"""


class FuzzyConnectednessError(Exception):
    """Base class for all errors raised by fuzzyconn."""


class ConfigurationError(FuzzyConnectednessError, ValueError):
    """Invalid grid, seeds, parameters or threshold, detected before propagation."""


class InsufficientMemoryError(FuzzyConnectednessError, MemoryError):
    """The scene or the affinity tables could not be allocated."""


class SceneNotComputedError(FuzzyConnectednessError):
    """A scene or output was requested before a successful run()."""
