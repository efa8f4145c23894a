"""Errors raised by the library."""


class DBNError(Exception):
    """Base class of every error raised by pydbn."""


class ConfigurationError(DBNError, ValueError):
    """Invalid model configuration or mismatching data.

    Raised before any parameter is touched: unsupported unit combinations,
    layer size mismatches, missing room for the label units, data and labels
    of different lengths.
    """


class NumericalInstabilityError(DBNError, ArithmeticError):
    """A non-finite value appeared in activations, parameters or energies."""
