"""Unit types and their activation functions.

Each unit type maps a pre-activation matrix (one row per sample) to the
expected value of the units and to a stochastic sample of their states:

    * binary:   sigmoid / Bernoulli draw
    * gauss:    identity / gaussian noise around the mean (visible only)
    * relu:     max(x, 0) / noisy rectified draw
    * relu1:    relu clamped to [0, 1]
    * relu6:    relu clamped to [0, 6]
    * softmax:  softmax / one-hot at the argmax (hidden only)
"""

from enum import Enum

import numpy as np

from .exceptions import ConfigurationError, NumericalInstabilityError


class UnitType(Enum):
    """Type of the units of one layer of a RBM."""

    BINARY = 'binary'
    GAUSSIAN = 'gauss'
    RELU = 'relu'
    RELU1 = 'relu1'
    RELU6 = 'relu6'
    SOFTMAX = 'softmax'

    @classmethod
    def parse(cls, value):
        """Return the UnitType for a member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(
                "Unknown unit type {!r}, expected one of {}".format(
                    value, [u.value for u in cls]))


RELU_UNITS = (UnitType.RELU, UnitType.RELU1, UnitType.RELU6)

_RELU_CEILING = {UnitType.RELU: None, UnitType.RELU1: 1.0, UnitType.RELU6: 6.0}


def is_relu(unit_type):
    """True for the rectified linear unit family."""
    return unit_type in RELU_UNITS


def check_finite(values, name='values'):
    """Raise NumericalInstabilityError if values holds a NaN or an infinity.

    :param values: array to verify
    :param name: name used in the error message
    :return: values
    """
    if values is not None and not np.all(np.isfinite(values)):
        raise NumericalInstabilityError(
            "Non-finite value in {}".format(name))
    return values


def sigmoid(x):
    """Logistic Function."""
    # exp(-|x|) never overflows
    e = np.exp(-np.abs(x))
    return np.where(x >= 0, 1. / (1. + e), e / (1. + e))


def softmax(x):
    """Row-wise softmax of x."""
    x = np.atleast_2d(x)
    exps = np.exp(x - x.max(axis=1, keepdims=True))
    return exps / exps.sum(axis=1, keepdims=True)


def bernoulli(probs, rng):
    """Convert an array of probabilities to stochastic binary states."""
    return (probs > rng.random(probs.shape)).astype(np.float64)


def one_if_max(probs):
    """One-hot rows with the 1 at the first maximum of each row."""
    probs = np.atleast_2d(probs)
    out = np.zeros_like(probs)
    out[np.arange(probs.shape[0]), probs.argmax(axis=1)] = 1.
    return out


def noisy_relu(mean, rng, ceiling=None):
    """Noisy rectified draw: mean + N(0, sigmoid(mean)), rectified."""
    noise = rng.standard_normal(mean.shape) * np.sqrt(sigmoid(mean))
    return np.clip(mean + noise, 0., ceiling)


def probabilities(unit_type, x):
    """Expected value of the units given their pre-activation x."""
    if unit_type == UnitType.BINARY:
        return sigmoid(x)
    elif unit_type == UnitType.GAUSSIAN:
        return np.array(x, dtype=np.float64)
    elif is_relu(unit_type):
        return np.clip(x, 0., _RELU_CEILING[unit_type])
    elif unit_type == UnitType.SOFTMAX:
        return softmax(x)
    raise ConfigurationError("Unsupported unit type {!r}".format(unit_type))


def sample(unit_type, probs, rng, stddev=1.0):
    """Stochastic states of the units given their expected value."""
    if unit_type == UnitType.BINARY:
        return bernoulli(probs, rng)
    elif unit_type == UnitType.GAUSSIAN:
        return probs + stddev * rng.standard_normal(probs.shape)
    elif is_relu(unit_type):
        return noisy_relu(probs, rng, _RELU_CEILING[unit_type])
    elif unit_type == UnitType.SOFTMAX:
        return one_if_max(probs)
    raise ConfigurationError("Unsupported unit type {!r}".format(unit_type))


def activate(unit_type, x, rng, probs=True, sample_states=True, stddev=1.0):
    """Compute the activation of a layer of units.

    Parameters
    ----------

    unit_type : UnitType
        type of the units.

    x : array_like, shape (n_samples, n_units)
        pre-activation values (bias + input . weights).

    rng : numpy.random.Generator
        source of randomness for the sampled states.

    probs : bool, optional (default = True)
        whether the expected values are returned.

    sample_states : bool, optional (default = True)
        whether a stochastic sample is returned.

    stddev : float, optional (default = 1.0)
        standard deviation of the noise of gaussian units.

    Returns
    -------

    tuple (probabilities or None, samples or None)
    """
    p = probabilities(unit_type, x) if (probs or sample_states) else None
    check_finite(p, "{} activation probabilities".format(unit_type.value))

    s = None
    if sample_states:
        s = sample(unit_type, p, rng, stddev)
        check_finite(s, "{} activation samples".format(unit_type.value))

    return (p if probs else None), s
