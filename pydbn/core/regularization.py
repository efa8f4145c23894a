"""Weight decay and sparsity regularization of the RBM gradients."""

from enum import Enum

import numpy as np

from .exceptions import ConfigurationError


class _ParsableEnum(Enum):

    @classmethod
    def parse(cls, value):
        """Return the member for a member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError(
                "Unknown {} {!r}, expected one of {}".format(
                    cls.__name__, value, [m.value for m in cls]))


class DecayType(_ParsableEnum):
    """Weight decay penalty. The _FULL variants also penalize the biases."""

    NONE = 'none'
    L1 = 'l1'
    L1_FULL = 'l1_full'
    L2 = 'l2'
    L2_FULL = 'l2_full'


class SparsityMethod(_ParsableEnum):
    """How the average hidden activation is driven toward the target."""

    NONE = 'none'
    GLOBAL_TARGET = 'global'
    LOCAL_TARGET = 'local'


def decay_penalty(decay_type, weight_cost, param):
    """Penalty to subtract from the gradient of param.

    :param decay_type: DecayType
    :param weight_cost: decay rate
    :param param: weights or biases
    :return: weight_cost * sign(param) for L1, weight_cost * param for L2
    """
    if decay_type in (DecayType.L1, DecayType.L1_FULL):
        return weight_cost * np.sign(param)
    elif decay_type in (DecayType.L2, DecayType.L2_FULL):
        return weight_cost * param
    return 0.


def decays_biases(decay_type):
    return decay_type in (DecayType.L1_FULL, DecayType.L2_FULL)


def apply_weight_decay(decay_type, weight_cost, rbm, w_grad, v_grad, h_grad):
    """Apply the decay penalty of the rbm to the three gradients, in place."""
    if decay_type == DecayType.NONE:
        return

    w_grad -= decay_penalty(decay_type, weight_cost, rbm.W)

    if decays_biases(decay_type):
        v_grad -= decay_penalty(decay_type, weight_cost, rbm.v_bias)
        h_grad -= decay_penalty(decay_type, weight_cost, rbm.h_bias)


class SparsityTracker(object):
    """Moving average of the hidden activations of one training session.

    With GLOBAL_TARGET a single average over every hidden unit is kept, with
    LOCAL_TARGET one average per hidden unit.
    """

    def __init__(self, method, target, cost=1.0, decay=0.9):
        self.method = method
        self.target = target
        self.cost = cost
        self.decay = decay
        self.q = None

    def update(self, h_probs):
        """Fold the hidden probabilities of one batch into the average."""
        if self.method == SparsityMethod.GLOBAL_TARGET:
            current = float(np.mean(h_probs))
        else:
            current = np.mean(h_probs, axis=0)

        if self.q is None:
            self.q = current
        else:
            self.q = self.decay * self.q + (1. - self.decay) * current

        return self.q

    def correct(self, h_probs, h_grad):
        """Pull the hidden bias gradient toward the target, in place."""
        if self.method == SparsityMethod.NONE:
            return

        q = self.update(h_probs)
        h_grad -= self.cost * (q - self.target)
