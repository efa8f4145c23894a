"""Boltzmann machine models."""

from .rbm import RBM
from .dbn import DeepBeliefNetwork, FineTuner, label_argmax
