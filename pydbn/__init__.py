"""Restricted Boltzmann Machines and Deep Belief Networks."""

from .core import *
from .models.boltzmann import RBM, DeepBeliefNetwork, FineTuner

__version__ = '0.1.0'
