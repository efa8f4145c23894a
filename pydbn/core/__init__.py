"""Pydbn core package."""

from .exceptions import *
from .config import *
from .units import *
from .regularization import *
from .context import *
from .trainers import *
from .watchers import *
from .epoch_trainer import *
from .model import *
from .supervised_model import *
from .unsupervised_model import *
