"""Observers of the training of RBMs and DBNs."""

import logging
import time

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class Watcher(object):
    """Silent watcher. Every notification is a no-op.

    Set `needs_free_energy` to have the epoch trainer compute the free
    energy of the training samples, which is skipped otherwise.
    """

    needs_free_energy = False

    def training_begin(self, rbm):
        pass

    def epoch_end(self, epoch, context, rbm):
        pass

    def training_end(self, rbm):
        pass

    def pretraining_begin(self, dbn, max_epochs):
        pass

    def pretrain_layer(self, dbn, index, input_size):
        pass

    def pretraining_end(self, dbn):
        pass


class LoggingWatcher(Watcher):
    """Log the training progress through the `logging` module."""

    needs_free_energy = True

    def __init__(self, level=logging.INFO):
        self.level = level
        self._start = None
        self._dbn_start = None

    def training_begin(self, rbm):
        self._start = time.time()
        logger.log(self.level, "Train %s", rbm.describe())

    def epoch_end(self, epoch, context, rbm):
        logger.log(
            self.level,
            "epoch %d - Reconstruction error: %.5f - Free energy: %.3f - "
            "Sparsity: %.5f - Momentum: %.2f",
            epoch, context.reconstruction_error, context.free_energy,
            context.sparsity, context.momentum)

    def training_end(self, rbm):
        logger.log(self.level, "Training took %.3fs",
                   time.time() - (self._start or time.time()))

    def pretraining_begin(self, dbn, max_epochs):
        self._dbn_start = time.time()
        logger.log(self.level, "DBN: Pretraining %d layers for %d epochs",
                   len(dbn.layers), max_epochs)

    def pretrain_layer(self, dbn, index, input_size):
        rbm = dbn.layers[index]
        logger.log(self.level, "Training layer %d - ( %d, %d ) on %d samples",
                   index, rbm.num_visible, rbm.num_hidden, input_size)

    def pretraining_end(self, dbn):
        logger.log(self.level, "DBN: Pretraining finished after %.3fs",
                   time.time() - (self._dbn_start or time.time()))


class HistoryWatcher(Watcher):
    """Keep the statistics of every epoch in memory.

    `history` holds one dict per epoch of every trained RBM, with the
    keys of `TrainingContext.as_dict()` plus `epoch` and `layer` (the index
    of the RBM in the network, None outside of a DBN).
    """

    def __init__(self, free_energy=False):
        self.needs_free_energy = free_energy
        self.history = []
        self.begun = 0
        self.ended = 0
        self._layer = None

    def training_begin(self, rbm):
        self.begun += 1

    def epoch_end(self, epoch, context, rbm):
        entry = context.as_dict()
        entry['epoch'] = epoch
        entry['layer'] = self._layer
        self.history.append(entry)

    def training_end(self, rbm):
        self.ended += 1

    def pretrain_layer(self, dbn, index, input_size):
        self._layer = index

    def pretraining_end(self, dbn):
        self._layer = None

    def errors(self, layer=None):
        """Reconstruction errors per epoch, optionally of a single layer."""
        return [h['reconstruction_error'] for h in self.history
                if layer is None or h['layer'] == layer]


WATCHERS = {
    'default': LoggingWatcher,
    'silent': Watcher,
    'history': HistoryWatcher,
}


def make_watcher(watcher):
    """Return a Watcher from an instance, None or a name in WATCHERS."""
    if watcher is None:
        return Watcher()
    if isinstance(watcher, Watcher):
        return watcher
    if watcher in WATCHERS:
        return WATCHERS[watcher]()
    raise ConfigurationError(
        "Unknown watcher {!r}, expected one of {}".format(
            watcher, sorted(WATCHERS)))
