"""Epoch and batch orchestration of the training of a RBM."""

import logging

import numpy as np
from tqdm import tqdm

from .context import TrainingContext
from .exceptions import ConfigurationError
from .trainers import Trainer
from .watchers import make_watcher
from ..utils import utilities

logger = logging.getLogger(__name__)


class EpochTrainer(object):
    """Drive a Contrastive Divergence trainer over the epochs.

    Parameters
    ----------

    trainer : Trainer, optional (default = None)
        algorithm to use. When None, the one configured on the rbm.

    watcher : Watcher or str, optional (default = None)
        observer notified before training, after each epoch and after
        training. None means silent.

    free_energy : bool, optional (default = False)
        compute the average free energy of the training samples at each
        epoch. Also enabled by watchers with `needs_free_energy`.

    seed : int, optional (default = None)
        seed of the per-epoch shuffling generators. None draws from the
        system entropy.

    verbose : bool, optional (default = False)
        display a progress bar over the epochs.
    """

    def __init__(self, trainer=None, watcher=None, free_energy=False,
                 seed=None, verbose=False):
        self.trainer = trainer
        self.watcher = make_watcher(watcher)
        self.free_energy = free_energy
        self.seed = seed
        self.verbose = verbose

    def train(self, rbm, data, max_epochs, expected=None):
        """Train rbm on data for max_epochs epochs.

        :param rbm: RBM to train, updated in place
        :param data: training set, shape (n_samples, num_visible)
        :param max_epochs: number of epochs
        :param expected: optional reference data the reconstructions are
            compared to (denoising training). Defaults to data.
        :return: average reconstruction error of the last epoch
        """
        data = self._check_data(rbm, data, "training data")
        if expected is None:
            expected = data
        else:
            expected = self._check_data(rbm, expected, "expected data")
            if expected.shape != data.shape:
                raise ConfigurationError(
                    "Expected data of shape {} does not match training data "
                    "of shape {}".format(expected.shape, data.shape))

        rbm.current_momentum = rbm.initial_momentum

        self.watcher.training_begin(rbm)

        if rbm.init_weights:
            rbm.init_weights_from_data(data)

        trainer = self.trainer or Trainer(rbm.trainer, k=rbm.gibbs_k)
        batch_trainer = trainer.compile(
            rbm, free_energy=self.free_energy or self.watcher.needs_free_energy)

        last_error = 0.

        pbar = tqdm(range(max_epochs), disable=not self.verbose)
        for epoch in pbar:
            if rbm.momentum and epoch == rbm.momentum_switch_epoch:
                rbm.current_momentum = rbm.final_momentum
                logger.debug("epoch %d - Switch momentum to %g", epoch,
                             rbm.final_momentum)

            if rbm.shuffle:
                data, expected = self._shuffle(epoch, data, expected)

            context = TrainingContext(
                rbm.current_momentum if rbm.momentum else 0.)

            for input_batch, expected_batch in zip(
                    utilities.gen_batches(data, rbm.batch_size),
                    utilities.gen_batches(expected, rbm.batch_size)):
                batch_trainer.train_batch(input_batch, expected_batch, context)

            context.average()

            self.watcher.epoch_end(epoch, context, rbm)

            last_error = context.reconstruction_error
            pbar.set_description("Reconstruction error: %.5f" % last_error)

        self.watcher.training_end(rbm)

        return last_error

    def _shuffle(self, epoch, data, expected):
        """Shuffle data and expected with the same fresh permutation."""
        seed = None if self.seed is None else self.seed + epoch
        rng = np.random.default_rng(seed)

        if expected is data:
            shuffled = data[rng.permutation(data.shape[0])]
            return shuffled, shuffled

        return utilities.shuffle_together(rng, data, expected)

    @staticmethod
    def _check_data(rbm, data, name):
        data = np.atleast_2d(np.asarray(data, dtype=np.float64))

        if data.ndim != 2 or data.shape[1] != rbm.num_visible:
            raise ConfigurationError(
                "The {} has shape {} but the RBM has {} visible units".format(
                    name, data.shape, rbm.num_visible))

        return data
