"""Restricted Boltzmann Machine implementation using numpy."""

import json

import numpy as np

from pydbn.core import (
    ConfigurationError, DecayType, EpochTrainer, SparsityMethod, Trainer,
    UnitType, UnsupervisedModel)
from pydbn.core.units import activate, bernoulli, check_finite, is_relu
from pydbn.utils import utilities


def default_learning_rate(visible_unit_type, hidden_unit_type):
    """Learning rate suited to the unit types.

    Gaussian visible units and rectified hidden units need lower rates.
    """
    gaussian = visible_unit_type == UnitType.GAUSSIAN
    relu = is_relu(hidden_unit_type)
    if gaussian and relu:
        return 1e-5
    elif gaussian or relu:
        return 1e-3
    return 1e-1


class RBM(UnsupervisedModel):
    """Restricted Boltzmann Machine.

    The interface of the class is sklearn-like. The model owns its weights,
    biases, momentum accumulators and hyperparameters; training itself is
    delegated to the Contrastive Divergence trainers driven by an
    EpochTrainer.

    Parameters
    ----------

    num_visible : int
        number of visible units.

    num_hidden : int
        number of hidden units.

    visible_unit_type : UnitType or str, optional (default = 'binary')
        type of the visible units. Softmax visible units are not supported.

    hidden_unit_type : UnitType or str, optional (default = 'binary')
        type of the hidden units. Gaussian hidden units are not supported.

    batch_size : int, optional (default = 1)
        number of samples of each batch.

    learning_rate : float, optional (default = None)
        learning rate, None picks a rate suited to the unit types.

    momentum : bool, optional (default = False)
        update the parameters through momentum.

    initial_momentum, final_momentum : float, optional (0.5, 0.9)
        momentum before and from `momentum_switch_epoch` on.

    momentum_switch_epoch : int, optional (default = 6)
        first epoch (0-based) trained with `final_momentum`.

    weight_decay : DecayType or str, optional (default = 'none')
        'none', 'l1', 'l1_full', 'l2' or 'l2_full'.

    weight_cost : float, optional (default = 0.0002)
        decay rate.

    sparsity : SparsityMethod or str, optional (default = 'none')
        'none', 'global' or 'local'.

    sparsity_target : float, optional (default = 0.01)
        desired average hidden activation.

    sparsity_cost : float, optional (default = 1.0)
        strength of the sparsity correction.

    sparsity_decay : float, optional (default = 0.9)
        smoothing of the moving average of the hidden activations.

    trainer : str, optional (default = 'cd')
        'cd' (Contrastive Divergence) or 'pcd' (Persistent CD).

    gibbs_k : int, optional (default = 1)
        number of gibbs sampling steps of the trainer.

    init_weights : bool, optional (default = False)
        initialize the visible biases from the training data.

    shuffle : bool, optional (default = True)
        shuffle the training data at each epoch.

    parallel : bool, optional (default = False)
        compute `transform` over chunks of rows on a thread pool.

    stddev : float, optional (default = 1.0)
        standard deviation of the noise of gaussian visible samples.

    name : str, optional (default = 'rbm')
        name of the model, used as filename.

    seed : int, optional (default = None)
        seed of the random generator used for the weights and the samples.
    """

    def __init__(self, num_visible, num_hidden, visible_unit_type='binary',
                 hidden_unit_type='binary', batch_size=1, learning_rate=None,
                 momentum=False, initial_momentum=0.5, final_momentum=0.9,
                 momentum_switch_epoch=6, weight_decay='none',
                 weight_cost=0.0002, sparsity='none', sparsity_target=0.01,
                 sparsity_cost=1.0, sparsity_decay=0.9, trainer='cd',
                 gibbs_k=1, init_weights=False, shuffle=True, parallel=False,
                 stddev=1.0, name='rbm', seed=None):
        UnsupervisedModel.__init__(self, name)

        self.num_visible = int(num_visible)
        self.num_hidden = int(num_hidden)
        self.visible_unit_type = UnitType.parse(visible_unit_type)
        self.hidden_unit_type = UnitType.parse(hidden_unit_type)

        if self.num_visible <= 0 or self.num_hidden <= 0:
            raise ConfigurationError(
                "A RBM needs at least one visible and one hidden unit, "
                "got ({}, {})".format(num_visible, num_hidden))

        if self.visible_unit_type == UnitType.SOFTMAX:
            raise ConfigurationError("Softmax visible units are not supported")

        if self.hidden_unit_type == UnitType.GAUSSIAN:
            raise ConfigurationError("Gaussian hidden units are not supported")

        self.batch_size = int(batch_size)
        if self.batch_size <= 0:
            raise ConfigurationError("The batch size must be positive")

        if learning_rate is None:
            learning_rate = default_learning_rate(
                self.visible_unit_type, self.hidden_unit_type)
        self.learning_rate = float(learning_rate)

        self.momentum = bool(momentum)
        self.initial_momentum = float(initial_momentum)
        self.final_momentum = float(final_momentum)
        self.momentum_switch_epoch = int(momentum_switch_epoch)
        self.current_momentum = self.initial_momentum

        self.weight_decay = DecayType.parse(weight_decay)
        self.weight_cost = float(weight_cost)

        self.sparsity = SparsityMethod.parse(sparsity)
        self.sparsity_target = float(sparsity_target)
        self.sparsity_cost = float(sparsity_cost)
        self.sparsity_decay = float(sparsity_decay)

        # Validates the trainer kind
        Trainer(trainer, k=gibbs_k)
        self.trainer = trainer
        self.gibbs_k = int(gibbs_k)

        self.init_weights = bool(init_weights)
        self.shuffle = bool(shuffle)
        self.parallel = bool(parallel)
        self.stddev = float(stddev)

        self.seed = seed
        self.rng = np.random.default_rng(seed)

        # Initialize the weight matrix, using
        # a Gaussian distribution with mean 0 and standard deviation 0.01
        self.W = 0.01 * self.rng.standard_normal(
            (self.num_visible, self.num_hidden))
        self.h_bias = np.zeros(self.num_hidden)
        self.v_bias = np.zeros(self.num_visible)

        self.w_inc = np.zeros_like(self.W)
        self.h_bias_inc = np.zeros_like(self.h_bias)
        self.v_bias_inc = np.zeros_like(self.v_bias)

    def describe(self):
        """One line summary of the configuration."""
        desc = "RBM(%d -> %d, %s/%s): lr=%g, batch=%d, %s" % (
            self.num_visible, self.num_hidden, self.visible_unit_type.value,
            self.hidden_unit_type.value, self.learning_rate, self.batch_size,
            Trainer(self.trainer, k=self.gibbs_k))
        if self.momentum:
            desc += ", momentum=%g->%g@%d" % (
                self.initial_momentum, self.final_momentum,
                self.momentum_switch_epoch)
        if self.weight_decay != DecayType.NONE:
            desc += ", decay=%s(%g)" % (self.weight_decay.value,
                                        self.weight_cost)
        if self.sparsity != SparsityMethod.NONE:
            desc += ", sparsity=%s(%g)" % (self.sparsity.value,
                                           self.sparsity_target)
        return desc

    def __repr__(self):
        return "<%s>" % self.describe()

    # ################# #
    #   Activations     #
    # ################# #

    def activate_hidden(self, visible, probs=True, sample_states=True):
        """Sample the hidden units from the visible units.

        :param visible: activations of the visible units,
            shape (n_samples, num_visible)
        :return: tuple(hidden probabilities, hidden states), None for the
            outputs not requested
        """
        visible = np.atleast_2d(visible)
        x = np.dot(visible, self.W) + self.h_bias
        return activate(self.hidden_unit_type, x, self.rng, probs,
                        sample_states)

    def activate_visible(self, hidden, probs=True, sample_states=True):
        """Sample the visible units from the hidden units.

        :param hidden: activations of the hidden units,
            shape (n_samples, num_hidden)
        :return: tuple(visible probabilities, visible states), None for the
            outputs not requested
        """
        hidden = np.atleast_2d(hidden)
        x = np.dot(hidden, self.W.T) + self.v_bias
        return activate(self.visible_unit_type, x, self.rng, probs,
                        sample_states, self.stddev)

    def bernoulli(self, probs):
        """Binary states drawn from probabilities with the rbm generator."""
        return bernoulli(np.asarray(probs, dtype=np.float64), self.rng)

    def transform(self, data):
        """Hidden probabilities given the visible data.

        :param data: shape (n_samples, num_visible)
        :return: shape (n_samples, num_hidden)
        """
        data = self._check_visible(data)
        return utilities.chunked_apply(
            lambda chunk: self.activate_hidden(chunk, sample_states=False)[0],
            data, self.parallel)

    def reconstruct(self, data):
        """Visible probabilities after one visible -> hidden -> visible pass.

        :param data: shape (n_samples, num_visible)
        :return: shape (n_samples, num_visible)
        """
        h_probs = self.transform(data)
        return self.activate_visible(h_probs, sample_states=False)[0]

    def _check_visible(self, data):
        data = np.atleast_2d(np.asarray(data, dtype=np.float64))
        if data.shape[1] != self.num_visible:
            raise ConfigurationError(
                "Data of shape {} does not fit a RBM with {} visible "
                "units".format(data.shape, self.num_visible))
        return data

    # ################# #
    #   Energies        #
    # ################# #

    def _hidden_input(self, v):
        return self.h_bias + np.dot(v, self.W)

    def energy(self, v, h):
        """Energy of the joint configuration (v, h).

        Only binary/binary and gaussian/binary rbms define an energy,
        the other combinations return 0.
        """
        if self.hidden_unit_type != UnitType.BINARY:
            return 0.
        v = np.asarray(v, dtype=np.float64)
        h = np.asarray(h, dtype=np.float64)

        interaction = np.dot(np.dot(v, self.W), h)

        if self.visible_unit_type == UnitType.BINARY:
            # E(v,h) = -sum(ai*vi) - sum(bj*hj) - sum(vi*hj*wij)
            e = -np.dot(self.v_bias, v) - np.dot(self.h_bias, h) - interaction
        elif self.visible_unit_type == UnitType.GAUSSIAN:
            # E(v,h) = sum((vi - ai)^2 / 2) - sum(bj*hj) - sum(vi*hj*wij)
            e = (np.sum((v - self.v_bias) ** 2) / 2.
                 - np.dot(self.h_bias, h) - interaction)
        else:
            return 0.

        return float(check_finite(e, "energy"))

    def free_energy(self, v):
        """Free energy of the visible vector v, hidden units integrated out.

        :param v: one visible vector or a matrix of them (one per row)
        :return: float for a vector, array of floats for a matrix
        """
        v = np.asarray(v, dtype=np.float64)
        single = v.ndim == 1
        v = np.atleast_2d(v)

        if self.hidden_unit_type != UnitType.BINARY or \
                self.visible_unit_type not in (UnitType.BINARY,
                                               UnitType.GAUSSIAN):
            fe = np.zeros(v.shape[0])
        else:
            hidden_term = np.sum(
                np.logaddexp(0., self._hidden_input(v)), axis=1)

            if self.visible_unit_type == UnitType.BINARY:
                # F(v) = -sum(ai*vi) - sum(log(1 + e^(xj)))
                fe = -np.dot(v, self.v_bias) - hidden_term
            else:
                # F(v) = sum((vi-ai)^2/2) - sum(log(1 + e^(xj)))
                fe = np.sum((v - self.v_bias) ** 2, axis=1) / 2. - hidden_term

        check_finite(fe, "free energy")
        return float(fe[0]) if single else fe

    # ################# #
    #   Training        #
    # ################# #

    def init_weights_from_data(self, data):
        """Set the visible biases to log(p / (1 - p)).

        p is the proportion of training vectors in which the visible unit is
        on, kept away from 0 and 1 so that the logarithm stays finite.
        """
        p = np.clip(np.mean(np.asarray(data, dtype=np.float64), axis=0),
                    1e-4, 1. - 1e-4)
        self.v_bias = check_finite(np.log(p / (1. - p)), "visible bias")

    def train(self, data, max_epochs, expected=None, trainer=None,
              watcher=None, seed=None, verbose=False):
        """Train the rbm.

        :param data: training set, shape (n_samples, num_visible)
        :param max_epochs: number of training epochs
        :param expected: optional reference data for the reconstructions
        :param trainer: optional Trainer overriding the configured one
        :param watcher: optional Watcher or watcher name
        :param seed: optional seed of the shuffling
        :param verbose: display a progress bar
        :return: reconstruction error of the last epoch
        """
        epoch_trainer = EpochTrainer(
            trainer=trainer, watcher=watcher,
            seed=self.seed if seed is None else seed, verbose=verbose)
        return epoch_trainer.train(self, data, max_epochs, expected=expected)

    def sample_visible_from_hidden(self, hidden, gibbs_k=1):
        """Run gibbs_k visible/hidden rounds from the hidden states.

        :return: tuple(visible probabilities, visible states)
        """
        h_states = np.atleast_2d(hidden)
        for step in range(max(1, gibbs_k)):
            v_probs, v_states = self.activate_visible(h_states)
            if step < gibbs_k - 1:
                _, h_states = self.activate_hidden(v_probs)
        return v_probs, v_states

    def fantasy(self, k=1):
        """Generate a sample from the RBM after k steps of gibbs sampling,
        starting with a random sample.

        :param k: number of gibbs sampling steps
        :return: tuple(visible probabilities, visible states)
        """
        v_in = self.bernoulli(np.full((1, self.num_visible), 0.5))
        _, h_states = self.activate_hidden(v_in)
        return self.sample_visible_from_hidden(h_states, k)

    # ################# #
    #   Persistence     #
    # ################# #

    def get_params(self):
        """Hyperparameters, as accepted by the constructor."""
        return {
            'num_visible': self.num_visible,
            'num_hidden': self.num_hidden,
            'visible_unit_type': self.visible_unit_type.value,
            'hidden_unit_type': self.hidden_unit_type.value,
            'batch_size': self.batch_size,
            'learning_rate': self.learning_rate,
            'momentum': self.momentum,
            'initial_momentum': self.initial_momentum,
            'final_momentum': self.final_momentum,
            'momentum_switch_epoch': self.momentum_switch_epoch,
            'weight_decay': self.weight_decay.value,
            'weight_cost': self.weight_cost,
            'sparsity': self.sparsity.value,
            'sparsity_target': self.sparsity_target,
            'sparsity_cost': self.sparsity_cost,
            'sparsity_decay': self.sparsity_decay,
            'trainer': self.trainer,
            'gibbs_k': self.gibbs_k,
            'init_weights': self.init_weights,
            'shuffle': self.shuffle,
            'parallel': self.parallel,
            'stddev': self.stddev,
            'name': self.name,
            'seed': self.seed,
        }

    def get_configuration(self):
        config = self.get_params()
        config.update({
            'W': self.W.tolist(),
            'h_bias': self.h_bias.tolist(),
            'v_bias': self.v_bias.tolist(),
        })
        return config

    def set_configuration(self, data):
        W = np.array(data['W'], dtype=np.float64)
        if W.shape != (self.num_visible, self.num_hidden):
            raise ConfigurationError(
                "Stored weights of shape {} do not fit a ({}, {}) "
                "RBM".format(W.shape, self.num_visible, self.num_hidden))

        self.W = W
        self.h_bias = np.array(data['h_bias'], dtype=np.float64)
        self.v_bias = np.array(data['v_bias'], dtype=np.float64)
        self.w_inc = np.zeros_like(self.W)
        self.h_bias_inc = np.zeros_like(self.h_bias)
        self.v_bias_inc = np.zeros_like(self.v_bias)

    @classmethod
    def from_dict(cls, data):
        """Build a RBM from its configuration dict."""
        params = {k: v for k, v in data.items()
                  if k not in ('W', 'h_bias', 'v_bias')}
        rbm = cls(**params)
        if 'W' in data:
            rbm.set_configuration(data)
        return rbm

    @classmethod
    def from_configuration(cls, infile):
        """Build a RBM from a json file written by save_configuration."""
        with open(infile, 'r') as f:
            return cls.from_dict(json.load(f))
