"""Implementation of Deep Belief Network Model using numpy."""

import json
import logging

import numpy as np

from pydbn.core import (
    ConfigurationError, EpochTrainer, GradientContext, SupervisedModel,
    make_watcher)
from pydbn.models.boltzmann.rbm import RBM
from pydbn.utils import utilities

logger = logging.getLogger(__name__)

# Value of the label units while the true label is unknown
LABEL_PLACEHOLDER = 0.1


def label_argmax(output, num_labels):
    """Index of the largest of the last num_labels values of output.

    The scan starts from 0 with a strict comparison, so ties resolve to the
    lowest index and an output without positive label values yields 0.
    """
    output = np.asarray(output).ravel()
    label = 0
    best = 0.
    for l, value in enumerate(output[output.shape[0] - num_labels:]):
        if value > best:
            best = value
            label = l
    return label


class FineTuner(object):
    """Interface of a whole-stack fine-tuning optimizer.

    `DeepBeliefNetwork.fine_tune` hands every batch to `minimize`, wrapped in
    a GradientContext. No optimization algorithm ships with the library:
    subclasses implement `gradient` (weight gradients of every layer from
    `context.start_layer` on, with the cost of the batch) and `minimize`
    (at most `context.max_iterations` updates, returning the final cost).
    """

    def gradient(self, dbn, context):
        """Return tuple(list of weight gradients, cost) for the batch."""
        raise NotImplementedError(
            "Fine-tuning gradients are not implemented, "
            "subclass FineTuner to provide them")

    def minimize(self, dbn, context):
        """Update the weights of dbn on the batch, return the cost."""
        raise NotImplementedError(
            "Fine-tuning optimization is not implemented, "
            "subclass FineTuner to provide it")


class DeepBeliefNetwork(SupervisedModel):
    """Implementation of Deep Belief Network.

    A stack of RBMs pretrained greedily, layer by layer. With labels, the
    last RBM learns the joint distribution of the top features and of
    one-hot label units appended to its visible layer; labels are then
    predicted by reconstructing those units.

    The interface of the class is sklearn-like.
    """

    def __init__(self, layers, name='dbn', trainer=None, watcher='default',
                 seed=None, verbose=False):
        """Constructor.

        :param layers: list of RBM objects or of dicts of RBM parameters
        :param name: name of the model, used as filename
        :param trainer: optional Trainer used by every layer instead of the
            one configured on each RBM
        :param watcher: Watcher object or one of 'default', 'silent',
            'history'
        :param seed: seed of the shuffling of the training data
        :param verbose: display a progress bar while training each layer
        """
        SupervisedModel.__init__(self, name)

        if not layers:
            raise ConfigurationError("A DBN needs at least one layer")

        self.layers = []
        for l, layer in enumerate(layers):
            if isinstance(layer, dict):
                params = dict(layer)
                params.setdefault('name', '{}-rbm-{}'.format(name, l + 1))
                layer = RBM(**params)
            self.layers.append(layer)

        self.trainer = trainer
        self.watcher = make_watcher(watcher)
        self.seed = seed
        self.verbose = verbose
        self.num_labels = 0

    @classmethod
    def from_layer_sizes(cls, sizes, num_labels=0, name='dbn', trainer=None,
                         watcher='default', seed=None, **rbm_params):
        """Build the network from the number of units of each layer.

        :param sizes: [visible units, hidden units of layer 1, ...]
        :param num_labels: label units appended to the visible layer of the
            last RBM
        :param rbm_params: RBM parameters, either one value for every layer
            or a list with one value per layer
        """
        if len(sizes) < 2:
            raise ConfigurationError(
                "At least two layer sizes are needed, got {}".format(sizes))

        n_rbms = len(sizes) - 1
        params = utilities.expand_args(layers=list(range(n_rbms)),
                                       **rbm_params)
        del params['layers']

        rbms = []
        for l in range(n_rbms):
            num_visible = sizes[l]
            if l == n_rbms - 1 and l > 0:
                num_visible += num_labels
            layer_params = {k: v[l] for k, v in params.items()}
            layer_params.setdefault('name', '{}-rbm-{}'.format(name, l + 1))
            rbms.append(RBM(num_visible, sizes[l + 1], **layer_params))

        return cls(rbms, name=name, trainer=trainer, watcher=watcher,
                   seed=seed)

    def __len__(self):
        return len(self.layers)

    def num_visible(self, layer):
        return self.layers[layer].num_visible

    def num_hidden(self, layer):
        return self.layers[layer].num_hidden

    # ###################### #
    #   Preconditions        #
    # ###################### #

    def _check_layers(self, num_labels=0):
        """Verify that the layer sizes chain, leaving room for the labels."""
        last = len(self.layers) - 1

        if num_labels and last < 1:
            raise ConfigurationError(
                "Label units need a DBN with at least two layers")

        for l in range(last):
            expected = self.num_hidden(l)
            if l + 1 == last:
                expected += num_labels
            if self.num_visible(l + 1) != expected:
                if l + 1 == last and num_labels:
                    raise ConfigurationError(
                        "There is no room for the labels units: layer {} has "
                        "{} visible units, expected {} hidden units of layer "
                        "{} + {} labels".format(
                            l + 1, self.num_visible(l + 1), self.num_hidden(l),
                            l, num_labels))
                raise ConfigurationError(
                    "Layer {} has {} visible units but layer {} has {} hidden "
                    "units".format(l + 1, self.num_visible(l + 1), l,
                                   self.num_hidden(l)))

    def _check_prediction(self, num_labels):
        if num_labels <= 0:
            raise ConfigurationError(
                "Prediction needs a positive number of labels, got {}".format(
                    num_labels))
        self._check_layers(num_labels)

    def _check_input(self, data):
        data = np.atleast_2d(np.asarray(data, dtype=np.float64))
        if data.shape[1] != self.num_visible(0):
            raise ConfigurationError(
                "The input has {} features but the first layer has {} "
                "visible units".format(data.shape[1], self.num_visible(0)))
        return data

    def _check_labels(self, data, labels, num_labels):
        labels = np.asarray(labels).ravel()
        if labels.shape[0] != data.shape[0]:
            raise ConfigurationError(
                "There must be the same number of values than labels: "
                "{} samples, {} labels".format(data.shape[0], labels.shape[0]))
        if num_labels <= 0:
            raise ConfigurationError("The number of labels must be positive")
        return utilities.to_one_hot(labels, num_labels)

    # ###################### #
    #   Pretraining          #
    # ###################### #

    def pretrain(self, training_data, max_epochs):
        """Perform unsupervised greedy layer-wise pretraining.

        :param training_data: shape (n_samples, num_visible of layer 0)
        :param max_epochs: number of epochs of each layer
        :return: reconstruction error of the last epoch of every layer
        """
        data = self._check_input(training_data)
        self._check_layers()
        return self._train_layers(data, None, max_epochs)

    def pretrain_with_labels(self, training_data, labels, num_labels,
                             max_epochs):
        """Perform greedy layer-wise pretraining with label units.

        The one-hot encoding of the labels is appended to the input of the
        last layer.

        :param training_data: shape (n_samples, num_visible of layer 0)
        :param labels: integer labels in [0, num_labels), one per sample
        :param num_labels: number of label units
        :param max_epochs: number of epochs of each layer
        :return: reconstruction error of the last epoch of every layer
        """
        data = self._check_input(training_data)
        onehot = self._check_labels(data, labels, num_labels)
        self._check_layers(num_labels)

        errors = self._train_layers(data, onehot, max_epochs)
        self.num_labels = num_labels
        return errors

    def _train_layers(self, data, onehot, max_epochs):
        self.watcher.pretraining_begin(self, max_epochs)

        errors = []
        next_train = data
        for l, rbm in enumerate(self.layers):
            logger.debug("Train layer %d", l)
            self.watcher.pretrain_layer(self, l, next_train.shape[0])

            epoch_trainer = EpochTrainer(
                trainer=self.trainer, watcher=self.watcher,
                seed=None if self.seed is None else self.seed + 1000 * l,
                verbose=self.verbose)
            errors.append(epoch_trainer.train(rbm, next_train, max_epochs))

            if l < len(self.layers) - 1:
                next_train = self._next_input(l, next_train, onehot)

        self.watcher.pretraining_end(self)
        return errors

    def _next_input(self, layer, data, onehot=None):
        """Hidden probabilities of layer, with the labels appended when the
        next layer is the last one."""
        next_train = self.layers[layer].transform(data)
        if onehot is not None and layer + 1 == len(self.layers) - 1:
            next_train = np.hstack([next_train, onehot])
        return next_train

    def pretrain_input(self, index, training_data, labels=None, num_labels=0):
        """Representation the layer `index` is trained on, without training.

        :param index: index of the layer
        :param training_data: input of the first layer
        :param labels: optional labels, appended before the last layer
        :param num_labels: number of label units
        """
        data = self._check_input(training_data)
        onehot = None
        if labels is not None:
            onehot = self._check_labels(data, labels, num_labels)
        self._check_layers(num_labels if labels is not None else 0)

        next_train = data
        for l in range(index):
            next_train = self._next_input(l, next_train, onehot)
        return next_train

    def train(self, train_set, train_labels, max_epochs, num_labels=None):
        """Pretrain with labels, num_labels defaults to 1 + max label."""
        if num_labels is None:
            num_labels = int(np.max(train_labels)) + 1
        return self.pretrain_with_labels(
            train_set, train_labels, num_labels, max_epochs)

    # ###################### #
    #   Prediction           #
    # ###################### #

    def _propagate(self, item, num_labels):
        """Hidden probabilities of every layer below the last one, with the
        label units set to the placeholder value."""
        v = self._check_input(item)
        last = len(self.layers) - 1

        for l in range(last):
            h, _ = self.layers[l].activate_hidden(v, sample_states=False)
            if l + 1 == last:
                h = np.hstack([h, np.full((h.shape[0], num_labels),
                                          LABEL_PLACEHOLDER)])
            v = h

        return v

    def _reconstruct_top(self, v):
        rbm = self.layers[-1]
        h, _ = rbm.activate_hidden(v, sample_states=False)
        output, _ = rbm.activate_visible(rbm.bernoulli(h), sample_states=False)
        return output

    def activate_layers(self, item, num_labels):
        """Visible reconstruction of the last layer for one input vector."""
        self._check_prediction(num_labels)
        return self._reconstruct_top(self._propagate(item, num_labels))[0]

    def deep_activate_layers(self, item, num_labels, sampling_steps,
                             resample_visible=False):
        """Visible reconstruction of the last layer after gibbs sampling.

        :param resample_visible: draw binary visible states between the
            sampling rounds instead of keeping probabilities
        """
        self._check_prediction(num_labels)
        rbm = self.layers[-1]
        v = self._propagate(item, num_labels)

        for _ in range(sampling_steps):
            h, _ = rbm.activate_hidden(v, sample_states=False)
            v, v_states = rbm.activate_visible(
                rbm.bernoulli(h), sample_states=resample_visible)
            if resample_visible:
                v = v_states

        return self._reconstruct_top(v)[0]

    def predict_label(self, item, num_labels):
        """Predict the label of one input vector with a single pass."""
        return label_argmax(self.activate_layers(item, num_labels),
                            num_labels)

    def deep_predict_label(self, item, num_labels, sampling_steps,
                           resample_visible=False):
        """Predict the label of one input vector after gibbs sampling in the
        last layer."""
        return label_argmax(
            self.deep_activate_layers(item, num_labels, sampling_steps,
                                      resample_visible),
            num_labels)

    def predict(self, test_X, num_labels=None):
        """Predict the labels for the test set.

        :param test_X: shape (n_samples, n_features)
        :param num_labels: defaults to the number of labels of the last
            pretraining with labels
        :return: array of labels, shape (n_samples,)
        """
        num_labels = num_labels or self.num_labels
        data = self._check_input(test_X)
        return np.array([self.predict_label(item, num_labels)
                         for item in data], dtype=np.int64)

    def transform(self, data):
        """Top-level features: hidden probabilities of the layer below the
        label layer (of the last layer in a network without labels)."""
        data = self._check_input(data)
        layers = self.layers[:-1] if self.num_labels else self.layers
        for rbm in layers:
            data = rbm.transform(data)
        return data

    # ###################### #
    #   Fine-tuning hook     #
    # ###################### #

    def fine_tune(self, training_data, labels, epochs, batch_size=None,
                  optimizer=None, max_iterations=3):
        """Hand the supervised data to a fine-tuning optimizer batch by batch.

        :param training_data: shape (n_samples, n_features)
        :param labels: one label per sample
        :param epochs: number of passes over the data
        :param batch_size: defaults to the batch size of the first layer
        :param optimizer: FineTuner implementation
        :param max_iterations: iteration cap passed in every GradientContext
        :return: mean cost of every epoch
        """
        data = self._check_input(training_data)
        labels = np.asarray(labels).ravel()
        if labels.shape[0] != data.shape[0]:
            raise ConfigurationError(
                "There must be the same number of values than labels: "
                "{} samples, {} labels".format(data.shape[0], labels.shape[0]))

        optimizer = optimizer or FineTuner()
        batch_size = batch_size or self.layers[0].batch_size

        costs = []
        for epoch in range(epochs):
            epoch_costs = []
            for inputs, targets in zip(
                    utilities.gen_batches(data, batch_size),
                    utilities.gen_batches(labels, batch_size)):
                context = GradientContext(inputs, targets, epoch,
                                          max_iterations=max_iterations)
                epoch_costs.append(optimizer.minimize(self, context))
            costs.append(float(np.mean(epoch_costs)) if epoch_costs else 0.)
            logger.info("Fine-tuning epoch %d - cost: %f", epoch, costs[-1])

        return costs

    # ###################### #
    #   Persistence          #
    # ###################### #

    def get_configuration(self):
        return {
            'name': self.name,
            'num_labels': self.num_labels,
            'layers': [rbm.get_configuration() for rbm in self.layers],
        }

    def set_configuration(self, data):
        if len(data['layers']) != len(self.layers):
            raise ConfigurationError(
                "Stored network has {} layers, this one {}".format(
                    len(data['layers']), len(self.layers)))
        for rbm, layer in zip(self.layers, data['layers']):
            rbm.set_configuration(layer)
        self.num_labels = data.get('num_labels', 0)

    @classmethod
    def from_configuration(cls, infile, **kwargs):
        """Build a DBN from a json file written by save_configuration."""
        with open(infile, 'r') as f:
            data = json.load(f)
        dbn = cls([RBM.from_dict(layer) for layer in data['layers']],
                  name=data.get('name', 'dbn'), **kwargs)
        dbn.num_labels = data.get('num_labels', 0)
        return dbn
