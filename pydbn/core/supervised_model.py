"""Supervised Model scheleton."""

import numpy as np

from .model import Model


class SupervisedModel(Model):
    """Supervised Model scheleton.

    Subclasses implement `train()` and `predict()`.
    """

    def __init__(self, name):
        """Constructor."""
        Model.__init__(self, name)

    def fit(self, train_set, train_labels, max_epochs=10, **kwargs):
        """Fit the model to the data.

        :param train_set: Training data. shape(n_samples, n_features)
        :param train_labels: Training labels, integers. shape(n_samples,)
        :param max_epochs: number of training epochs
        :return: self
        """
        self.train(train_set, train_labels, max_epochs, **kwargs)
        return self

    def score(self, test_X, test_Y):
        """Compute the mean accuracy over the test set.

        Parameters
        ----------

        test_X : array_like, shape (n_samples, n_features)
            Test data.

        test_Y : array_like, shape (n_samples,)
            Test labels.

        Returns
        -------

        float : mean accuracy over the test set
        """
        predictions = self.predict(test_X)
        return float(np.mean(predictions == np.asarray(test_Y).ravel()))
