"""Unsupervised Model scheleton."""

import numpy as np

from .model import Model


class UnsupervisedModel(Model):
    """Unsupervised Model scheleton class.

    The interface of the class is sklearn-like.

    Methods
    -------

    * fit(): model training procedure.
    * transform(): model inference procedure.
    * reconstruct(): model reconstruction procedure.
    * score(): model scoring procedure (mean error).

    Subclasses implement `train()`, `transform()` and `reconstruct()`.
    """

    def __init__(self, name):
        """Constructor."""
        Model.__init__(self, name)

    def fit(self, train_X, train_Y=None, max_epochs=10, **kwargs):
        """Fit the model to the data.

        Parameters
        ----------

        train_X : array_like, shape (n_samples, n_features)
            Training data.

        train_Y : array_like, shape (n_samples, n_features), optional
            Training reference data. Defaults to train_X.

        max_epochs : int, optional (default = 10)
            Number of training epochs.

        Returns
        -------

        self
        """
        self.train(train_X, max_epochs, expected=train_Y, **kwargs)
        return self

    def score(self, data, data_ref=None):
        """Compute the reconstruction loss over the test set.

        Parameters
        ----------

        data : array_like
            Data to reconstruct.

        data_ref : array_like, optional
            Reference data. Defaults to data.

        Returns
        -------

        float: Mean squared error.
        """
        data = np.asarray(data, dtype=np.float64)
        data_ref = data if data_ref is None else np.asarray(data_ref)
        return float(np.mean((data_ref - self.reconstruct(data)) ** 2))
