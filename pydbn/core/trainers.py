"""Trainers module.

Contrastive Divergence algorithms updating the parameters of a RBM one
batch at a time.
"""

import numpy as np

from .exceptions import ConfigurationError
from .regularization import SparsityTracker, apply_weight_decay
from .units import check_finite


class Trainer(object):
    """Choice of the Contrastive Divergence algorithm of a RBM."""

    def __init__(self, method, **kw):
        """Constructor.

        Parameters
        ----------
        method : string
            Which algorithm to use. Possible values are ["cd", "pcd"]
        kw :
            the following arguments can be provided:
                * cd: k (int, default=1) number of gibbs sampling steps
                * pcd: k (int, default=1) number of gibbs sampling steps
        """
        if method not in ["cd", "pcd"]:
            raise ConfigurationError(
                "Unknown trainer {!r}, expected 'cd' or 'pcd'".format(method))

        k = int(kw.get("k", 1))
        if k < 1:
            raise ConfigurationError(
                "The number of gibbs sampling steps must be >= 1")

        self.method = method
        self.k = k

    def compile(self, rbm, free_energy=False):
        """Return a batch trainer bound to rbm.

        Parameters
        ----------
        rbm : RBM
            the model whose parameters the trainer updates.
        free_energy : bool, optional (default=False)
            accumulate the free energy of the training samples.
        """
        if self.method == "pcd":
            return PersistentContrastiveDivergence(rbm, self.k, free_energy)
        return ContrastiveDivergence(rbm, self.k, free_energy)

    def __repr__(self):
        return "Trainer(%r, k=%d)" % (self.method, self.k)


class ContrastiveDivergence(object):
    """CD-k: the negative chain restarts from the data at every batch."""

    def __init__(self, rbm, k=1, free_energy=False):
        self.rbm = rbm
        self.k = k
        self.free_energy = free_energy
        self.sparsity = SparsityTracker(
            rbm.sparsity, rbm.sparsity_target, rbm.sparsity_cost,
            rbm.sparsity_decay)

    def train_batch(self, input_batch, expected_batch, context):
        """Update the rbm parameters with one batch.

        :param input_batch: batch driving the positive phase
        :param expected_batch: batch the reconstruction is compared to
        :param context: TrainingContext of the current epoch
        """
        rbm = self.rbm
        v0 = np.atleast_2d(np.asarray(input_batch, dtype=np.float64))
        v1 = np.atleast_2d(np.asarray(expected_batch, dtype=np.float64))

        if v0.shape[1] != rbm.num_visible or v1.shape != v0.shape:
            raise ConfigurationError(
                "Batch of shape {} does not fit a RBM with {} visible "
                "units".format(v0.shape, rbm.num_visible))

        n = v0.shape[0]

        # Positive phase
        h1_probs, h1_states = rbm.activate_hidden(v0)

        # Negative phase
        v2_probs, h2_probs = self.negative_phase(h1_states)

        # Gradients: positive associations - negative associations
        w_grad = (np.dot(v1.T, h1_probs) - np.dot(v2_probs.T, h2_probs)) / n
        v_grad = np.mean(v1 - v2_probs, axis=0)
        h_grad = np.mean(h1_probs - h2_probs, axis=0)

        apply_weight_decay(
            rbm.weight_decay, rbm.weight_cost, rbm, w_grad, v_grad, h_grad)
        self.sparsity.correct(h1_probs, h_grad)

        self.update_parameters(w_grad, v_grad, h_grad)

        context.reconstruction_error += float(np.mean((v1 - v2_probs) ** 2))
        context.sparsity += float(np.mean(h2_probs))
        context.batches += 1
        context.samples += n

        if self.free_energy:
            context.free_energy += float(np.sum(rbm.free_energy(v0)))

    def gibbs_chain(self, h_states):
        """Run k steps hidden -> visible -> hidden from the hidden states.

        :return: tuple(visible probs, hidden probs, hidden states) of the
            last step
        """
        rbm = self.rbm
        v_probs = h_probs = None

        for _ in range(self.k):
            v_probs, _ = rbm.activate_visible(h_states, sample_states=False)
            h_probs, h_states = rbm.activate_hidden(v_probs)

        return v_probs, h_probs, h_states

    def negative_phase(self, h1_states):
        v_probs, h_probs, _ = self.gibbs_chain(h1_states)
        return v_probs, h_probs

    def update_parameters(self, w_grad, v_grad, h_grad):
        """Apply the gradients, through momentum when the rbm uses it."""
        rbm = self.rbm
        lr = rbm.learning_rate

        if rbm.momentum:
            m = rbm.current_momentum
            rbm.w_inc = m * rbm.w_inc + lr * w_grad
            rbm.v_bias_inc = m * rbm.v_bias_inc + lr * v_grad
            rbm.h_bias_inc = m * rbm.h_bias_inc + lr * h_grad

            rbm.W += rbm.w_inc
            rbm.v_bias += rbm.v_bias_inc
            rbm.h_bias += rbm.h_bias_inc
        else:
            rbm.W += lr * w_grad
            rbm.v_bias += lr * v_grad
            rbm.h_bias += lr * h_grad

        check_finite(rbm.W, "weights")
        check_finite(rbm.v_bias, "visible bias")
        check_finite(rbm.h_bias, "hidden bias")


class PersistentContrastiveDivergence(ContrastiveDivergence):
    """PCD-k: the negative chain continues from the previous batch.

    The chain holds one row of hidden states per sample of the largest
    batch seen so far. A batch with more rows than the chain seeds the
    missing rows from its own positive phase.
    """

    def __init__(self, rbm, k=1, free_energy=False):
        ContrastiveDivergence.__init__(self, rbm, k, free_energy)
        self.chain = None

    def negative_phase(self, h1_states):
        n = h1_states.shape[0]

        if self.chain is None:
            self.chain = h1_states.copy()
        elif self.chain.shape[0] < n:
            self.chain = np.vstack([self.chain, h1_states[self.chain.shape[0]:]])

        v_probs, h_probs, h_states = self.gibbs_chain(self.chain[:n])
        self.chain[:n] = h_states

        return v_probs, h_probs
