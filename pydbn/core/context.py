"""Per-epoch training statistics and fine-tuning contexts."""


class TrainingContext(object):
    """Statistics gathered over one epoch of RBM training.

    The trainer accumulates into the fields batch after batch, then the
    epoch trainer averages reconstruction error and sparsity by the number
    of batches and the free energy by the number of samples.
    """

    def __init__(self, momentum=0.):
        self.reconstruction_error = 0.
        self.sparsity = 0.
        self.free_energy = 0.
        self.batches = 0
        self.samples = 0
        self.momentum = momentum

    def average(self):
        """Turn the accumulated sums into averages."""
        if self.batches:
            self.reconstruction_error /= self.batches
            self.sparsity /= self.batches
        if self.samples:
            self.free_energy /= self.samples
        return self

    def as_dict(self):
        return {
            'reconstruction_error': self.reconstruction_error,
            'sparsity': self.sparsity,
            'free_energy': self.free_energy,
            'batches': self.batches,
            'samples': self.samples,
            'momentum': self.momentum,
        }

    def __repr__(self):
        return 'TrainingContext(%r)' % self.as_dict()


class GradientContext(object):
    """One batch of supervised data handed to a fine-tuning optimizer.

    :param inputs: batch of input vectors
    :param targets: batch of labels
    :param epoch: current fine-tuning epoch
    :param max_iterations: cap on the optimizer iterations for this batch
    :param start_layer: first layer whose weights the optimizer updates
    """

    def __init__(self, inputs, targets, epoch, max_iterations=3,
                 start_layer=0):
        self.inputs = inputs
        self.targets = targets
        self.epoch = epoch
        self.max_iterations = max_iterations
        self.start_layer = start_layer
