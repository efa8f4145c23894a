"""Utitilies module."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from ..core.exceptions import ConfigurationError

# ################ #
#   Data helpers   #
# ################ #


def gen_batches(data, batch_size):
    """Divide input data into batches.

    The last batch holds the remaining samples when the number of samples
    is not a multiple of batch_size.

    :param data: input data
    :param batch_size: size of each batch
    :return: data divided into batches
    """
    data = np.asarray(data)

    for i in range(0, data.shape[0], batch_size):
        yield data[i:i + batch_size]


def shuffle_together(rng, *arrays):
    """Shuffle the rows of several arrays with the same permutation.

    :param rng: numpy random Generator
    :param arrays: arrays with the same number of rows
    :return: tuple of shuffled copies
    """
    perm = rng.permutation(len(arrays[0]))
    return tuple(np.asarray(a)[perm] for a in arrays)


def to_one_hot(labels, num_labels=None):
    """Convert the vector of labels into one-hot encoding.

    :param labels: vector of integer labels
    :param num_labels: number of classes, default 1 + max label
    :return: one-hot encoded labels, shape (n_samples, num_labels)
    """
    labels = np.asarray(labels).ravel()
    if np.any(labels != np.floor(labels)):
        raise ConfigurationError("Labels must be integers, got {}".format(
            labels[labels != np.floor(labels)][:5].tolist()))
    labels = labels.astype(np.int64)
    nc = int(num_labels) if num_labels is not None else 1 + int(labels.max())

    if labels.size and (labels.min() < 0 or labels.max() >= nc):
        raise ConfigurationError(
            "Labels must be integers in [0, {})".format(nc))

    onehot = np.zeros((labels.shape[0], nc))
    onehot[np.arange(labels.shape[0]), labels] = 1.
    return onehot


def conv2bin(data, rng=None):
    """Convert a matrix of probabilities into binary values.

    If the matrix has values < 0 or > 1, the values are
    normalized to be in [0, 1] first.

    :param data: input matrix
    :param rng: numpy random Generator
    :return: converted binary matrix
    """
    rng = rng if rng is not None else np.random.default_rng()
    data = np.asarray(data, dtype=np.float64)

    if data.min() < 0 or data.max() > 1:
        data = normalize(data)

    return (rng.random(data.shape) <= data).astype(np.float64)


def normalize(data):
    """Normalize the data to be in the [0, 1] range."""
    mn = data.min()
    mx = data.max()
    if mx == mn:
        return np.zeros_like(data)
    return (data - mn) / float(mx - mn)


def chunked_apply(func, data, parallel=False, workers=None):
    """Apply func to the rows of data, optionally on a thread pool.

    The rows are split into one chunk per worker; results are stacked back
    in their original order.

    :param func: function of a 2d array returning a 2d array
    :param data: input data
    :param parallel: run the chunks concurrently
    :param workers: number of threads, default os.cpu_count()
    """
    data = np.asarray(data)
    workers = workers or os.cpu_count() or 1

    if not parallel or workers == 1 or data.shape[0] < 2 * workers:
        return func(data)

    chunks = np.array_split(data, workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return np.vstack(list(pool.map(func, chunks)))

# ############# #
#   Utilities   #
# ############# #


def expand_args(**args_to_expand):
    """Expand the given lists into the length of the layers.

    This is used as a convenience so that the user does not need to specify the
    complete list of parameters for model initialization.
    IE the user can just specify one parameter and this function will expand it
    """
    layers = args_to_expand['layers']

    for key, val in args_to_expand.items():
        if key == 'layers':
            continue
        if not isinstance(val, list):
            args_to_expand[key] = [val for _ in layers]
        elif len(val) != len(layers):
            args_to_expand[key] = [val[0] for _ in layers]

    return args_to_expand


def setup_logging(level=logging.INFO):
    """Send the library logs to stderr, for scripts and notebooks."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s')
    logging.getLogger('pydbn').setLevel(level)
