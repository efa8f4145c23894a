import logging
import unittest

import numpy as np

from pydbn import RBM
from pydbn.core import (
    ConfigurationError, EpochTrainer, HistoryWatcher, LoggingWatcher, Trainer,
    Watcher, make_watcher)


class EpochTrainerTest(unittest.TestCase):

    def setUp(self):
        self.data = np.random.default_rng(2).integers(
            0, 2, size=(10, 6)).astype(np.float64)

    def test_history_of_every_epoch(self):
        rbm = RBM(6, 3, batch_size=4, seed=0)
        watcher = HistoryWatcher(free_energy=True)

        error = EpochTrainer(watcher=watcher).train(rbm, self.data, 3)

        self.assertEqual(watcher.begun, 1)
        self.assertEqual(watcher.ended, 1)
        self.assertEqual([h['epoch'] for h in watcher.history], [0, 1, 2])
        self.assertEqual([h['batches'] for h in watcher.history], [3, 3, 3])
        self.assertEqual(watcher.history[-1]['samples'], 10)
        self.assertEqual(error, watcher.errors()[-1])
        self.assertNotEqual(watcher.history[0]['free_energy'], 0.)

    def test_momentum_switch(self):
        rbm = RBM(6, 3, momentum=True, initial_momentum=0.5,
                  final_momentum=0.9, momentum_switch_epoch=5, seed=0)
        watcher = HistoryWatcher()

        rbm.train(self.data, 8, watcher=watcher)

        momentums = [h['momentum'] for h in watcher.history]
        self.assertEqual(momentums[:5], [0.5] * 5)
        self.assertEqual(momentums[5:], [0.9] * 3)
        self.assertEqual(rbm.current_momentum, 0.9)

    def test_momentum_restarts_with_each_training(self):
        rbm = RBM(6, 3, momentum=True, momentum_switch_epoch=1, seed=0)
        rbm.train(self.data, 2, watcher='silent')
        watcher = HistoryWatcher()

        rbm.train(self.data, 1, watcher=watcher)

        self.assertEqual(watcher.history[0]['momentum'], 0.5)

    def test_rejects_mismatched_data_before_training(self):
        rbm = RBM(6, 3, seed=0)
        W = rbm.W.copy()
        watcher = HistoryWatcher()

        with self.assertRaises(ConfigurationError):
            rbm.train(self.data[:, :5], 2, watcher=watcher)
        with self.assertRaises(ConfigurationError):
            rbm.train(self.data, 2, expected=self.data[:4], watcher=watcher)

        self.assertEqual(watcher.begun, 0)
        np.testing.assert_array_equal(rbm.W, W)

    def test_seeded_training_is_reproducible(self):
        first = RBM(6, 3, seed=11)
        second = RBM(6, 3, seed=11)

        first.train(self.data, 4, watcher='silent')
        second.train(self.data, 4, watcher='silent')

        np.testing.assert_array_equal(first.W, second.W)

    def test_global_numpy_seed_does_not_matter(self):
        first = RBM(6, 3, seed=11)
        second = RBM(6, 3, seed=11)

        np.random.seed(1)
        first.train(self.data, 2, watcher='silent')
        np.random.seed(2)
        second.train(self.data, 2, watcher='silent')

        np.testing.assert_array_equal(first.W, second.W)

    def test_denoising_training(self):
        rng = np.random.default_rng(3)
        noisy = np.abs(self.data - (rng.random(self.data.shape) < 0.1))
        rbm = RBM(6, 3, batch_size=2, seed=0)

        error = rbm.train(noisy, 3, expected=self.data, watcher='silent')
        self.assertGreater(error, 0.)

    def test_trainer_override(self):
        rbm = RBM(6, 3, trainer='cd', seed=0)

        class Recorder(Trainer):
            compiled = []

            def compile(self, rbm, free_energy=False):
                batch_trainer = Trainer.compile(self, rbm, free_energy)
                self.compiled.append(batch_trainer)
                return batch_trainer

        rbm.train(self.data, 1, trainer=Recorder('pcd', k=2), watcher='silent')

        self.assertEqual(len(Recorder.compiled), 1)
        self.assertEqual(Recorder.compiled[0].k, 2)
        self.assertIsNotNone(Recorder.compiled[0].chain)

    def test_without_shuffle(self):
        first = RBM(6, 3, shuffle=False, seed=1)
        second = RBM(6, 3, shuffle=False, seed=1)

        first.train(self.data, 2, watcher='silent', seed=1)
        second.train(self.data, 2, watcher='silent', seed=99)

        np.testing.assert_array_equal(first.W, second.W)


class WatcherTest(unittest.TestCase):

    def test_make_watcher(self):
        self.assertIsInstance(make_watcher(None), Watcher)
        self.assertIsInstance(make_watcher('default'), LoggingWatcher)
        self.assertIsInstance(make_watcher('history'), HistoryWatcher)
        watcher = HistoryWatcher()
        self.assertIs(make_watcher(watcher), watcher)
        with self.assertRaises(ConfigurationError):
            make_watcher('loud')

    def test_logging_watcher(self):
        rbm = RBM(4, 2, seed=0)
        data = np.eye(4)

        with self.assertLogs('pydbn.core.watchers', level=logging.INFO) as cm:
            rbm.train(data, 2, watcher='default')

        self.assertEqual(len(cm.output), 4)
        self.assertIn('Reconstruction error', cm.output[1])


if __name__ == '__main__':
    unittest.main()
