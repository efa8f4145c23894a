import os
import shutil
import tempfile
import unittest
from unittest import mock

import numpy as np

from pydbn import RBM, DeepBeliefNetwork, FineTuner
from pydbn.core import ConfigurationError, HistoryWatcher
from pydbn.models.boltzmann import label_argmax


def labelled_data(repeat=4):
    patterns = np.array([
        [1, 1, 1, 0, 0, 0],
        [0, 0, 0, 1, 1, 1],
        [1, 0, 1, 0, 1, 0],
    ], dtype=np.float64)
    return np.tile(patterns, (repeat, 1)), np.tile([0, 1, 2], repeat)


class LabelArgmaxTest(unittest.TestCase):

    def test_ties_resolve_to_the_lowest_label(self):
        self.assertEqual(label_argmax([0.7, 0.3, 0.2, 0.9, 0.9], 3), 1)

    def test_only_label_units_are_scanned(self):
        self.assertEqual(label_argmax([5., 5., 0.1, 0.3, 0.2], 3), 1)

    def test_no_positive_value(self):
        self.assertEqual(label_argmax([1., 0., 0., 0.], 3), 0)


class DeepBeliefNetworkConstructionTest(unittest.TestCase):

    def test_layers_from_dicts(self):
        dbn = DeepBeliefNetwork(
            [{'num_visible': 6, 'num_hidden': 4},
             {'num_visible': 4, 'num_hidden': 3}], watcher='silent')

        self.assertEqual(len(dbn), 2)
        self.assertEqual(dbn.num_hidden(0), 4)
        self.assertEqual(dbn.layers[1].name, 'dbn-rbm-2')

    def test_from_layer_sizes(self):
        dbn = DeepBeliefNetwork.from_layer_sizes(
            [6, 4, 3], num_labels=2, batch_size=[5, 10], learning_rate=0.05,
            watcher='silent')

        self.assertEqual(dbn.num_visible(0), 6)
        self.assertEqual(dbn.num_visible(1), 6)
        self.assertEqual(dbn.num_hidden(1), 3)
        self.assertEqual([rbm.batch_size for rbm in dbn.layers], [5, 10])
        self.assertEqual([rbm.learning_rate for rbm in dbn.layers],
                         [0.05, 0.05])

    def test_rejects_empty_networks(self):
        with self.assertRaises(ConfigurationError):
            DeepBeliefNetwork([])
        with self.assertRaises(ConfigurationError):
            DeepBeliefNetwork.from_layer_sizes([6])


class PretrainingTest(unittest.TestCase):

    def setUp(self):
        self.data, self.labels = labelled_data()

    def test_pretrain(self):
        watcher = HistoryWatcher()
        dbn = DeepBeliefNetwork([RBM(6, 4, seed=0), RBM(4, 3, seed=1)],
                                watcher=watcher, seed=0)

        errors = dbn.pretrain(self.data, 3)

        self.assertEqual(len(errors), 2)
        self.assertEqual(len(watcher.errors(layer=0)), 3)
        self.assertEqual(watcher.errors(layer=1)[-1], errors[1])
        self.assertEqual(watcher.begun, 2)
        self.assertEqual(dbn.transform(self.data).shape, (12, 3))

    def test_layers_must_chain(self):
        dbn = DeepBeliefNetwork([RBM(6, 4), RBM(5, 3)], watcher='silent')

        with self.assertRaises(ConfigurationError):
            dbn.pretrain(self.data, 1)

    def test_no_room_for_the_labels(self):
        first = RBM(6, 4, seed=0)
        W = first.W.copy()
        dbn = DeepBeliefNetwork([first, RBM(5, 3)], watcher='silent')

        with self.assertRaises(ConfigurationError) as cm:
            dbn.pretrain_with_labels(self.data, self.labels, 3, 1)

        self.assertIn('no room for the labels', str(cm.exception))
        np.testing.assert_array_equal(first.W, W)

    def test_labels_need_two_layers(self):
        dbn = DeepBeliefNetwork([RBM(6, 4)], watcher='silent')

        with self.assertRaises(ConfigurationError):
            dbn.pretrain_with_labels(self.data, self.labels, 3, 1)

    def test_one_label_per_sample(self):
        dbn = DeepBeliefNetwork([RBM(6, 4), RBM(7, 3)], watcher='silent')

        with self.assertRaises(ConfigurationError) as cm:
            dbn.pretrain_with_labels(self.data, self.labels[:5], 3, 1)

        self.assertIn('same number of values than labels', str(cm.exception))

    def test_labels_must_be_integers(self):
        first = RBM(6, 4, seed=0)
        W = first.W.copy()
        dbn = DeepBeliefNetwork([first, RBM(7, 3)], watcher='silent')

        with self.assertRaises(ConfigurationError):
            dbn.pretrain_with_labels(self.data[:3], [0.7, 1.9, 2.2], 3, 1)
        with self.assertRaises(ConfigurationError):
            dbn.pretrain_input(1, self.data[:3], [0.7, 1.9, 2.2], 3)

        np.testing.assert_array_equal(first.W, W)

    def test_label_injection(self):
        dbn = DeepBeliefNetwork([RBM(6, 3, seed=0), RBM(6, 5, seed=1)],
                                watcher='silent')

        top = dbn.pretrain_input(1, self.data[:3], [0, 1, 2], 3)

        self.assertEqual(top.shape, (3, 6))
        np.testing.assert_array_equal(top[:, 3:], np.eye(3))
        np.testing.assert_allclose(top[:, :3],
                                   dbn.layers[0].transform(self.data[:3]))

    def test_pretrain_with_labels(self):
        dbn = DeepBeliefNetwork([RBM(6, 4, seed=0), RBM(7, 8, seed=1)],
                                watcher='silent', seed=0)

        errors = dbn.pretrain_with_labels(self.data, self.labels, 3, 5)

        self.assertEqual(len(errors), 2)
        self.assertEqual(dbn.num_labels, 3)
        self.assertEqual(dbn.transform(self.data).shape, (12, 4))


class PredictionTest(unittest.TestCase):

    def setUp(self):
        self.data, self.labels = labelled_data()
        self.dbn = DeepBeliefNetwork(
            [RBM(6, 5, batch_size=3, seed=0), RBM(8, 10, batch_size=3, seed=1)],
            watcher='silent', seed=0)
        self.dbn.fit(self.data, self.labels, max_epochs=10)

    def test_predict(self):
        predictions = self.dbn.predict(self.data)

        self.assertEqual(predictions.shape, (12,))
        self.assertEqual(predictions.dtype, np.int64)

    def test_activate_layers(self):
        output = self.dbn.activate_layers(self.data[0], 3)

        self.assertEqual(output.shape, (8,))
        self.assertTrue(np.all((output >= 0.) & (output <= 1.)))

    def test_predict_label_scans_the_label_units(self):
        output = np.array([[0.5, 0.5, 0.5, 0.5, 0.5, 0.2, 0.9, 0.9]])

        with mock.patch.object(self.dbn, '_reconstruct_top',
                               return_value=output):
            self.assertEqual(self.dbn.predict_label(self.data[0], 3), 1)

    def test_label_units_start_at_placeholder(self):
        top = self.dbn._propagate(self.data[:1], 3)

        np.testing.assert_allclose(top[0, 5:], [0.1, 0.1, 0.1])

    def test_deep_activate_layers(self):
        for resample in (False, True):
            output = self.dbn.deep_activate_layers(
                self.data[1], 3, 2, resample_visible=resample)
            self.assertEqual(output.shape, (8,))

    def test_prediction_needs_labels(self):
        with self.assertRaises(ConfigurationError):
            self.dbn.predict_label(self.data[0], 0)
        with self.assertRaises(ConfigurationError):
            self.dbn.deep_predict_label(self.data[0], 4, 2)


class PredictionAccuracyTest(unittest.TestCase):
    """Labels of a separable set are recovered better than chance (1/3)."""

    def setUp(self):
        self.data, self.labels = labelled_data()
        self.dbn = DeepBeliefNetwork(
            [RBM(6, 8, seed=0), RBM(11, 20, seed=1)], watcher='silent',
            seed=0)
        self.dbn.fit(self.data, self.labels, max_epochs=50)

    def test_predict_beats_chance(self):
        self.assertGreater(self.dbn.score(self.data, self.labels), 0.5)

    def test_deep_predict_beats_chance(self):
        for resample in (False, True):
            predictions = np.array([
                self.dbn.deep_predict_label(item, 3, 5,
                                            resample_visible=resample)
                for item in self.data])

            self.assertGreater(np.mean(predictions == self.labels), 0.5,
                               msg='resample_visible=%s' % resample)

    def test_deep_activate_runs_every_sampling_step(self):
        top = self.dbn.layers[-1]

        for steps in (0, 1, 4):
            with mock.patch.object(top, 'activate_hidden',
                                   wraps=top.activate_hidden) as hidden:
                self.dbn.deep_activate_layers(self.data[0], 3, steps)

            self.assertEqual(hidden.call_count, steps + 1)


class FineTuningTest(unittest.TestCase):

    def setUp(self):
        self.data, self.labels = labelled_data(repeat=3)
        self.dbn = DeepBeliefNetwork([RBM(6, 4), RBM(7, 3)], watcher='silent')

    def test_default_fine_tuner_is_not_implemented(self):
        with self.assertRaises(NotImplementedError):
            self.dbn.fine_tune(self.data, self.labels, 1)
        with self.assertRaises(NotImplementedError):
            FineTuner().gradient(self.dbn, None)

    def test_custom_fine_tuner(self):
        class ConstantCost(FineTuner):

            def __init__(self):
                self.contexts = []

            def minimize(self, dbn, context):
                self.contexts.append(context)
                return float(context.epoch + 1)

        tuner = ConstantCost()
        costs = self.dbn.fine_tune(self.data, self.labels, 2, batch_size=4,
                                   optimizer=tuner, max_iterations=5)

        self.assertEqual(costs, [1., 2.])
        self.assertEqual(len(tuner.contexts), 6)
        self.assertEqual(tuner.contexts[2].inputs.shape, (1, 6))
        self.assertEqual(tuner.contexts[0].max_iterations, 5)
        self.assertEqual(tuner.contexts[0].start_layer, 0)

    def test_fine_tune_checks_labels(self):
        with self.assertRaises(ConfigurationError):
            self.dbn.fine_tune(self.data, self.labels[:3], 1,
                               optimizer=FineTuner())


class PersistenceTest(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir)

    def test_json_round_trip(self):
        data, labels = labelled_data()
        dbn = DeepBeliefNetwork([RBM(6, 4, seed=0), RBM(7, 5, seed=1)],
                                watcher='silent', seed=0)
        dbn.pretrain_with_labels(data, labels, 3, 2)
        path = dbn.save_configuration(os.path.join(self.tmp_dir, 'dbn.json'))

        restored = DeepBeliefNetwork.from_configuration(path,
                                                        watcher='silent')

        self.assertEqual(restored.num_labels, 3)
        for rbm, other in zip(dbn.layers, restored.layers):
            np.testing.assert_allclose(rbm.W, other.W)
        np.testing.assert_allclose(restored.transform(data),
                                   dbn.transform(data))

        with self.assertRaises(ConfigurationError):
            DeepBeliefNetwork([RBM(6, 4)], watcher='silent').load_configuration(
                path)


if __name__ == '__main__':
    unittest.main()
