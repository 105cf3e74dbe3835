#!/usr/bin/env python3

import logging
from collections import namedtuple

import numpy as np

from statnlp.counters import SparseCounter

logger = logging.getLogger(__name__)

###############################################################################
#                                                                             #
#                                INPUT DATA                                   #
#                                                                             #
###############################################################################


# label: hashable
# input: anything the feature extractor understands
LabeledInstance = namedtuple('LabeledInstance', ['label', 'input'])


def bag_of_features(input):
    "Default feature extractor: each string of the input is a feature, counted."
    features = SparseCounter()
    for feature in input:
        features.increment_count(feature)
    return features


class Indexer:
    "Bijection between objects and 0 .. n-1, in order of addition."

    def __init__(self):
        self._objects = []
        self._indices = {}

    def add(self, obj):
        if obj not in self._indices:
            self._indices[obj] = len(self._objects)
            self._objects.append(obj)
        return self._indices[obj]

    def index_of(self, obj):
        return self._indices.get(obj, -1)

    def get(self, index):
        return self._objects[index]

    def __contains__(self, obj):
        return obj in self._indices

    def __len__(self):
        return len(self._objects)

    def __iter__(self):
        return iter(self._objects)


Encoding = namedtuple('Encoding', ['feature_indexer', 'label_indexer'])

# feature_indices: numpy array of int
# feature_counts: numpy array of float, same length
# label_index: int, -1 for an unlabeled datum
EncodedDatum = namedtuple('EncodedDatum', ['feature_indices', 'feature_counts', 'label_index'])


def build_encoding(labeled_instances, feature_extractor):
    feature_indexer = Indexer()
    label_indexer = Indexer()
    for labeled_instance in labeled_instances:
        label_indexer.add(labeled_instance.label)
        for feature in feature_extractor(labeled_instance.input):
            feature_indexer.add(feature)
    return Encoding(feature_indexer=feature_indexer, label_indexer=label_indexer)


def encode_datum(features, encoding, label=None):
    "Features unknown to the encoding are dropped."
    feature_indices = []
    feature_counts = []
    for feature, count in features.items():
        index = encoding.feature_indexer.index_of(feature)
        if index >= 0:
            feature_indices.append(index)
            feature_counts.append(count)
    return EncodedDatum(
        feature_indices=np.array(feature_indices, dtype=int),
        feature_counts=np.array(feature_counts, dtype=float),
        label_index=encoding.label_indexer.index_of(label) if label is not None else -1
    )


def encode_data(labeled_instances, encoding, feature_extractor):
    return [
        encode_datum(feature_extractor(labeled_instance.input), encoding, labeled_instance.label)
        for labeled_instance in labeled_instances
    ]


###############################################################################
#                                                                             #
#                                  MODEL                                      #
#                                                                             #
###############################################################################


def get_log_probabilities(datum, weights):
    """
    weights: numpy array [feature][label].
    Return log P(label | datum) for every label.
    """
    scores = datum.feature_counts.dot(weights[datum.feature_indices])
    max_score = np.max(scores)
    return scores - max_score - np.log(np.sum(np.exp(scores - max_score)))


class MaximumEntropyClassifier:
    def __init__(self, weights, encoding, feature_extractor=bag_of_features):
        self.weights = weights
        self.encoding = encoding
        self.feature_extractor = feature_extractor

    def get_probabilities(self, input):
        "Return a SparseCounter label -> probability."
        datum = encode_datum(self.feature_extractor(input), self.encoding)
        log_probabilities = get_log_probabilities(datum, self.weights)
        probabilities = SparseCounter()
        for label_index, log_probability in enumerate(log_probabilities):
            probabilities.set_count(self.encoding.label_indexer.get(label_index), float(np.exp(log_probability)))
        return probabilities

    def get_label(self, input):
        return self.get_probabilities(input).arg_max()


###############################################################################
#                                                                             #
#                            OPTIMIZATION TASK                                #
#                                                                             #
###############################################################################


class ObjectiveFunction:
    """
    Negative conditional log likelihood of the data plus a Gaussian penalty:

        -sum_d log P(label_d | d) + |w|^2 / (2 sigma^2)

    Its gradient is expected feature counts minus empirical feature counts
    plus w / sigma^2. Sigma 0 disables the penalty. Weights are flat vectors
    of num_features * num_labels entries.
    """

    def __init__(self, encoding, data, sigma):
        self.num_features = len(encoding.feature_indexer)
        self.num_labels = len(encoding.label_indexer)
        self.data = data
        self.sigma = sigma
        self._last_x = None
        self._last_value = None
        self._last_gradient = None

    def dimension(self):
        return self.num_features * self.num_labels

    def value_and_gradient(self, x):
        if self._last_x is not None and np.array_equal(x, self._last_x):
            return self._last_value, self._last_gradient

        weights = x.reshape(self.num_features, self.num_labels)
        value = 0.0
        gradient = np.zeros((self.num_features, self.num_labels))
        for datum in self.data:
            log_probabilities = get_log_probabilities(datum, weights)
            value -= log_probabilities[datum.label_index]
            # expected counts
            gradient[datum.feature_indices] += np.outer(datum.feature_counts, np.exp(log_probabilities))
            # empirical counts
            gradient[datum.feature_indices, datum.label_index] -= datum.feature_counts
        gradient = gradient.reshape(-1)
        if self.sigma:
            value += np.sum(x ** 2) / (2 * self.sigma ** 2)
            gradient += x / self.sigma ** 2

        self._last_x = np.copy(x)
        self._last_value = value
        self._last_gradient = gradient
        return value, gradient

    def value(self, x):
        return self.value_and_gradient(x)[0]

    def gradient(self, x):
        return self.value_and_gradient(x)[1]


MinimizerParams = namedtuple('MinimizerParams', [
    'iterations',
    'learning_rate'
])

DEFAULT_MINIMIZER_PARAMS = MinimizerParams(iterations=100, learning_rate=0.1)


def gradient_descent(objective, initial_weights, minimizer_params=DEFAULT_MINIMIZER_PARAMS):
    """
    Plain batch gradient descent. Any callable with the signature
    minimize(objective, initial_weights) -> weights can replace it.
    """
    x = np.array(initial_weights, dtype=float)
    for iteration in range(minimizer_params.iterations):
        value, gradient = objective.value_and_gradient(x)
        logger.debug('iteration %d: objective %1.5f', iteration + 1, value)
        x = x - minimizer_params.learning_rate * gradient
    logger.info('gradient descent: objective %1.5f after %d iterations',
                objective.value(x), minimizer_params.iterations)
    return x


###############################################################################
#                                                                             #
#                                 TRAINERS                                    #
#                                                                             #
###############################################################################


ClassifierParams = namedtuple('ClassifierParams', [
    'sigma',
    'iterations'
])

DEFAULT_CLASSIFIER_PARAMS = ClassifierParams(sigma=1.0, iterations=100)


class MaximumEntropyTrainer:
    def __init__(self, classifier_params=DEFAULT_CLASSIFIER_PARAMS, feature_extractor=bag_of_features,
                 minimize=None):
        self.classifier_params = classifier_params
        self.feature_extractor = feature_extractor
        self.minimize = minimize

    def train(self, labeled_instances):
        encoding = build_encoding(labeled_instances, self.feature_extractor)
        data = encode_data(labeled_instances, encoding, self.feature_extractor)
        objective = ObjectiveFunction(encoding, data, self.classifier_params.sigma)
        initial_weights = np.zeros(objective.dimension())
        if self.minimize is None:
            minimizer_params = DEFAULT_MINIMIZER_PARAMS._replace(iterations=self.classifier_params.iterations)
            weights = gradient_descent(objective, initial_weights, minimizer_params)
        else:
            weights = self.minimize(objective, initial_weights)
        weights = np.asarray(weights).reshape(len(encoding.feature_indexer), len(encoding.label_indexer))
        return MaximumEntropyClassifier(weights, encoding, self.feature_extractor)


class PerceptronTrainer:
    """
    Averaged multiclass perceptron. On a mistake the gold label's weights gain
    the datum's feature counts and the predicted label's weights lose them.
    The returned weights are the average over every datum visited.
    """

    def __init__(self, iterations=DEFAULT_CLASSIFIER_PARAMS.iterations, feature_extractor=bag_of_features):
        self.iterations = iterations
        self.feature_extractor = feature_extractor

    def train(self, labeled_instances):
        encoding = build_encoding(labeled_instances, self.feature_extractor)
        data = encode_data(labeled_instances, encoding, self.feature_extractor)
        weights = np.zeros((len(encoding.feature_indexer), len(encoding.label_indexer)))
        weights_sum = np.zeros_like(weights)
        num_visited = 0
        for iteration in range(self.iterations):
            num_mistakes = 0
            for datum in data:
                scores = datum.feature_counts.dot(weights[datum.feature_indices])
                prediction = int(np.argmax(scores))
                if prediction != datum.label_index:
                    num_mistakes += 1
                    weights[datum.feature_indices, datum.label_index] += datum.feature_counts
                    weights[datum.feature_indices, prediction] -= datum.feature_counts
                weights_sum += weights
                num_visited += 1
            logger.info('perceptron iteration %d: %d mistakes', iteration + 1, num_mistakes)
        if num_visited:
            weights = weights_sum / num_visited
        return MaximumEntropyClassifier(weights, encoding, self.feature_extractor)
