#!/usr/bin/env python3

# Word embeddings: continuous bag of words trained with hierarchical softmax
# over a Huffman tree of the vocabulary plus negative sampling.

import heapq
import logging
from collections import namedtuple

import numpy as np

from statnlp.counters import SparseCounter

logger = logging.getLogger(__name__)


EmbeddingParams = namedtuple('EmbeddingParams', [
    'dimension',
    'window',
    'alpha',
    'negative_samples',
    'iterations',
    'seed'
])

DEFAULT_EMBEDDING_PARAMS = EmbeddingParams(
    dimension=50,
    window=5,
    alpha=0.025,
    negative_samples=5,
    iterations=1,
    seed=1
)

# index: row of the word in the input/negative weight matrices
# code: list of 0/1 from the root down to the word
# point: inner node index (row of the output weight matrix) for each code bit
HuffmanNode = namedtuple('HuffmanNode', ['index', 'count', 'code', 'point'])


def build_vocabulary(sentences):
    vocabulary = SparseCounter()
    for sentence in sentences:
        for word in sentence:
            vocabulary.increment_count(word)
    return vocabulary


def huffman_encode(vocabulary):
    """
    Return {word: HuffmanNode}. Words are indexed by decreasing count; the
    tree has len(vocabulary) - 1 inner nodes, numbered from 0.
    """
    words = sorted(vocabulary.keys(), key=lambda word: -vocabulary[word])
    num_words = len(words)
    parents = {}
    branches = {}
    heap = [(vocabulary[word], index, index) for index, word in enumerate(words)]
    heapq.heapify(heap)
    next_node = num_words
    while len(heap) > 1:
        left_count, _, left = heapq.heappop(heap)
        right_count, _, right = heapq.heappop(heap)
        parents[left], branches[left] = next_node, 0
        parents[right], branches[right] = next_node, 1
        heapq.heappush(heap, (left_count + right_count, next_node, next_node))
        next_node += 1

    nodes = {}
    for index, word in enumerate(words):
        code = []
        point = []
        node = index
        while node in parents:
            code.append(branches[node])
            point.append(parents[node] - num_words)
            node = parents[node]
        code.reverse()
        point.reverse()
        nodes[word] = HuffmanNode(index=index, count=vocabulary[word], code=code, point=point)
    return nodes


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-x))


class TrainingContext:
    "Everything a training run mutates."

    def __init__(self, huffman_nodes, params):
        vocabulary_size = len(huffman_nodes)
        self.params = params
        self.huffman_nodes = huffman_nodes
        self.rng = np.random.default_rng(params.seed)
        self.input_weights = self.rng.random((vocabulary_size, params.dimension)) / params.dimension
        self.output_weights = np.zeros((max(vocabulary_size - 1, 0), params.dimension))
        self.negative_weights = np.zeros((vocabulary_size, params.dimension))


def train_sentence(context, sentence):
    "One CBOW pass over a sentence."
    params = context.params
    indices = [context.huffman_nodes[word].index for word in sentence]
    for position, word in enumerate(sentence):
        huffman_node = context.huffman_nodes[word]
        shrink = int(context.rng.integers(params.window))
        context_indices = [
            indices[other]
            for other in range(position - params.window + shrink, position + params.window - shrink + 1)
            if other != position and 0 <= other < len(sentence)
        ]
        if not context_indices:
            continue
        hidden = np.mean(context.input_weights[context_indices], axis=0)
        hidden_error = np.zeros(params.dimension)

        # hierarchical softmax
        for bit, point in zip(huffman_node.code, huffman_node.point):
            output = context.output_weights[point]
            g = (1 - bit - sigmoid(hidden.dot(output))) * params.alpha
            hidden_error += g * output
            context.output_weights[point] += g * hidden

        # negative sampling
        targets = [(huffman_node.index, 1)]
        for _ in range(params.negative_samples):
            sample = int(context.rng.integers(len(context.huffman_nodes)))
            if sample != huffman_node.index:
                targets.append((sample, 0))
        for target, label in targets:
            output = context.negative_weights[target]
            g = (label - sigmoid(hidden.dot(output))) * params.alpha
            hidden_error += g * output
            context.negative_weights[target] += g * hidden

        for index in context_indices:
            context.input_weights[index] += hidden_error


def train_embeddings(sentences, params=DEFAULT_EMBEDDING_PARAMS):
    "Return {word: numpy vector of params.dimension}."
    if params.window < 1:
        raise ValueError('window must be positive, got %d' % params.window)
    vocabulary = build_vocabulary(sentences)
    context = TrainingContext(huffman_encode(vocabulary), params)
    logger.info('Training %d-dimensional embeddings for %d words', params.dimension, len(vocabulary))
    for iteration in range(params.iterations):
        for sentence in sentences:
            train_sentence(context, sentence)
        logger.info('iteration %d done', iteration + 1)
    return {
        word: np.copy(context.input_weights[node.index])
        for word, node in context.huffman_nodes.items()
    }


def write_embeddings(embeddings, path):
    "word2vec text format: a 'count dimension' header, then one word per line."
    dimension = len(next(iter(embeddings.values()))) if embeddings else 0
    with open(path, 'w') as file:
        file.write('%d %d\n' % (len(embeddings), dimension))
        for word, vector in embeddings.items():
            if len(vector) != dimension:
                raise ValueError('The embedding for %s is not %dD' % (word, dimension))
            file.write(word + ' ' + ' '.join('%f' % value for value in vector) + '\n')
