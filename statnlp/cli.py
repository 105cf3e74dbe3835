#!/usr/bin/env python3

import argparse
import logging
import os
import pprint
import sys

from statnlp import alignment, corpus, hmm
from statnlp.classifier import (
    ClassifierParams, LabeledInstance, MaximumEntropyTrainer, MinimizerParams, PerceptronTrainer,
    gradient_descent
)
from statnlp.em import EMParams
from statnlp.embeddings import EmbeddingParams, train_embeddings, write_embeddings
from statnlp.tagger import (
    HMMTrigramScorer, MostFrequentTagScorer, POSTagger, TaggedSentence, contains_tag,
    evaluate_tagger, extract_vocabulary
)
from statnlp.trellis import GreedyDecoder, ViterbiDecoder

logger = logging.getLogger(__name__)


# - Classify  - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - -


def CLASSIFY_add_cmdargs(subp):
    p = subp.add_parser('classify', help='train a classifier on a toy dataset')

    p.add_argument('--trainer',
        help='training algorithm', choices=['maxent', 'perceptron'], default='maxent')
    p.add_argument('--sigma',
        help='Gaussian penalty width (0 disables the penalty)', type=float, default=1.0)
    p.add_argument('--iterations',
        help='number of training iterations', type=int, default=100)
    p.add_argument('--learning-rate',
        help='gradient descent learning rate', type=float, default=0.1)

    return 'classify'


TOY_TRAINING_DATA = [
    LabeledInstance(label='0', input=['0', '1', '2']),
    LabeledInstance(label='1', input=['0', '1', '10']),
    LabeledInstance(label='0', input=['1', '20']),
]

TOY_TEST_INPUT = ['1', '2']


def CLASSIFY(cmdargs):
    if cmdargs.trainer == 'perceptron':
        trainer = PerceptronTrainer(iterations=cmdargs.iterations)
    else:
        minimizer_params = MinimizerParams(iterations=cmdargs.iterations, learning_rate=cmdargs.learning_rate)
        trainer = MaximumEntropyTrainer(
            ClassifierParams(sigma=cmdargs.sigma, iterations=cmdargs.iterations),
            minimize=lambda objective, initial_weights: gradient_descent(objective, initial_weights, minimizer_params)
        )
    classifier = trainer.train(TOY_TRAINING_DATA)
    print('Probabilities on test instance:', pprint.pformat(dict(classifier.get_probabilities(TOY_TEST_INPUT))))
    print('Prediction:', classifier.get_label(TOY_TEST_INPUT))


# - Tag - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - -


def TAG_add_cmdargs(subp):
    p = subp.add_parser('tag', help='train a trigram tagger and tag a dataset')

    p.add_argument('--dataset',
        help='train dataset', default='data/en-wsj-train.pos')
    p.add_argument('--dataset-dev',
        help='validation dataset', default=None)
    p.add_argument('--dataset-test',
        help='test dataset (evaluated if tagged, tagged to stdout otherwise)', default='data/en-wsj-test.pos')
    p.add_argument('--scorer',
        help='local trigram scorer', choices=['most-frequent', 'hmm'], default='hmm')
    p.add_argument('--restrict-trigrams',
        help='forbid unseen tag trigrams (most-frequent scorer)', action='store_true')
    p.add_argument('--decoder',
        help='trellis decoder', choices=['viterbi', 'greedy'], default='viterbi')
    p.add_argument('--fallback-tag',
        help='use the greedy path when the Viterbi path contains this tag', default=None)

    return 'tag'


def TAG(cmdargs):
    train_sentences = corpus.read_tagged_sentences(cmdargs.dataset)
    test_sentences = corpus.read_tagged_sentences(cmdargs.dataset_test)

    if cmdargs.scorer == 'most-frequent':
        scorer = MostFrequentTagScorer(restrict_trigrams=cmdargs.restrict_trigrams)
    else:
        scorer = HMMTrigramScorer()
    if cmdargs.decoder == 'greedy':
        decoder = GreedyDecoder()
    else:
        suspicious_path = contains_tag(cmdargs.fallback_tag) if cmdargs.fallback_tag else None
        decoder = ViterbiDecoder(suspicious_path=suspicious_path)

    pos_tagger = POSTagger(scorer, decoder)
    pos_tagger.train(train_sentences)
    if cmdargs.dataset_dev is not None:
        pos_tagger.validate(corpus.read_tagged_sentences(cmdargs.dataset_dev))

    if all(sentence.tags is not None for sentence in test_sentences):
        q = pprint.pformat(evaluate_tagger(pos_tagger, test_sentences, extract_vocabulary(train_sentences)))
        print(q)
    else:
        for sentence in test_sentences:
            corpus.write_tagged_sentence(TaggedSentence(sentence.words, pos_tagger.tag(sentence.words)), sys.stdout)


# - Align - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - -


ALIGNERS = {
    'baseline': lambda em_params: alignment.BaselineWordAligner(),
    'dice': lambda em_params: alignment.DiceWordAligner(),
    'ibm1': alignment.IBM1WordAligner,
    'ibm2': alignment.IBM2WordAligner,
    'hmm': hmm.HMMWordAligner,
    'hmmibm2': hmm.HMMIBM2WordAligner,
}


def ALIGN_add_cmdargs(subp):
    p = subp.add_parser('align', help='train a word aligner and evaluate it')

    p.add_argument('--path',
        help='directory with training and test sentence pairs', default='data')
    p.add_argument('--model',
        help='word alignment model', choices=sorted(ALIGNERS), default='baseline')
    p.add_argument('--iterations',
        help='EM iterations', type=int, default=5)
    p.add_argument('--max-train',
        help='maximum number of training sentence pairs', type=int, default=None)
    p.add_argument('--processes',
        help='decode in this many processes', type=int, default=None)
    p.add_argument('--output',
        help='write proposed alignments here', default=None)

    return 'align'


def ALIGN(cmdargs):
    test_pairs = corpus.read_sentence_pairs(os.path.join(cmdargs.path, 'test'))
    test_alignments = corpus.read_alignments(os.path.join(cmdargs.path, 'test.wa'))
    training_pairs = corpus.read_sentence_pairs(os.path.join(cmdargs.path, 'training'), cmdargs.max_train)

    aligner = ALIGNERS[cmdargs.model](EMParams(iterations=cmdargs.iterations))
    # Test sentences take part in unsupervised training.
    aligner.train(training_pairs + test_pairs)

    proposed_alignments = alignment.align_corpus(aligner, test_pairs, cmdargs.processes)
    q = pprint.pformat(alignment.evaluate_alignments(test_pairs, proposed_alignments, test_alignments))
    print(q)
    if cmdargs.output is not None:
        corpus.write_alignments(test_pairs, proposed_alignments, cmdargs.output)


# - Embed - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - -


def EMBED_add_cmdargs(subp):
    p = subp.add_parser('embed', help='train CBOW word embeddings')

    p.add_argument('--dataset',
        help='one whitespace tokenized sentence per line', required=True)
    p.add_argument('--output',
        help='embeddings file (word2vec text format)', default='embeddings.txt')
    p.add_argument('--dimension',
        help='embedding dimension', type=int, default=50)
    p.add_argument('--window',
        help='context window size', type=int, default=5)
    p.add_argument('--alpha',
        help='learning rate', type=float, default=0.025)
    p.add_argument('--negative',
        help='negative samples per word', type=int, default=5)
    p.add_argument('--iterations',
        help='passes over the dataset', type=int, default=1)
    p.add_argument('--seed',
        help='random seed', type=int, default=1)

    return 'embed'


def EMBED(cmdargs):
    embedding_params = EmbeddingParams(
        dimension=cmdargs.dimension,
        window=cmdargs.window,
        alpha=cmdargs.alpha,
        negative_samples=cmdargs.negative,
        iterations=cmdargs.iterations,
        seed=cmdargs.seed
    )
    embeddings = train_embeddings(corpus.read_sentences(cmdargs.dataset), embedding_params)
    write_embeddings(embeddings, cmdargs.output)
    logger.info('Wrote %d embeddings to %s', len(embeddings), cmdargs.output)


# - Main  - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - - -


def main(argv=None):
    # Create parser.
    p = argparse.ArgumentParser('statnlp')
    p.add_argument('-v', '--verbose',
        help='debug logging', action='store_true')
    subp = p.add_subparsers(dest='cmd')

    # Add subcommands.
    classify = CLASSIFY_add_cmdargs(subp)
    tag = TAG_add_cmdargs(subp)
    align = ALIGN_add_cmdargs(subp)
    embed = EMBED_add_cmdargs(subp)

    # Parse.
    cmdargs = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if cmdargs.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(message)s'
    )

    # Run.
    if cmdargs.cmd == classify:
        CLASSIFY(cmdargs)
    elif cmdargs.cmd == tag:
        TAG(cmdargs)
    elif cmdargs.cmd == align:
        ALIGN(cmdargs)
    elif cmdargs.cmd == embed:
        EMBED(cmdargs)
    else:
        p.error('No command')


if __name__ == '__main__':
    main()
