import logging
from collections import namedtuple

import numpy as np

from statnlp.errors import CorpusError
from statnlp.models import DistortionModel, TranslationModel, UniformPriorModel

logger = logging.getLogger(__name__)


EMParams = namedtuple('EMParams', ['iterations'])

DEFAULT_EM_PARAMS = EMParams(iterations=5)

# One direction of a bidirectional model: the bitext is a list of
# (src_tokens, trg_tokens) and both models condition on src.
Direction = namedtuple('Direction', ['name', 'bitext', 'prior_model', 'translation_model'])


def make_bitext(src_corpus, trg_corpus):
    if len(src_corpus) != len(trg_corpus):
        raise CorpusError('Corpora should be same size: %d != %d' % (len(src_corpus), len(trg_corpus)))
    return list(zip(src_corpus, trg_corpus))


def initialize_direction(name, bitext, positional, initial_side='trg'):
    prior_model_cls = DistortionModel if positional else UniformPriorModel
    return Direction(
        name=name,
        bitext=bitext,
        prior_model=prior_model_cls(bitext),
        translation_model=TranslationModel(bitext, initial_side)
    )


def get_alignment_posteriors(src_tokens, trg_tokens, prior_model, translation_model):
    """
    Compute the posterior alignment probability p(a_j=i | f, e) for each
    target token f_j. Columns with no mass stay at zero.
    """
    alignment_posteriors = np.zeros((len(trg_tokens), len(src_tokens)))
    if not src_tokens or not trg_tokens:
        return alignment_posteriors, 0.0
    prior_prob = prior_model.get_parameters_for_sentence_pair(len(src_tokens), len(trg_tokens))
    translation_prob = translation_model.get_parameters_for_sentence_pair(src_tokens, trg_tokens)
    alignment_posteriors += (prior_prob * translation_prob).T

    normalizers = np.sum(alignment_posteriors, axis=1)
    nonzero = normalizers > 0
    alignment_posteriors[nonzero] /= normalizers[nonzero][:, np.newaxis]
    log_likelihood = float(np.sum(np.log(normalizers[nonzero])))
    return alignment_posteriors, log_likelihood


def collect_expected_statistics(bitext, prior_model, translation_model):
    "E-step: infer posterior distribution over each sentence pair and collect statistics."
    corpus_log_likelihood = 0.0
    for src_tokens, trg_tokens in bitext:
        alignment_posteriors, log_likelihood = get_alignment_posteriors(
            src_tokens, trg_tokens, prior_model, translation_model
        )
        prior_model.collect_statistics(len(src_tokens), len(trg_tokens), alignment_posteriors)
        translation_model.collect_statistics(src_tokens, trg_tokens, alignment_posteriors)
        corpus_log_likelihood += log_likelihood
    return corpus_log_likelihood


def estimate_models(directions, em_params=DEFAULT_EM_PARAMS):
    """
    Run a fixed number of EM iterations for every direction. Directions are
    independent: each one only sees its own bitext and models.
    """
    for iteration in range(em_params.iterations):
        for direction in directions:
            # E-step
            corpus_log_likelihood = collect_expected_statistics(
                direction.bitext, direction.prior_model, direction.translation_model
            )
            # M-step
            direction.prior_model.recompute_parameters()
            direction.translation_model.recompute_parameters()
            logger.info('iteration %d, %s: corpus log likelihood: %1.3f',
                        iteration + 1, direction.name, corpus_log_likelihood)
    return directions
