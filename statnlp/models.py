# Models for word alignment.
#
# Notation: i = src_index, I = src_length, j = trg_index, J = trg_length.
#
# (i) TranslationModel models t(trg | src).
# (ii) UniformPriorModel and DistortionModel model the prior d(i | j, I, J).
#
# Each model stores parameters (probabilities) and statistics (counts) and has:
# (i) A method to access a single probability: get_xxx_prob(...).
# (ii) A method to get all probabilities for a sentence pair as a numpy array:
# get_parameters_for_sentence_pair(...).
# (iii) A method to accumulate 'fractional' counts: collect_statistics(...).
# (iv) A method to recompute parameters: recompute_parameters(...).

import numpy as np

from statnlp.counters import CounterMap


class TranslationModel:
    "Models conditional distribution over trg words given a src word."

    def __init__(self, bitext, initial_side='trg'):
        """
        bitext: list of (src_tokens, trg_tokens).
        Every co-occurring pair starts at 1 / (1 + J) of its sentence, or at
        1 / (1 + I) when initial_side is 'src'.
        """
        if initial_side not in ('trg', 'src'):
            raise ValueError('Unknown initial side: %r' % (initial_side, ))
        self._trg_given_src_probs = CounterMap()
        self._src_trg_counts = CounterMap()
        for src_tokens, trg_tokens in bitext:
            initial_prob = 1.0 / (1 + len(trg_tokens if initial_side == 'trg' else src_tokens))
            for src_token in src_tokens:
                for trg_token in trg_tokens:
                    self._trg_given_src_probs.set_count(src_token, trg_token, initial_prob)

    def get_conditional_prob(self, src_token, trg_token):
        "Return the conditional probability of trg_token given src_token."
        return self._trg_given_src_probs.get_count(src_token, trg_token)

    def get_parameters_for_sentence_pair(self, src_tokens, trg_tokens):
        "Return numpy array with t[i][j] = p(f_j|e_i)."
        return np.array([[
                self.get_conditional_prob(src_token, trg_token)
                for trg_token in trg_tokens
            ] for src_token in src_tokens
        ], dtype=float).reshape(len(src_tokens), len(trg_tokens))

    def collect_statistics(self, src_tokens, trg_tokens, posterior_matrix):
        "Accumulate counts of translations from posterior_matrix[j][i] = p(a_j=i|e, f)"
        for i, src_token in enumerate(src_tokens):
            for j, trg_token in enumerate(trg_tokens):
                self._src_trg_counts.increment_count(src_token, trg_token, posterior_matrix[j][i])

    def recompute_parameters(self):
        "Reestimate parameters and reset counters."
        self._trg_given_src_probs = self._src_trg_counts.conditional_normalize()
        self._src_trg_counts = CounterMap()


class UniformPriorModel:
    "IBM Model 1: every alignment is equally likely a priori."

    def __init__(self, bitext):
        pass

    def get_prior_prob(self, src_index, trg_index, src_length, trg_length):
        return 1.0

    def get_parameters_for_sentence_pair(self, src_length, trg_length):
        return np.ones((src_length, trg_length))

    def collect_statistics(self, src_length, trg_length, posterior_matrix):
        pass

    def recompute_parameters(self):
        pass


class DistortionModel:
    """
    IBM Model 2 position table: d(i | j, I, J) keyed by (I, J, j).
    Every entry starts at 1 / (1 + I).
    """

    def __init__(self, bitext):
        self._probs = CounterMap()
        self._counts = CounterMap()
        for src_tokens, trg_tokens in bitext:
            src_length, trg_length = len(src_tokens), len(trg_tokens)
            initial_prob = 1.0 / (1 + src_length)
            for j in range(trg_length):
                for i in range(src_length):
                    self._probs.set_count(self._get_key(j, src_length, trg_length), i, initial_prob)

    @staticmethod
    def _get_key(trg_index, src_length, trg_length):
        return (src_length, trg_length, trg_index)

    def get_prior_prob(self, src_index, trg_index, src_length, trg_length):
        "Returns a prior probability based on src and trg indices. Unseen lengths get 1 / (1 + I)."
        key = self._get_key(trg_index, src_length, trg_length)
        if key not in self._probs:
            return 1.0 / (1 + src_length)
        return self._probs.get_count(key, src_index)

    def get_parameters_for_sentence_pair(self, src_length, trg_length):
        "Return a numpy array with all prior p[i][j] = p(i|j, I, J)."
        return np.array([[
                self.get_prior_prob(i, j, src_length, trg_length)
                for j in range(trg_length)
            ] for i in range(src_length)
        ], dtype=float).reshape(src_length, trg_length)

    def collect_statistics(self, src_length, trg_length, posterior_matrix):
        "Accumulate counts of alignment events from posterior_matrix[j][i] = p(a_j=i|e, f)"
        for i in range(src_length):
            for j in range(trg_length):
                self._counts.increment_count(self._get_key(j, src_length, trg_length), i, posterior_matrix[j][i])

    def recompute_parameters(self):
        "Reestimate parameters and reset counters."
        self._probs = self._counts.conditional_normalize()
        self._counts = CounterMap()
