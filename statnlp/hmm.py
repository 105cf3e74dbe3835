# HMM word aligners: french positions are emitted left to right, each one by
# an english position reached by a jump from the english position of the
# previous french word. Decoded with the generic Viterbi decoder over raw
# probabilities.

from collections import namedtuple

from statnlp.alignment import Alignment, EMWordAligner, NULL_POSITION
from statnlp.counters import CounterMap
from statnlp.em import DEFAULT_EM_PARAMS
from statnlp.trellis import Trellis, ViterbiDecoder, PROBABILITY_SEMIRING


AlignmentState = namedtuple('AlignmentState', ['english_position', 'french_position'])


class JumpModel:
    """
    Fixed prior over the next english position given the previous one and the
    english length: weight(jj -> j) normalized over j, then raised to
    `exponent`.

    squared: (I - |j - jj|)^2, with (I - 2)^2 for staying put ((I - 1)^2 when
    I == 2) so that moving on is preferred.
    linear: I - |j - jj|.
    """

    def __init__(self, shape, exponent):
        if shape not in ('squared', 'linear'):
            raise ValueError('Unknown jump shape: %r' % (shape, ))
        self.shape = shape
        self.exponent = exponent
        self._probs = CounterMap()

    def _weight(self, previous_position, position, english_length):
        distance = abs(position - previous_position)
        if self.shape == 'linear':
            return float(english_length - distance)
        if distance == 0:
            penalty = 1 if english_length == 2 else 2
            return float((english_length - penalty) ** 2)
        return float((english_length - distance) ** 2)

    def _fill(self, english_length):
        for previous_position in range(english_length):
            key = (previous_position, english_length)
            for position in range(english_length):
                self._probs.set_count(key, position, self._weight(previous_position, position, english_length))
            total = self._probs.get_counter(key).total_count()
            for position in range(english_length):
                probability = self._probs.get_count(key, position) / total if total else 0.0
                self._probs.set_count(key, position, probability ** self.exponent)

    def get_jump_prob(self, previous_position, position, english_length):
        if (previous_position, english_length) not in self._probs:
            self._fill(english_length)
        return self._probs.get_count((previous_position, english_length), position)


class HMMAlignerBase(EMWordAligner):
    """
    Builds, per sentence pair, a trellis over AlignmentState(e, f):

        start -> (e, 0)          emission(e, 0)
        (ee, f-1) -> (e, f)      jump(ee -> e) * emission(e, f)
        (e, J-1) -> end          1

    French words never seen in training emit with probability 1. With
    neutral_zero_emission, a zero emission past the first french position
    also counts as 1, so a seen word that never co-occurred with any english
    word of the sentence does not cut every path.
    """
    jump_shape = None
    jump_exponent = None
    neutral_zero_emission = False

    def __init__(self, em_params=DEFAULT_EM_PARAMS):
        super().__init__(em_params)
        self.jump_model = JumpModel(self.jump_shape, self.jump_exponent)
        self.decoder = ViterbiDecoder(semiring=PROBABILITY_SEMIRING)
        self.french_vocabulary = set()

    def train(self, sentence_pairs):
        super().train(sentence_pairs)
        for sentence_pair in sentence_pairs:
            self.french_vocabulary.update(sentence_pair.french_words)

    def emission(self, sentence_pair, english_position, french_position):
        raise NotImplementedError()

    def _emission(self, sentence_pair, english_position, french_position):
        if sentence_pair.french_words[french_position] not in self.french_vocabulary:
            return 1.0
        emission = self.emission(sentence_pair, english_position, french_position)
        if emission == 0 and french_position > 0 and self.neutral_zero_emission:
            return 1.0
        return emission

    def build_trellis(self, sentence_pair):
        num_english_words = len(sentence_pair.english_words)
        num_french_words = len(sentence_pair.french_words)
        start_state = AlignmentState(NULL_POSITION, NULL_POSITION)
        end_state = AlignmentState(NULL_POSITION, num_french_words)
        trellis = Trellis(start_state, end_state)
        for english_position in range(num_english_words):
            trellis.set_transition_count(
                start_state,
                AlignmentState(english_position, 0),
                self._emission(sentence_pair, english_position, 0)
            )
        for french_position in range(1, num_french_words):
            for english_position in range(num_english_words):
                emission = self._emission(sentence_pair, english_position, french_position)
                state = AlignmentState(english_position, french_position)
                for previous_position in range(num_english_words):
                    jump = self.jump_model.get_jump_prob(previous_position, english_position, num_english_words)
                    trellis.set_transition_count(
                        AlignmentState(previous_position, french_position - 1), state, jump * emission
                    )
        for english_position in range(num_english_words):
            trellis.set_transition_count(
                AlignmentState(english_position, num_french_words - 1), end_state, PROBABILITY_SEMIRING.one
            )
        return trellis

    def align_sentence_pair(self, sentence_pair):
        alignment = Alignment()
        if not sentence_pair.english_words:
            for french_position in range(len(sentence_pair.french_words)):
                alignment.add_alignment(NULL_POSITION, french_position, True)
            return alignment
        if not sentence_pair.french_words:
            return alignment
        states = self.decoder.get_best_path(self.build_trellis(sentence_pair))
        for state in states[1:-1]:
            alignment.add_alignment(state.english_position, state.french_position, True)
        return alignment


class HMMWordAligner(HMMAlignerBase):
    "IBM-1 tables in both directions; emission = t(f | e) + t(e | f)."
    positional = False
    jump_shape = 'squared'
    jump_exponent = 1.5
    neutral_zero_emission = True

    def emission(self, sentence_pair, english_position, french_position):
        english_word = sentence_pair.english_words[english_position]
        french_word = sentence_pair.french_words[french_position]
        return (
            self.english_french.translation_model.get_conditional_prob(english_word, french_word) +
            self.french_english.translation_model.get_conditional_prob(french_word, english_word)
        )


class HMMIBM2WordAligner(HMMAlignerBase):
    "IBM-2 tables english->french only; emission = t(f | e) q(e | f, I, J)."
    positional = True
    bidirectional = False
    jump_shape = 'linear'
    jump_exponent = 0.1

    def emission(self, sentence_pair, english_position, french_position):
        english_word = sentence_pair.english_words[english_position]
        french_word = sentence_pair.french_words[french_position]
        return (
            self.english_french.translation_model.get_conditional_prob(english_word, french_word) *
            self.english_french.prior_model.get_prior_prob(
                english_position, french_position,
                len(sentence_pair.english_words), len(sentence_pair.french_words))
        )
