#!/usr/bin/env python3

import logging
import multiprocessing
from collections import namedtuple

import numpy as np

from statnlp.counters import SparseCounter, CounterMap
from statnlp.em import DEFAULT_EM_PARAMS, initialize_direction, estimate_models, make_bitext
from statnlp.errors import CorpusError

logger = logging.getLogger(__name__)

NULL_POSITION = -1

###############################################################################
#                                                                             #
#                                INPUT DATA                                   #
#                                                                             #
###############################################################################


# sentence_id: int
# english_words, french_words: list of str
SentencePair = namedtuple('SentencePair', ['sentence_id', 'english_words', 'french_words'])

AlignmentQuality = namedtuple('AlignmentQuality', ['precision', 'recall', 'aer'])


class Alignment:
    """
    Sets of (english_position, french_position) links. Reference alignments
    carry sure and possible links (every sure link is also possible);
    proposed alignments only use sure links. English position -1 is null.
    """

    def __init__(self):
        self.sure_alignments = set()
        self.possible_alignments = set()

    def add_alignment(self, english_position, french_position, sure):
        link = (english_position, french_position)
        if sure:
            self.sure_alignments.add(link)
        self.possible_alignments.add(link)

    def contains_sure_alignment(self, english_position, french_position):
        return (english_position, french_position) in self.sure_alignments

    def contains_possible_alignment(self, english_position, french_position):
        return (english_position, french_position) in self.possible_alignments

    def render(self, sentence_pair, reference=None):
        """
        Draw the alignment as a grid with one row per french word. '#' marks
        a proposed link, [ ] a sure and ( ) a possible reference link.
        English words are written vertically under the grid.
        """
        if reference is None:
            reference = self
        english_words = sentence_pair.english_words
        lines = []
        for french_position, french_word in enumerate(sentence_pair.french_words):
            cells = []
            for english_position in range(len(english_words)):
                mark = '#' if self.contains_sure_alignment(english_position, french_position) else ' '
                if reference.contains_sure_alignment(english_position, french_position):
                    cells.append('[' + mark + ']')
                elif reference.contains_possible_alignment(english_position, french_position):
                    cells.append('(' + mark + ')')
                else:
                    cells.append(' ' + mark + ' ')
            lines.append(''.join(cells) + '| ' + french_word)
        lines.append('---' * len(english_words) + "'")
        for index in range(max((len(word) for word in english_words), default=0)):
            lines.append(''.join(
                (' ' + word[index] + ' ') if index < len(word) else '   '
                for word in english_words
            ))
        return '\n'.join(lines) + '\n'

    def __repr__(self):
        return 'Alignment(sure=%r, possible=%r)' % (sorted(self.sure_alignments), sorted(self.possible_alignments))


###############################################################################
#                                                                             #
#                                 ALIGNERS                                    #
#                                                                             #
###############################################################################


class WordAligner:
    """
    Produces, for each french word, an english position it is aligned to
    (or -1 for null).
    """

    def train(self, sentence_pairs):
        pass

    def align_sentence_pair(self, sentence_pair):
        raise NotImplementedError()


class BaselineWordAligner(WordAligner):
    "Aligns the diagonal; french words past the end of the english sentence go to null."

    def align_sentence_pair(self, sentence_pair):
        alignment = Alignment()
        num_english_words = len(sentence_pair.english_words)
        for french_position in range(len(sentence_pair.french_words)):
            english_position = french_position if french_position < num_english_words else NULL_POSITION
            alignment.add_alignment(english_position, french_position, True)
        return alignment


def competitive_linking(scores):
    """
    scores[f][e]: association of french position f and english position e.

    Repeatedly link the best remaining pair and retire both positions. Ties
    go to the pair met first in french-major order. French positions left
    over when the english side runs out are linked to null.
    """
    alignment = Alignment()
    scores = np.array(scores, dtype=float)
    num_french_words = scores.shape[0]
    num_english_words = scores.shape[1] if scores.ndim == 2 else 0
    linked_french = set()
    remaining = scores.copy()
    for _ in range(min(num_french_words, num_english_words)):
        french_position, english_position = np.unravel_index(np.argmax(remaining), remaining.shape)
        alignment.add_alignment(int(english_position), int(french_position), True)
        linked_french.add(int(french_position))
        remaining[french_position, :] = -np.inf
        remaining[:, english_position] = -np.inf
    for french_position in range(num_french_words):
        if french_position not in linked_french:
            alignment.add_alignment(NULL_POSITION, french_position, True)
    return alignment


class CompetitiveLinkingWordAligner(WordAligner):
    "Aligners that score every (french, english) pair and decode by competitive linking."

    def score(self, sentence_pair):
        "Return a numpy array s[f][e]."
        raise NotImplementedError()

    def align_sentence_pair(self, sentence_pair):
        return competitive_linking(self.score(sentence_pair))


class DiceWordAligner(CompetitiveLinkingWordAligner):
    "dice(f, e) = 2 C(f, e) / (C(f) + C(e)), counted over all positions."

    def __init__(self):
        self.english_counts = SparseCounter()
        self.french_counts = SparseCounter()
        self.pair_counts = CounterMap()

    def train(self, sentence_pairs):
        for sentence_pair in sentence_pairs:
            for english_word in sentence_pair.english_words:
                self.english_counts.increment_count(english_word)
            for french_word in sentence_pair.french_words:
                self.french_counts.increment_count(french_word)
                for english_word in sentence_pair.english_words:
                    self.pair_counts.increment_count(french_word, english_word)
        logger.info('Dice: %d english and %d french word types',
                    len(self.english_counts), len(self.french_counts))

    def dice(self, french_word, english_word):
        total = self.french_counts.get_count(french_word) + self.english_counts.get_count(english_word)
        if total == 0:
            return 0.0
        return 2.0 * self.pair_counts.get_count(french_word, english_word) / total

    def score(self, sentence_pair):
        return np.array([[
                self.dice(french_word, english_word)
                for english_word in sentence_pair.english_words
            ] for french_word in sentence_pair.french_words
        ], dtype=float).reshape(len(sentence_pair.french_words), len(sentence_pair.english_words))


def english_french_bitexts(sentence_pairs):
    "Return the (english, french) and (french, english) bitexts."
    english_corpus = [pair.english_words for pair in sentence_pairs]
    french_corpus = [pair.french_words for pair in sentence_pairs]
    return make_bitext(english_corpus, french_corpus), make_bitext(french_corpus, english_corpus)


class EMWordAligner(WordAligner):
    """
    Trains translation tables (and, when positional, distortion tables) with
    EM: english_french models P(french | english), french_english the
    reverse. One-directional aligners leave french_english at None.

    initial_side picks the sentence length behind the initial translation
    mass: 1 / (1 + len(trg)) or 1 / (1 + len(src)).
    """
    positional = False
    bidirectional = True
    initial_side = 'trg'

    def __init__(self, em_params=DEFAULT_EM_PARAMS):
        self.em_params = em_params
        self.english_french = None
        self.french_english = None

    def train(self, sentence_pairs):
        english_french, french_english = english_french_bitexts(sentence_pairs)
        directions = [
            initialize_direction('english->french', english_french, self.positional, self.initial_side)
        ]
        if self.bidirectional:
            directions.append(
                initialize_direction('french->english', french_english, self.positional, self.initial_side)
            )
        directions = estimate_models(directions, self.em_params)
        self.english_french = directions[0]
        if self.bidirectional:
            self.french_english = directions[1]


class IBMWordAligner(EMWordAligner, CompetitiveLinkingWordAligner):
    "EM-trained tables in both directions, decoded by competitive linking."


class IBM1WordAligner(IBMWordAligner):
    "s[f][e] = t(f | e) + t(e | f)"

    def score(self, sentence_pair):
        english_words, french_words = sentence_pair.english_words, sentence_pair.french_words
        french_given_english = self.english_french.translation_model.get_parameters_for_sentence_pair(
            english_words, french_words)
        english_given_french = self.french_english.translation_model.get_parameters_for_sentence_pair(
            french_words, english_words)
        return french_given_english.T + english_given_french


class IBM2WordAligner(IBMWordAligner):
    "s[f][e] = t(f | e) q(e | f) + t(e | f) q(f | e)"
    positional = True
    initial_side = 'src'

    def score(self, sentence_pair):
        english_words, french_words = sentence_pair.english_words, sentence_pair.french_words
        english_french = (
            self.english_french.translation_model.get_parameters_for_sentence_pair(english_words, french_words) *
            self.english_french.prior_model.get_parameters_for_sentence_pair(len(english_words), len(french_words))
        )
        french_english = (
            self.french_english.translation_model.get_parameters_for_sentence_pair(french_words, english_words) *
            self.french_english.prior_model.get_parameters_for_sentence_pair(len(french_words), len(english_words))
        )
        return english_french.T + french_english


###############################################################################
#                                                                             #
#                                EVALUATION                                   #
#                                                                             #
###############################################################################


def align_corpus(aligner, sentence_pairs, processes=None):
    "Align each sentence pair in the corpus, in a process pool when processes > 1."
    if processes is None or processes <= 1:
        return [aligner.align_sentence_pair(sentence_pair) for sentence_pair in sentence_pairs]
    with multiprocessing.Pool(processes) as pool:
        return pool.map(aligner.align_sentence_pair, sentence_pairs)


def evaluate_alignments(sentence_pairs, proposed_alignments, reference_alignments):
    """
    Precision, recall and alignment error rate of proposed alignments against
    reference alignments (a dict keyed by sentence id). Null links are not
    counted.
    """
    proposed_sure_count = 0
    proposed_possible_count = 0
    sure_count = 0
    proposed_count = 0
    for sentence_pair, proposed_alignment in zip(sentence_pairs, proposed_alignments):
        reference_alignment = reference_alignments.get(sentence_pair.sentence_id)
        if reference_alignment is None:
            raise CorpusError('No reference alignment found for sentence id %s' % sentence_pair.sentence_id)
        logger.debug('Alignment:\n%s', proposed_alignment.render(sentence_pair, reference_alignment))
        for french_position in range(len(sentence_pair.french_words)):
            for english_position in range(len(sentence_pair.english_words)):
                proposed = proposed_alignment.contains_sure_alignment(english_position, french_position)
                sure = reference_alignment.contains_sure_alignment(english_position, french_position)
                possible = reference_alignment.contains_possible_alignment(english_position, french_position)
                if proposed and sure:
                    proposed_sure_count += 1
                if proposed and possible:
                    proposed_possible_count += 1
                if proposed:
                    proposed_count += 1
                if sure:
                    sure_count += 1
    return AlignmentQuality(
        precision=(proposed_possible_count / proposed_count) if proposed_count else 0.0,
        recall=(proposed_sure_count / sure_count) if sure_count else 0.0,
        aer=1.0 - ((proposed_sure_count + proposed_possible_count) / (sure_count + proposed_count))
            if (sure_count + proposed_count) else 0.0
    )
