#!/usr/bin/env python3

import logging
import math
from collections import namedtuple

from statnlp.counters import SparseCounter, CounterMap
from statnlp.trellis import Trellis, ViterbiDecoder

logger = logging.getLogger(__name__)

START_WORD = '<S>'
STOP_WORD = '</S>'
START_TAG = '<S>'
STOP_TAG = '</S>'

###############################################################################
#                                                                             #
#                                INPUT DATA                                   #
#                                                                             #
###############################################################################


# words: list of str
# tags: list of str, same length as words
TaggedSentence = namedtuple('TaggedSentence', ['words', 'tags'])

TaggingQuality = namedtuple('TaggingQuality', ['accuracy', 'unknown_accuracy', 'decoder_suboptimalities'])


def bounded(sequence, position, left, right):
    """
    Index into sequence as if it were padded with `left` on the left and
    `right` on the right, infinitely.
    """
    if position < 0:
        return left
    if position >= len(sequence):
        return right
    return sequence[position]


###############################################################################
#                                                                             #
#                                  STATES                                     #
#                                                                             #
###############################################################################


class State(namedtuple('State', ['previous_previous_tag', 'previous_tag', 'position'])):
    """
    The two tags preceding a position. The start state is [<S>, <S>, 0]; the
    end state of a sentence of n words is [</S>, </S>, n + 2].
    """
    __slots__ = ()

    @classmethod
    def start_state(cls):
        return cls(START_TAG, START_TAG, 0)

    @classmethod
    def stop_state(cls, position):
        return cls(STOP_TAG, STOP_TAG, position)

    def next_state(self, tag):
        return State(self.previous_tag, tag, self.position + 1)

    def previous_state(self, tag):
        return State(tag, self.previous_previous_tag, self.position - 1)


def to_tag_list(states):
    if not states:
        return []
    return [states[0].previous_previous_tag] + [state.previous_tag for state in states]


def contains_tag(tag):
    "A suspicious_path predicate for ViterbiDecoder: does any state carry `tag`?"
    def predicate(states):
        return any(tag in (state.previous_previous_tag, state.previous_tag) for state in states)
    return predicate


###############################################################################
#                                                                             #
#                                 CONTEXTS                                    #
#                                                                             #
###############################################################################


class _CurrentWord:
    __slots__ = ()

    @property
    def current_word(self):
        return bounded(self.words, self.position, START_WORD, STOP_WORD)


class LocalTrigramContext(_CurrentWord, namedtuple(
        'LocalTrigramContext', ['words', 'position', 'previous_previous_tag', 'previous_tag'])):
    "A position in a sentence along with the previous two tags."
    __slots__ = ()


class LabeledLocalTrigramContext(_CurrentWord, namedtuple(
        'LabeledLocalTrigramContext',
        ['words', 'position', 'previous_previous_tag', 'previous_tag', 'current_tag'])):
    "A LocalTrigramContext plus the correct tag for its position."
    __slots__ = ()


def extract_labeled_local_trigram_contexts(tagged_sentence):
    "One context per position 0 .. n + 1 (two trailing boundary positions)."
    words, tags = tagged_sentence
    return [
        LabeledLocalTrigramContext(
            words=words,
            position=position,
            previous_previous_tag=bounded(tags, position - 2, START_TAG, STOP_TAG),
            previous_tag=bounded(tags, position - 1, START_TAG, STOP_TAG),
            current_tag=bounded(tags, position, START_TAG, STOP_TAG)
        )
        for position in range(len(words) + 2)
    ]


###############################################################################
#                                                                             #
#                                  SCORERS                                    #
#                                                                             #
###############################################################################


class LocalTrigramScorer:
    """
    Assigns log scores to the tags that may occur in a LocalTrigramContext.
    Only tags with non-zero probability are returned; a missing tag is an
    illegal transition.
    """

    def get_log_score_counter(self, local_trigram_context):
        raise NotImplementedError()

    def train(self, labeled_local_trigram_contexts):
        raise NotImplementedError()

    def validate(self, labeled_local_trigram_contexts):
        pass


class MostFrequentTagScorer(LocalTrigramScorer):
    """
    Scores each tag by log P(tag | word), falling back to the tags of
    first-seen words for unknown words. With restrict_trigrams, tag trigrams
    never seen in training are forbidden (unless that forbids everything).
    """

    def __init__(self, restrict_trigrams=False):
        self.restrict_trigrams = restrict_trigrams
        self.words_to_tags = CounterMap()
        self.unknown_word_tags = SparseCounter()
        self.seen_tag_trigrams = set()

    def train(self, labeled_local_trigram_contexts):
        words_to_tags = CounterMap()
        unknown_word_tags = SparseCounter()
        for context in labeled_local_trigram_contexts:
            word = context.current_word
            if word not in words_to_tags:
                unknown_word_tags.increment_count(context.current_tag)
            words_to_tags.increment_count(word, context.current_tag)
            self.seen_tag_trigrams.add(
                (context.previous_previous_tag, context.previous_tag, context.current_tag)
            )
        self.words_to_tags = words_to_tags.conditional_normalize()
        self.unknown_word_tags = unknown_word_tags.normalize()

    def allowed_following_tags(self, tags, previous_previous_tag, previous_tag):
        return {
            tag for tag in tags
            if (previous_previous_tag, previous_tag, tag) in self.seen_tag_trigrams
        }

    def get_log_score_counter(self, local_trigram_context):
        word = local_trigram_context.current_word
        if word in self.words_to_tags:
            tag_counter = self.words_to_tags.get_counter(word)
        else:
            tag_counter = self.unknown_word_tags
        allowed_tags = self.allowed_following_tags(
            tag_counter.keys(),
            local_trigram_context.previous_previous_tag,
            local_trigram_context.previous_tag
        )
        log_score_counter = SparseCounter()
        for tag, probability in tag_counter.items():
            if probability <= 0:
                continue
            if not self.restrict_trigrams or not allowed_tags or tag in allowed_tags:
                log_score_counter.set_count(tag, math.log(probability))
        return log_score_counter


ScorerParams = namedtuple('ScorerParams', [
    'trigram_weight',
    'bigram_weight',
    'unigram_weight',
    'rare_word_threshold'
])

DEFAULT_SCORER_PARAMS = ScorerParams(
    trigram_weight=0.6,
    bigram_weight=0.3,
    unigram_weight=0.1,
    rare_word_threshold=5
)


def word_signature(word, previous_tag):
    "Coarse class of an unknown word."
    if previous_tag == START_TAG:
        return 'startSentence'
    if word[:1].isupper():
        return 'initCapital'
    if any(character.isdigit() for character in word):
        return 'digital'
    if len(word) < 12:
        return 'firstLetter-' + word[:1]
    return 'lastLetter-' + word[-1:]


class HMMTrigramScorer(LocalTrigramScorer):
    """
    Second-order HMM local score:

        log(l3 P(t | t-2, t-1) + l2 P(t | t-1) + l1 P(t)) + log P(w | t)

    Unknown words replace P(w | t) by P(t | signature(w)), estimated on rare
    training words with add-one smoothing over all tags.
    """

    def __init__(self, params=DEFAULT_SCORER_PARAMS):
        self.params = params
        self.tags = []
        self.trigram_tags = CounterMap()
        self.bigram_tags = CounterMap()
        self.unigram_tags = SparseCounter()
        self.tags_to_words = CounterMap()
        self.word_counts = SparseCounter()
        self.signature_tags = CounterMap()
        self.unknown_word_tags = SparseCounter()

    def train(self, labeled_local_trigram_contexts):
        trigram_tags = CounterMap()
        bigram_tags = CounterMap()
        unigram_tags = SparseCounter()
        tags_to_words = CounterMap()
        word_counts = SparseCounter()
        for context in labeled_local_trigram_contexts:
            tag = context.current_tag
            trigram_tags.increment_count((context.previous_previous_tag, context.previous_tag), tag)
            bigram_tags.increment_count(context.previous_tag, tag)
            unigram_tags.increment_count(tag)
            tags_to_words.increment_count(tag, context.current_word)
            word_counts.increment_count(context.current_word)

        self.tags = list(unigram_tags.keys())
        self.trigram_tags = trigram_tags.conditional_normalize()
        self.bigram_tags = bigram_tags.conditional_normalize()
        self.unigram_tags = unigram_tags.normalize()
        self.tags_to_words = tags_to_words.conditional_normalize()
        self.word_counts = word_counts

        word_tags = [tag for tag in self.tags if tag != STOP_TAG]
        signature_tags = CounterMap()
        unknown_word_tags = SparseCounter()
        for context in labeled_local_trigram_contexts:
            word = context.current_word
            if word in (START_WORD, STOP_WORD):
                continue
            if word_counts.get_count(word) <= self.params.rare_word_threshold:
                signature = word_signature(word, context.previous_tag)
                signature_tags.increment_count(signature, context.current_tag)
                unknown_word_tags.increment_count(context.current_tag)
        for signature in list(signature_tags.keys()):
            for tag in word_tags:
                signature_tags.increment_count(signature, tag)
        for tag in word_tags:
            unknown_word_tags.increment_count(tag)
        self.signature_tags = signature_tags.conditional_normalize()
        self.unknown_word_tags = unknown_word_tags.normalize()
        logger.info('Trained trigram scorer: %d tags, %d word types, %d signatures',
                    len(self.tags), len(word_counts), len(signature_tags))

    def transition_probability(self, previous_previous_tag, previous_tag, tag):
        return (
            self.params.trigram_weight * self.trigram_tags.get_count((previous_previous_tag, previous_tag), tag) +
            self.params.bigram_weight * self.bigram_tags.get_count(previous_tag, tag) +
            self.params.unigram_weight * self.unigram_tags.get_count(tag)
        )

    def unknown_word_distribution(self, word, previous_tag):
        signature = word_signature(word, previous_tag)
        if signature in self.signature_tags:
            return self.signature_tags.get_counter(signature)
        return self.unknown_word_tags

    def get_log_score_counter(self, local_trigram_context):
        word = local_trigram_context.current_word
        known = word in self.word_counts
        if not known:
            unknown_tags = self.unknown_word_distribution(word, local_trigram_context.previous_tag)

        log_score_counter = SparseCounter()
        for tag in self.tags:
            if known:
                emission = self.tags_to_words.get_count(tag, word)
            else:
                emission = unknown_tags.get_count(tag)
            probability = emission * self.transition_probability(
                local_trigram_context.previous_previous_tag,
                local_trigram_context.previous_tag,
                tag
            )
            if probability > 0:
                log_score_counter.set_count(tag, math.log(probability))
        return log_score_counter


###############################################################################
#                                                                             #
#                                  TAGGER                                     #
#                                                                             #
###############################################################################


class POSTagger:
    def __init__(self, local_trigram_scorer, trellis_decoder=None):
        self.local_trigram_scorer = local_trigram_scorer
        self.trellis_decoder = trellis_decoder if trellis_decoder is not None else ViterbiDecoder()

    @staticmethod
    def extract_contexts(tagged_sentences):
        contexts = []
        for tagged_sentence in tagged_sentences:
            contexts.extend(extract_labeled_local_trigram_contexts(tagged_sentence))
        return contexts

    def train(self, tagged_sentences):
        self.local_trigram_scorer.train(self.extract_contexts(tagged_sentences))

    def validate(self, tagged_sentences):
        self.local_trigram_scorer.validate(self.extract_contexts(tagged_sentences))

    def build_trellis(self, sentence):
        """
        Start at the start state and advance through all legal extensions of
        each state, one position at a time, for n + 2 positions.
        """
        stop_state = State.stop_state(len(sentence) + 2)
        trellis = Trellis(State.start_state(), stop_state)
        states = [trellis.start_state]
        for position in range(len(sentence) + 2):
            next_states = {}
            for state in states:
                if state == stop_state:
                    continue
                context = LocalTrigramContext(
                    words=sentence,
                    position=position,
                    previous_previous_tag=state.previous_previous_tag,
                    previous_tag=state.previous_tag
                )
                tag_scores = self.local_trigram_scorer.get_log_score_counter(context)
                for tag, score in tag_scores.items():
                    next_state = state.next_state(tag)
                    trellis.set_transition_count(state, next_state, score)
                    next_states[next_state] = None
            states = list(next_states)
        return trellis

    def tag(self, sentence):
        "Return one tag per word of sentence (boundary tags stripped)."
        trellis = self.build_trellis(sentence)
        states = self.trellis_decoder.get_best_path(trellis)
        tags = to_tag_list(states)
        return tags[2:-2]

    def score_tagging(self, tagged_sentence):
        """
        Sum of local log scores of a tagging. A tag sequence the model does
        not accept scores -inf.
        """
        log_score = 0.0
        for context in extract_labeled_local_trigram_contexts(tagged_sentence):
            log_score_counter = self.local_trigram_scorer.get_log_score_counter(context)
            if context.current_tag not in log_score_counter:
                return float('-inf')
            log_score += log_score_counter.get_count(context.current_tag)
        return log_score


def extract_vocabulary(tagged_sentences):
    vocabulary = set()
    for tagged_sentence in tagged_sentences:
        vocabulary.update(tagged_sentence.words)
    return vocabulary


def evaluate_tagger(pos_tagger, tagged_sentences, training_vocabulary):
    """
    Tag accuracy, accuracy on words outside training_vocabulary, and the
    number of sentences whose gold tagging outscores the guessed tagging.
    """
    num_tags = 0
    num_tags_correct = 0
    num_unknown_words = 0
    num_unknown_words_correct = 0
    num_decoding_inversions = 0
    for tagged_sentence in tagged_sentences:
        words, gold_tags = tagged_sentence
        guessed_tags = pos_tagger.tag(words)
        for word, gold_tag, guessed_tag in zip(words, gold_tags, guessed_tags):
            num_tags += 1
            if guessed_tag == gold_tag:
                num_tags_correct += 1
            if word not in training_vocabulary:
                num_unknown_words += 1
                if guessed_tag == gold_tag:
                    num_unknown_words_correct += 1
        score_of_gold = pos_tagger.score_tagging(tagged_sentence)
        score_of_guess = pos_tagger.score_tagging(TaggedSentence(words, guessed_tags))
        if score_of_gold > score_of_guess:
            num_decoding_inversions += 1
            logger.debug('Decoder suboptimality: gold tagging outscores guess for %s', ' '.join(words))
    return TaggingQuality(
        accuracy=(num_tags_correct / num_tags) if num_tags else 0.0,
        unknown_accuracy=(num_unknown_words_correct / num_unknown_words) if num_unknown_words else 0.0,
        decoder_suboptimalities=num_decoding_inversions
    )
