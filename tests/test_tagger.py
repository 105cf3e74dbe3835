import math

import pytest

from statnlp.tagger import (
    HMMTrigramScorer, MostFrequentTagScorer, POSTagger, START_TAG, STOP_TAG, STOP_WORD,
    State, TaggedSentence, contains_tag, evaluate_tagger, extract_labeled_local_trigram_contexts,
    extract_vocabulary, LocalTrigramContext, to_tag_list, word_signature
)
from statnlp.trellis import GreedyDecoder, ViterbiDecoder


@pytest.fixture
def training_sentences():
    return [
        TaggedSentence(['the', 'dog', 'barks'], ['DT', 'NN', 'VBZ']),
        TaggedSentence(['the', 'cat', 'sleeps'], ['DT', 'NN', 'VBZ']),
        TaggedSentence(['a', 'dog', 'sleeps'], ['DT', 'NN', 'VBZ']),
    ]


@pytest.fixture
def hmm_tagger(training_sentences):
    pos_tagger = POSTagger(HMMTrigramScorer())
    pos_tagger.train(training_sentences)
    return pos_tagger


def test_contexts_cover_two_boundary_positions():
    contexts = extract_labeled_local_trigram_contexts(TaggedSentence(['a', 'b'], ['X', 'Y']))
    assert len(contexts) == 4
    assert contexts[0].previous_previous_tag == START_TAG
    assert contexts[0].current_word == 'a'
    assert contexts[2].current_word == STOP_WORD
    assert contexts[3].previous_tag == STOP_TAG
    assert contexts[3].current_tag == STOP_TAG


def test_state_transitions():
    state = State.start_state().next_state('DT')
    assert state == State(START_TAG, 'DT', 1)
    assert state.previous_state(START_TAG) == State.start_state()
    assert to_tag_list([State.start_state(), state]) == [START_TAG, START_TAG, 'DT']


def test_contains_tag():
    predicate = contains_tag('AFX')
    assert predicate([State('AFX', 'NN', 2)])
    assert not predicate([State('DT', 'NN', 2)])


def test_word_signatures():
    assert word_signature('Paris', START_TAG) == 'startSentence'
    assert word_signature('Paris', 'IN') == 'initCapital'
    assert word_signature('1999', 'IN') == 'digital'
    assert word_signature('cow', 'DT') == 'firstLetter-c'
    assert word_signature('internationalization', 'DT') == 'lastLetter-n'


def test_hmm_tagger_tags_known_words(hmm_tagger):
    assert hmm_tagger.tag(['the', 'cat', 'barks']) == ['DT', 'NN', 'VBZ']


def test_hmm_tagger_uses_signature_for_unknown_word(hmm_tagger):
    assert hmm_tagger.tag(['the', 'cow', 'sleeps']) == ['DT', 'NN', 'VBZ']


def test_best_path_has_n_plus_three_states(hmm_tagger):
    trellis = hmm_tagger.build_trellis(['the', 'dog', 'sleeps'])
    states = ViterbiDecoder().get_best_path(trellis)
    assert len(states) == 6
    assert states[0] == State.start_state()
    assert states[-1] == State.stop_state(5)


def test_hmm_scorer_returns_only_possible_tags(hmm_tagger):
    scorer = hmm_tagger.local_trigram_scorer
    scores = scorer.get_log_score_counter(LocalTrigramContext(['the', 'dog'], 0, START_TAG, START_TAG))
    assert set(scores) == {'DT'}
    stop_scores = scorer.get_log_score_counter(LocalTrigramContext(['the', 'dog'], 2, 'DT', 'NN'))
    assert set(stop_scores) == {STOP_TAG}


def test_most_frequent_tag_scorer(training_sentences):
    pos_tagger = POSTagger(MostFrequentTagScorer(), GreedyDecoder())
    pos_tagger.train(training_sentences)
    scores = pos_tagger.local_trigram_scorer.get_log_score_counter(
        LocalTrigramContext(['dog'], 0, START_TAG, START_TAG))
    assert scores.get_count('NN') == pytest.approx(0.0)
    assert pos_tagger.tag(['a', 'cat', 'barks']) == ['DT', 'NN', 'VBZ']


def test_restricted_trigrams_keep_seen_transitions(training_sentences):
    scorer = MostFrequentTagScorer(restrict_trigrams=True)
    scorer.train(POSTagger.extract_contexts(training_sentences))
    scores = scorer.get_log_score_counter(LocalTrigramContext(['x', 'y'], 1, START_TAG, 'DT'))
    assert set(scores) == {'NN'}


def test_greedy_and_viterbi_agree_on_easy_sentence(training_sentences):
    viterbi_tagger = POSTagger(HMMTrigramScorer(), ViterbiDecoder())
    greedy_tagger = POSTagger(HMMTrigramScorer(), GreedyDecoder())
    viterbi_tagger.train(training_sentences)
    greedy_tagger.train(training_sentences)
    sentence = ['a', 'cat', 'sleeps']
    assert viterbi_tagger.tag(sentence) == greedy_tagger.tag(sentence)


def test_score_tagging(hmm_tagger):
    good = hmm_tagger.score_tagging(TaggedSentence(['the', 'dog', 'barks'], ['DT', 'NN', 'VBZ']))
    bad = hmm_tagger.score_tagging(TaggedSentence(['the', 'dog', 'barks'], ['NN', 'DT', 'VBZ']))
    assert good > bad
    assert bad == -math.inf


def test_evaluate_tagger(hmm_tagger, training_sentences):
    test_sentences = [
        TaggedSentence(['the', 'cow', 'sleeps'], ['DT', 'NN', 'VBZ']),
        TaggedSentence(['a', 'dog', 'barks'], ['DT', 'NN', 'VBZ']),
    ]
    quality = evaluate_tagger(hmm_tagger, test_sentences, extract_vocabulary(training_sentences))
    assert quality.accuracy == pytest.approx(1.0)
    assert quality.unknown_accuracy == pytest.approx(1.0)
    assert quality.decoder_suboptimalities == 0
