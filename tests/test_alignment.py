import pytest

from statnlp.alignment import (
    Alignment, BaselineWordAligner, DiceWordAligner, IBM1WordAligner, IBM2WordAligner,
    SentencePair, align_corpus, competitive_linking, evaluate_alignments
)
from statnlp.em import EMParams
from statnlp.errors import CorpusError
from statnlp.hmm import HMMWordAligner, HMMIBM2WordAligner


@pytest.fixture
def training_pairs():
    return [
        SentencePair(1, ['the'], ['le']),
        SentencePair(2, ['cat'], ['chat']),
        SentencePair(3, ['the', 'cat'], ['le', 'chat']),
    ]


@pytest.fixture
def test_pair():
    return SentencePair(4, ['the', 'cat'], ['le', 'chat'])


@pytest.mark.parametrize('aligner_cls', [
    DiceWordAligner,
    IBM1WordAligner,
    IBM2WordAligner,
    HMMWordAligner,
    HMMIBM2WordAligner,
])
def test_aligners_recover_diagonal(aligner_cls, training_pairs, test_pair):
    aligner = aligner_cls()
    aligner.train(training_pairs)
    alignment = aligner.align_sentence_pair(test_pair)
    assert alignment.sure_alignments == {(0, 0), (1, 1)}


def test_baseline_maps_overflow_to_null():
    alignment = BaselineWordAligner().align_sentence_pair(SentencePair(1, ['a'], ['x', 'y']))
    assert alignment.sure_alignments == {(0, 0), (-1, 1)}


def test_competitive_linking_prefers_first_maximum_and_nulls_leftovers():
    scores = [
        [0.5, 0.5],
        [0.5, 0.1],
        [0.9, 0.0],
    ]
    alignment = competitive_linking(scores)
    assert alignment.sure_alignments == {(0, 2), (1, 0), (-1, 1)}


def test_competitive_linking_with_empty_english_side():
    alignment = competitive_linking([[], []])
    assert alignment.sure_alignments == {(-1, 0), (-1, 1)}


def test_ibm1_combines_both_directions(training_pairs, test_pair):
    aligner = IBM1WordAligner(EMParams(iterations=3))
    aligner.train(training_pairs)
    scores = aligner.score(test_pair)
    expected = (
        aligner.english_french.translation_model.get_conditional_prob('the', 'le') +
        aligner.french_english.translation_model.get_conditional_prob('le', 'the')
    )
    assert scores[0][0] == pytest.approx(expected)


def test_ibm2_weights_each_direction_by_its_distortion(training_pairs, test_pair):
    aligner = IBM2WordAligner(EMParams(iterations=3))
    aligner.train(training_pairs)
    scores = aligner.score(test_pair)
    english_french, french_english = aligner.english_french, aligner.french_english
    # french 'chat' (1) against english 'the' (0)
    expected = (
        english_french.translation_model.get_conditional_prob('the', 'chat') *
        english_french.prior_model.get_prior_prob(0, 1, 2, 2) +
        french_english.translation_model.get_conditional_prob('chat', 'the') *
        french_english.prior_model.get_prior_prob(1, 0, 2, 2)
    )
    assert scores.shape == (2, 2)
    assert scores[1][0] == pytest.approx(expected)
    assert IBM2WordAligner.initial_side == 'src'
    assert IBM1WordAligner.initial_side == 'trg'


def test_add_alignment_sure_is_also_possible():
    alignment = Alignment()
    alignment.add_alignment(0, 1, True)
    alignment.add_alignment(1, 1, False)
    assert alignment.contains_sure_alignment(0, 1)
    assert alignment.contains_possible_alignment(0, 1)
    assert not alignment.contains_sure_alignment(1, 1)
    assert alignment.contains_possible_alignment(1, 1)


def test_render_marks_links(test_pair):
    reference = Alignment()
    reference.add_alignment(0, 0, True)
    reference.add_alignment(1, 1, False)
    proposed = Alignment()
    proposed.add_alignment(0, 0, True)
    lines = proposed.render(test_pair, reference).splitlines()
    assert lines[0] == '[#]   | le'
    assert lines[1] == '   ( )| chat'
    assert lines[2] == "------'"
    assert lines[3] == ' t  c '


def test_evaluate_alignments(test_pair):
    reference = Alignment()
    reference.add_alignment(0, 0, True)
    reference.add_alignment(1, 1, False)
    perfect = Alignment()
    perfect.add_alignment(0, 0, True)
    perfect.add_alignment(1, 1, True)
    quality = evaluate_alignments([test_pair], [perfect], {4: reference})
    assert quality.precision == pytest.approx(1.0)
    assert quality.recall == pytest.approx(1.0)
    assert quality.aer == pytest.approx(0.0)

    wrong = Alignment()
    wrong.add_alignment(1, 0, True)
    wrong.add_alignment(-1, 1, True)
    quality = evaluate_alignments([test_pair], [wrong], {4: reference})
    assert quality.precision == 0.0
    assert quality.recall == 0.0
    assert quality.aer == pytest.approx(1.0)


def test_evaluate_alignments_requires_reference(test_pair):
    with pytest.raises(CorpusError):
        evaluate_alignments([test_pair], [Alignment()], {})


def test_align_corpus_in_processes(training_pairs, test_pair):
    aligner = IBM1WordAligner()
    aligner.train(training_pairs)
    sequential = align_corpus(aligner, [test_pair] * 3)
    parallel = align_corpus(aligner, [test_pair] * 3, processes=2)
    assert [a.sure_alignments for a in parallel] == [a.sure_alignments for a in sequential]
