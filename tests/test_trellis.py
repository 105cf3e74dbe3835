import math

import pytest

from statnlp.errors import DecodingError
from statnlp.trellis import (
    Trellis, GreedyDecoder, ViterbiDecoder, LOG_SEMIRING, PROBABILITY_SEMIRING
)


@pytest.fixture
def diverging_trellis():
    # Greedy takes S -> A, the best path goes through B.
    trellis = Trellis('S', 'E')
    trellis.set_transition_count('S', 'A', 1.0)
    trellis.set_transition_count('S', 'B', 0.9)
    trellis.set_transition_count('A', 'E', -10.0)
    trellis.set_transition_count('B', 'E', 0.0)
    return trellis


def test_viterbi_finds_best_log_path(diverging_trellis):
    assert ViterbiDecoder().get_best_path(diverging_trellis) == ['S', 'B', 'E']


def test_greedy_follows_local_best(diverging_trellis):
    assert GreedyDecoder().get_best_path(diverging_trellis) == ['S', 'A', 'E']


def test_viterbi_is_deterministic(diverging_trellis):
    decoder = ViterbiDecoder()
    assert decoder.get_best_path(diverging_trellis) == decoder.get_best_path(diverging_trellis)


def test_suspicious_path_switches_to_greedy(diverging_trellis):
    decoder = ViterbiDecoder(suspicious_path=lambda states: 'B' in states)
    assert decoder.get_best_path(diverging_trellis) == ['S', 'A', 'E']


def test_single_path_returned_by_every_decoder():
    trellis = Trellis(0, 3)
    trellis.set_transition_count(0, 1, 0.5)
    trellis.set_transition_count(1, 2, 0.5)
    trellis.set_transition_count(2, 3, 0.5)
    for decoder in (GreedyDecoder(), ViterbiDecoder(), ViterbiDecoder(PROBABILITY_SEMIRING)):
        assert decoder.get_best_path(trellis) == [0, 1, 2, 3]


def test_probability_semiring_multiplies():
    trellis = Trellis('S', 'E')
    trellis.set_transition_count('S', 'A', 0.9)
    trellis.set_transition_count('S', 'B', 0.5)
    trellis.set_transition_count('A', 'E', 0.1)
    trellis.set_transition_count('B', 'E', 0.5)
    decoder = ViterbiDecoder(PROBABILITY_SEMIRING)
    scores, _ = decoder.best_scores(trellis)
    assert scores['E'] == pytest.approx(0.25)
    assert decoder.get_best_path(trellis) == ['S', 'B', 'E']


def test_ties_keep_first_predecessor():
    trellis = Trellis('S', 'E')
    trellis.set_transition_count('S', 'A', 0.0)
    trellis.set_transition_count('S', 'B', 0.0)
    trellis.set_transition_count('A', 'E', 0.0)
    trellis.set_transition_count('B', 'E', 0.0)
    assert ViterbiDecoder(LOG_SEMIRING).get_best_path(trellis) == ['S', 'A', 'E']


def test_unreachable_end_falls_back_to_greedy(caplog):
    trellis = Trellis('S', 'E')
    trellis.set_transition_count('S', 'A', -math.inf)
    trellis.set_transition_count('A', 'E', 0.0)
    assert ViterbiDecoder().get_best_path(trellis) == ['S', 'A', 'E']
    assert 'unreachable' in caplog.text


def test_dead_end_raises_decoding_error():
    trellis = Trellis('S', 'E')
    trellis.set_transition_count('S', 'A', 0.0)
    with pytest.raises(DecodingError):
        ViterbiDecoder().get_best_path(trellis)


def test_topological_order_puts_predecessors_first(diverging_trellis):
    order = diverging_trellis.topological_order()
    assert order[0] == 'S'
    assert order[-1] == 'E'
    assert set(order) == {'S', 'A', 'B', 'E'}
