# Trellis and best-path decoders shared by the tagger and the HMM aligners.

import logging
import operator
from collections import namedtuple, deque

from statnlp.counters import CounterMap
from statnlp.errors import DecodingError

logger = logging.getLogger(__name__)


# one: score of the empty path, times: extends a path score by a transition.
Semiring = namedtuple('Semiring', ['one', 'times'])

LOG_SEMIRING = Semiring(one=0.0, times=operator.add)
PROBABILITY_SEMIRING = Semiring(one=1.0, times=operator.mul)


###############################################################################
#                                                                             #
#                                  TRELLIS                                    #
#                                                                             #
###############################################################################


class Trellis:
    """
    A graph with a unique start state and a unique end state.

    Transitions are stored twice: forward (state -> successors) and backward
    (state -> predecessors). A state missing from a transition counter is an
    illegal move, which is not the same thing as a transition of score 0.
    """

    def __init__(self, start_state, end_state):
        self.start_state = start_state
        self.end_state = end_state
        self._forward_transitions = CounterMap()
        self._backward_transitions = CounterMap()

    def set_transition_count(self, start, end, score):
        self._forward_transitions.set_count(start, end, score)
        self._backward_transitions.set_count(end, start, score)

    def get_forward_transitions(self, state):
        return self._forward_transitions.get_counter(state)

    def get_backward_transitions(self, state):
        return self._backward_transitions.get_counter(state)

    def topological_order(self):
        """
        States reachable from the start state, every state after all of its
        reachable predecessors. States on a cycle are left out.
        """
        reachable = {self.start_state}
        stack = [self.start_state]
        while stack:
            state = stack.pop()
            for next_state in self.get_forward_transitions(state):
                if next_state not in reachable:
                    reachable.add(next_state)
                    stack.append(next_state)

        in_degree = {
            state: sum(1 for prev in self.get_backward_transitions(state) if prev in reachable)
            for state in reachable
        }
        order = []
        queue = deque([self.start_state])
        while queue:
            state = queue.popleft()
            order.append(state)
            for next_state in self.get_forward_transitions(state):
                in_degree[next_state] -= 1
                if in_degree[next_state] == 0:
                    queue.append(next_state)
        return order


###############################################################################
#                                                                             #
#                                 DECODERS                                    #
#                                                                             #
###############################################################################


class TrellisDecoder:
    """
    Takes a Trellis and returns a list of states which starts with the start
    state, ends with the end state, and in which consecutive states are
    connected in the trellis.
    """

    def get_best_path(self, trellis):
        raise NotImplementedError()


class GreedyDecoder(TrellisDecoder):
    "Follows the locally best outgoing transition, never backtracks."

    def get_best_path(self, trellis):
        states = [trellis.start_state]
        visited = {trellis.start_state}
        current_state = trellis.start_state
        while current_state != trellis.end_state:
            next_state = trellis.get_forward_transitions(current_state).arg_max()
            if next_state is None:
                raise DecodingError('No transition out of %r before the end state' % (current_state, ))
            if next_state in visited:
                raise DecodingError('Greedy walk revisits %r' % (next_state, ))
            visited.add(next_state)
            states.append(next_state)
            current_state = next_state
        return states


class ViterbiDecoder(TrellisDecoder):
    """
    Exact best path by dynamic programming:

        best(start) = one
        best(s) = max over predecessors u of times(best(u), score(u, s))

    The table is filled in topological order; ties keep the first predecessor
    found. When the end state cannot be reached, or when suspicious_path(path)
    holds for the decoded path, the fallback decoder's path is returned.
    """

    def __init__(self, semiring=LOG_SEMIRING, fallback=None, suspicious_path=None):
        self.semiring = semiring
        self.fallback = fallback if fallback is not None else GreedyDecoder()
        self.suspicious_path = suspicious_path

    def best_scores(self, trellis):
        "Return (scores, backpointers) for every state reachable from the start."
        scores = {trellis.start_state: self.semiring.one}
        backpointers = {}
        for state in trellis.topological_order():
            if state == trellis.start_state:
                continue
            best_score = float('-inf')
            best_prev = None
            for prev, transition_score in trellis.get_backward_transitions(state).items():
                prev_score = scores.get(prev, float('-inf'))
                if prev_score == float('-inf'):
                    continue
                score = self.semiring.times(prev_score, transition_score)
                if score > best_score:
                    best_score = score
                    best_prev = prev
            scores[state] = best_score
            if best_prev is not None:
                backpointers[state] = best_prev
        return scores, backpointers

    def get_best_path(self, trellis):
        scores, backpointers = self.best_scores(trellis)
        if scores.get(trellis.end_state, float('-inf')) == float('-inf'):
            logger.warning('End state %r is unreachable, switching to %s',
                           trellis.end_state, type(self.fallback).__name__)
            return self.fallback.get_best_path(trellis)

        states = [trellis.end_state]
        while states[-1] != trellis.start_state:
            states.append(backpointers[states[-1]])
        states.reverse()

        if self.suspicious_path is not None and self.suspicious_path(states):
            logger.warning('Suspicious Viterbi path, switching to %s', type(self.fallback).__name__)
            return self.fallback.get_best_path(trellis)
        return states
