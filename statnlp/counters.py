# Sparse counters used as sufficient statistics by every model.
#
# SparseCounter maps keys to float counts; CounterMap maps an outer key to a
# SparseCounter (a conditional table such as t[src][trg]).
#
# Lookups of unseen keys return 0.0 and never insert. Ties in arg_max() go to
# the key that was inserted first.

import collections
from collections import defaultdict


class SparseCounter(collections.Counter):
    "Float counts keyed by arbitrary hashable events."

    def increment_count(self, key, amount=1.0):
        self[key] = self.get(key, 0.0) + amount

    def set_count(self, key, count):
        self[key] = count

    def get_count(self, key):
        return self.get(key, 0.0)

    def total_count(self):
        return float(sum(self.values()))

    def normalize(self):
        """
        Return a new counter whose values sum to one.
        A counter with zero total mass normalizes to all zeros.
        """
        total = self.total_count()
        normalized = SparseCounter()
        for key, count in self.items():
            normalized[key] = count / total if total != 0 else 0.0
        return normalized

    def arg_max(self):
        """
        Return the key with the highest count, or None for an empty counter.
        Keys are scanned in insertion order and only a strictly greater count
        replaces the current best, so the first maximum wins.
        """
        best_key = None
        best_count = float('-inf')
        for key, count in self.items():
            if best_key is None or count > best_count:
                best_key = key
                best_count = count
        return best_key

    def __repr__(self):
        return 'SparseCounter(%s)' % dict.__repr__(self)


_EMPTY = SparseCounter()


class CounterMap:
    "Conditional counts: outer key -> SparseCounter over inner keys."

    def __init__(self):
        self._counters = defaultdict(SparseCounter)

    def increment_count(self, key, inner_key, amount=1.0):
        self._counters[key].increment_count(inner_key, amount)

    def set_count(self, key, inner_key, count):
        self._counters[key][inner_key] = count

    def get_count(self, key, inner_key):
        if key not in self._counters:
            return 0.0
        return self._counters[key].get_count(inner_key)

    def get_counter(self, key):
        """
        Return the counter for key. Unseen keys give a shared empty counter,
        which must not be mutated.
        """
        if key not in self._counters:
            return _EMPTY
        return self._counters[key]

    def total_count(self):
        return sum(counter.total_count() for counter in self._counters.values())

    def conditional_normalize(self):
        "Return a new CounterMap where each outer key's counts sum to one."
        normalized = CounterMap()
        for key, counter in self._counters.items():
            normalized._counters[key] = counter.normalize()
        return normalized

    def keys(self):
        return self._counters.keys()

    def items(self):
        return self._counters.items()

    def __contains__(self, key):
        return key in self._counters

    def __iter__(self):
        return iter(self._counters)

    def __len__(self):
        return len(self._counters)

    def __repr__(self):
        return 'CounterMap(%s)' % dict(self._counters)
