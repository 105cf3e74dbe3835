class StatNLPError(Exception):
    "Base class for errors raised by statnlp."


class CorpusError(StatNLPError, ValueError):
    "Training or reference data that cannot be used (e.g. mismatched sentence ids)."


class DecodingError(StatNLPError, RuntimeError):
    "A trellis that no decoder can walk from its start state to its end state."
