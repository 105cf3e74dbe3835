"""Statistical NLP algorithms: counters, trellis decoding, EM word alignment,
trigram tagging, maximum-entropy classification and CBOW embeddings."""

__version__ = '0.1.0'
