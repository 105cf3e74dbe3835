#!/usr/bin/env python3

import logging
import re

from statnlp.alignment import Alignment, SentencePair, NULL_POSITION
from statnlp.errors import CorpusError
from statnlp.tagger import TaggedSentence

logger = logging.getLogger(__name__)


###############################################################################
#                                                                             #
#                              TAGGED SENTENCES                               #
#                                                                             #
###############################################################################


def read_tagged_sentences(path):
    """
    Read sentences with one `word [tag]` per line, a blank line between
    sentences. Untagged sentences get tags=None.
    """
    tagged_sentences = []
    words, tags = [], []

    def flush():
        if not words:
            return
        if tags and len(tags) != len(words):
            raise CorpusError('%s: sentence %d mixes tagged and untagged words' % (path, len(tagged_sentences) + 1))
        tagged_sentences.append(TaggedSentence(words=list(words), tags=list(tags) if tags else None))
        del words[:]
        del tags[:]

    with open(path) as file:
        for line_number, line in enumerate(file, 1):
            fields = line.split()
            if not fields:
                flush()
                continue
            if len(fields) > 2:
                raise CorpusError('%s:%d: expected `word [tag]`, got %r' % (path, line_number, line.rstrip('\n')))
            words.append(fields[0])
            if len(fields) == 2:
                tags.append(fields[1])
        flush()
    logger.info('Read %d sentences from %s', len(tagged_sentences), path)
    return tagged_sentences


def write_tagged_sentence(tagged_sentence, f):
    "Write tagged sentence to file-like object f."
    for word, tag in zip(tagged_sentence.words, tagged_sentence.tags):
        f.write(word + '\t' + tag + '\n')
    f.write('\n')


def write_tagged_sentences(tagged_sentences, path):
    with open(path, 'w') as file:
        for tagged_sentence in tagged_sentences:
            write_tagged_sentence(tagged_sentence, file)


###############################################################################
#                                                                             #
#                              SENTENCE PAIRS                                 #
#                                                                             #
###############################################################################


SENTENCE_RE = re.compile(r'^\s*<s\s+snum=(\d+)\s*>(.*?)</s>\s*$')


def read_marked_sentences(path):
    "Read `<s snum=ID> words </s>` lines into (id, words)."
    sentences = []
    with open(path) as file:
        for line_number, line in enumerate(file, 1):
            if not line.strip():
                continue
            match = SENTENCE_RE.match(line)
            if match is None:
                raise CorpusError('%s:%d: not a `<s snum=ID> ... </s>` line' % (path, line_number))
            sentences.append((int(match.group(1)), match.group(2).split()))
    return sentences


def read_sentence_pairs(base_path, max_sentence_pairs=None):
    """
    Read base_path.e and base_path.f. Both files must list the same sentence
    ids in the same order.
    """
    english_sentences = read_marked_sentences(base_path + '.e')
    french_sentences = read_marked_sentences(base_path + '.f')
    if len(english_sentences) != len(french_sentences):
        raise CorpusError('%s: %d english and %d french sentences' % (
            base_path, len(english_sentences), len(french_sentences)))
    sentence_pairs = []
    for (english_id, english_words), (french_id, french_words) in zip(english_sentences, french_sentences):
        if english_id != french_id:
            raise CorpusError('%s: sentence id mismatch, %d != %d' % (base_path, english_id, french_id))
        sentence_pairs.append(SentencePair(english_id, english_words, french_words))
        if max_sentence_pairs is not None and len(sentence_pairs) >= max_sentence_pairs:
            break
    logger.info('Read %d sentence pairs from %s', len(sentence_pairs), base_path)
    return sentence_pairs


###############################################################################
#                                                                             #
#                                ALIGNMENTS                                   #
#                                                                             #
###############################################################################


def read_alignments(path):
    """
    Read `sentence_id english_position french_position S|P` lines (positions
    1-based) into {sentence_id: Alignment} with 0-based positions.
    """
    alignments = {}
    with open(path) as file:
        for line_number, line in enumerate(file, 1):
            fields = line.split()
            if not fields:
                continue
            if len(fields) != 4 or fields[3] not in ('S', 'P'):
                raise CorpusError('%s:%d: bad alignment line %r' % (path, line_number, line.rstrip('\n')))
            try:
                sentence_id, english_position, french_position = (int(field) for field in fields[:3])
            except ValueError:
                raise CorpusError('%s:%d: bad alignment line %r' % (path, line_number, line.rstrip('\n')))
            alignment = alignments.setdefault(sentence_id, Alignment())
            alignment.add_alignment(english_position - 1, french_position - 1, fields[3] == 'S')
    return alignments


def write_alignments(sentence_pairs, alignments, path):
    "Write proposed (sure) links in the format read_alignments reads. Null links are skipped."
    with open(path, 'w') as file:
        for sentence_pair, alignment in zip(sentence_pairs, alignments):
            for english_position, french_position in sorted(alignment.sure_alignments,
                                                           key=lambda link: (link[1], link[0])):
                if english_position == NULL_POSITION:
                    continue
                file.write('%d %d %d S\n' % (sentence_pair.sentence_id, english_position + 1, french_position + 1))


###############################################################################
#                                                                             #
#                                 SENTENCES                                   #
#                                                                             #
###############################################################################


def read_sentences(path):
    "Whitespace tokenized sentences, one per non-empty line."
    with open(path) as file:
        sentences = [line.split() for line in file if line.strip()]
    logger.info('Read %d sentences from %s', len(sentences), path)
    return sentences
