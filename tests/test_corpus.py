import pytest

from statnlp.alignment import Alignment, SentencePair
from statnlp.corpus import (
    read_alignments, read_sentence_pairs, read_sentences, read_tagged_sentences,
    write_alignments, write_tagged_sentences
)
from statnlp.errors import CorpusError
from statnlp.tagger import TaggedSentence


def write(path, text):
    path.write_text(text)
    return str(path)


def test_tagged_sentences_round_trip(tmp_path):
    sentences = [
        TaggedSentence(['The', 'dog'], ['DT', 'NN']),
        TaggedSentence(['barks'], ['VBZ']),
    ]
    path = str(tmp_path / 'tagged.pos')
    write_tagged_sentences(sentences, path)
    assert read_tagged_sentences(path) == sentences


def test_untagged_sentences(tmp_path):
    path = write(tmp_path / 'untagged.pos', 'the\ndog\n\n\nbarks\n')
    sentences = read_tagged_sentences(path)
    assert sentences == [TaggedSentence(['the', 'dog'], None), TaggedSentence(['barks'], None)]


def test_mixed_tagging_is_an_error(tmp_path):
    path = write(tmp_path / 'mixed.pos', 'the DT\ndog\n')
    with pytest.raises(CorpusError):
        read_tagged_sentences(path)


def test_read_sentence_pairs(tmp_path):
    write(tmp_path / 'train.e', '<s snum=0001> the cat </s>\n<s snum=0002> a dog </s>\n')
    write(tmp_path / 'train.f', '<s snum=0001> le chat </s>\n<s snum=0002> un chien </s>\n')
    pairs = read_sentence_pairs(str(tmp_path / 'train'))
    assert pairs == [
        SentencePair(1, ['the', 'cat'], ['le', 'chat']),
        SentencePair(2, ['a', 'dog'], ['un', 'chien']),
    ]
    assert len(read_sentence_pairs(str(tmp_path / 'train'), max_sentence_pairs=1)) == 1


def test_sentence_id_mismatch_is_fatal(tmp_path):
    write(tmp_path / 'train.e', '<s snum=0001> the cat </s>\n')
    write(tmp_path / 'train.f', '<s snum=0002> le chat </s>\n')
    with pytest.raises(CorpusError):
        read_sentence_pairs(str(tmp_path / 'train'))


def test_unequal_corpus_sizes_are_fatal(tmp_path):
    write(tmp_path / 'train.e', '<s snum=1> the cat </s>\n<s snum=2> a dog </s>\n')
    write(tmp_path / 'train.f', '<s snum=1> le chat </s>\n')
    with pytest.raises(CorpusError):
        read_sentence_pairs(str(tmp_path / 'train'))


def test_read_alignments_uses_zero_based_positions(tmp_path):
    path = write(tmp_path / 'test.wa', '1 1 1 S\n1 2 2 P\n2 1 2 S\n')
    alignments = read_alignments(path)
    assert alignments[1].sure_alignments == {(0, 0)}
    assert alignments[1].possible_alignments == {(0, 0), (1, 1)}
    assert alignments[2].sure_alignments == {(0, 1)}


@pytest.mark.parametrize('line', ['1 1 S\n', '1 a 1 S\n', '1 1 1 X\n'])
def test_bad_alignment_lines(tmp_path, line):
    path = write(tmp_path / 'bad.wa', line)
    with pytest.raises(CorpusError):
        read_alignments(path)


def test_write_alignments_skips_null_links(tmp_path):
    alignment = Alignment()
    alignment.add_alignment(1, 0, True)
    alignment.add_alignment(-1, 1, True)
    path = str(tmp_path / 'out.wa')
    write_alignments([SentencePair(7, ['a', 'b'], ['x', 'y'])], [alignment], path)
    assert read_alignments(path)[7].sure_alignments == {(1, 0)}


def test_read_sentences(tmp_path):
    path = write(tmp_path / 'text.txt', 'the cat sat\n\n a dog \n')
    assert read_sentences(path) == [['the', 'cat', 'sat'], ['a', 'dog']]
