import pytest

from statnlp.cli import main


def test_classify_toy(capsys):
    main(['classify'])
    assert 'Prediction: 0' in capsys.readouterr().out


def test_no_command():
    with pytest.raises(SystemExit):
        main([])


def test_tag(tmp_path, capsys):
    train = tmp_path / 'train.pos'
    train.write_text('the DT\ndog NN\nbarks VBZ\n\nthe DT\ncat NN\nsleeps VBZ\n\n')
    test = tmp_path / 'test.pos'
    test.write_text('the DT\ncat NN\nbarks VBZ\n\n')
    main(['tag', '--dataset', str(train), '--dataset-test', str(test)])
    out = capsys.readouterr().out
    assert 'accuracy=1.0' in out


def test_align(tmp_path, capsys):
    (tmp_path / 'training.e').write_text('<s snum=1> the </s>\n<s snum=2> cat </s>\n')
    (tmp_path / 'training.f').write_text('<s snum=1> le </s>\n<s snum=2> chat </s>\n')
    (tmp_path / 'test.e').write_text('<s snum=3> the cat </s>\n')
    (tmp_path / 'test.f').write_text('<s snum=3> le chat </s>\n')
    (tmp_path / 'test.wa').write_text('3 1 1 S\n3 2 2 S\n')
    output = tmp_path / 'out.wa'
    main(['align', '--path', str(tmp_path), '--model', 'ibm1', '--output', str(output)])
    assert 'aer=0.0' in capsys.readouterr().out
    assert output.read_text() == '3 1 1 S\n3 2 2 S\n'


def test_embed(tmp_path):
    dataset = tmp_path / 'text.txt'
    dataset.write_text('the cat sat\nthe dog sat\n')
    output = tmp_path / 'vectors.txt'
    main(['embed', '--dataset', str(dataset), '--output', str(output), '--dimension', '4', '--window', '1'])
    assert output.read_text().splitlines()[0] == '4 4'
