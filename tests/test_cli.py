import pytest

import tdop
from tdop import main


@pytest.fixture(autouse=True)
def restore_flags(monkeypatch):
    monkeypatch.setattr(tdop, '_SHOULD_LOG_TRACE', False)
    monkeypatch.setattr(tdop, 'LOCAL_ECHARTS', True)


def test_expression_argument(capsys):
    assert main(['3 * (2 + (3 - 4)) ^ 4']) == 0
    assert capsys.readouterr().out == '3\n'


def test_error_exit_code(capsys):
    assert main(['1 $ 2']) == 1
    assert capsys.readouterr().out == 'LexerError: <1:2>: unrecognized char `$`\n'


def test_parser_error_exit_code(capsys):
    assert main(['(1 + 2']) == 1
    assert capsys.readouterr().out.startswith('ParserError: <1:6>:')


@pytest.mark.parametrize('text, prefix', [
    ('10 ^ 5000', 'InterpreterError: <1:3>:'),
    ('1' * 5000, 'LexerError: <1:0>:'),
    ('+' * 5000 + '1', 'ParserError:'),
], ids=['overflow', 'long-literal', 'too-deep'])
def test_out_of_range_input_exits_with_error(text, prefix, capsys):
    assert main([text]) == 1
    assert capsys.readouterr().out.startswith(prefix)


def test_tree_flag_overflow(tmp_path, capsys):
    path = tmp_path / 'out.html'
    assert main(['--tree', '--output', str(path), '10 ^ 5000']) == 1
    assert capsys.readouterr().out.startswith('InterpreterError:')
    assert not path.exists()


def test_tree_help_mentions_local_echarts(capsys):
    with pytest.raises(SystemExit):
        main(['--help'])
    assert 'echarts.min.js' in capsys.readouterr().out


def test_trace_flag(capsys):
    assert main(['--trace', '2 ^ 3']) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[-1] == '8'
    assert any('led Token(TokenType.POW' in line for line in out)


def test_tree_flag(tmp_path, capsys):
    path = tmp_path / 'out.html'
    assert main(['--tree', '--output', str(path), '2 + 3 * 4']) == 0
    assert capsys.readouterr().out == '14\n'
    assert path.exists()


def test_tree_flag_with_error(tmp_path, capsys):
    path = tmp_path / 'out.html'
    assert main(['--tree', '--output', str(path), '1 / 0']) == 1
    assert capsys.readouterr().out.startswith('InterpreterError:')
    assert not path.exists()


def test_repl(monkeypatch, capsys):
    lines = iter(['1 + 2', '', '   ', '1 +', '2 ^ 10'])

    def fake_input(prompt):
        assert prompt == 'calc> '
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr('builtins.input', fake_input)
    assert main([]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == '3'
    assert out[1].startswith('ParserError:')
    assert out[2] == '1024'


def test_repl_keyboard_interrupt(monkeypatch):
    def fake_input(prompt):
        raise KeyboardInterrupt

    monkeypatch.setattr('builtins.input', fake_input)
    assert main([]) == 0
