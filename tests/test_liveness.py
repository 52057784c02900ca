import io

import pytest

from qbeflow.defuse import def_use
from qbeflow.ir import parse_function
from qbeflow.liveness import format_live_out, live_out, main

LOOP = """\
export function w $f(w %n) {
@start
	%i =w copy 0
	%s =w copy 0
@loop
	%c =w csltw %i, %n
	jnz %c, @body, @end
@body
	%s =w add %s, %i
	%i =w add %i, 1
	jmp @loop
@end
	ret %s
}
"""

STRAIGHT = """\
function w $g(w %a) {
@start
	%b =w add %a, 1
	jmp @next
@next
	%c =w add %b, %a
	ret %c
}
"""


def test_loop_worked_example():
    fn = parse_function(LOOP)
    expected = (
        "@start\n\tlv_out = %i %n %s \n"
        "@loop\n\tlv_out = %i %n %s \n"
        "@body\n\tlv_out = %i %n %s \n"
        "@end\n\tlv_out = \n"
    )
    assert format_live_out(fn) == expected


@pytest.mark.parametrize("text", [LOOP, STRAIGHT])
def test_return_block_has_nothing_live(text):
    fn = parse_function(text)
    assert live_out(fn)[fn.blocks[-1].name] == []


@pytest.mark.parametrize("text", [LOOP, STRAIGHT])
def test_uses_of_successors_are_live(text):
    fn = parse_function(text)
    result = live_out(fn)
    sets = def_use(fn)
    for block in fn.blocks[:-1]:
        for succ in block.successors():
            assert set(sets[succ][1]) <= set(result[block.name])


@pytest.mark.parametrize("text", [LOOP, STRAIGHT])
def test_sets_are_sorted_and_cover_all_blocks(text):
    fn = parse_function(text)
    result = live_out(fn)
    assert list(result) == [block.name for block in fn.blocks]
    for temps in result.values():
        assert temps == sorted(set(temps))


def test_straight_line_carries_operands():
    fn = parse_function(STRAIGHT)
    assert live_out(fn)["start"] == ["a", "b"]


def test_main_reads_file(tmp_path, capsys):
    path = tmp_path / "loop.ssa"
    path.write_text(LOOP)
    assert main([str(path)]) == 0
    assert capsys.readouterr().out == format_live_out(parse_function(LOOP))


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(LOOP + STRAIGHT))
    assert main([]) == 0
    out = capsys.readouterr().out
    assert out == format_live_out(parse_function(LOOP)) + format_live_out(
        parse_function(STRAIGHT)
    )


def test_main_reports_parse_error(tmp_path, capsys):
    path = tmp_path / "bad.ssa"
    path.write_text("function $f() {\n@start\n")
    assert main([str(path)]) == 1
    assert "qbeflow-liveness" in capsys.readouterr().err