import io

import pytest

from qbeflow.deadcode import DeadCodeEliminator, eliminate_dead_code, main
from qbeflow.ir import JumpKind, format_function, parse_function

STRAIGHT = """\
export function w $f(w %a) {
@start
	%x =w add %a, 1
	%y =w mul %a, 2
	ret %x
}
"""

MEMORY = """\
function $g(l %p) {
@start
	%v =w add 1, 2
	storew %v, %p
	%u =w add 3, 4
	%r =w call $h(w %u)
	%dead =w sub 5, 6
	ret
}
"""

DEAD_BRANCH = """\
function w $f(w %c) {
@start
	jnz %c, @a, @b
@a
	%x =w add 1, 2
	jmp @join
@b
	%y =w add 3, 4
	jmp @join
@join
	%z =w phi @a %x, @b %y
	ret 0
}
"""

LIVE_BRANCH = """\
function w $f(w %c) {
@start
	jnz %c, @a, @b
@a
	%x =w add 1, 2
	jmp @join
@b
	%y =w add 3, 4
	jmp @join
@join
	%z =w phi @a %x, @b %y
	ret %z
}
"""

STORE_BRANCH = """\
function $s(w %c, l %p) {
@start
	jnz %c, @a, @b
@a
	storew 1, %p
	jmp @join
@b
	jmp @join
@join
	ret
}
"""

DEAD_BRANCH_RESULT = """\
function w $f(w %c) {
@start
@join
	ret 0
}
"""


def _temps(fn, name):
    return [ins.to for ins in fn.block(name).instructions]


def test_unused_arithmetic_is_removed():
    fn = eliminate_dead_code(parse_function(STRAIGHT))
    temps = _temps(fn, "start")
    assert "y" not in temps
    assert temps == ["a", "x"]
    assert fn.block("start").jump.arg == "%x"


def test_parameters_survive_in_signature():
    fn = eliminate_dead_code(parse_function(STRAIGHT))
    assert format_function(fn).splitlines()[0] == "export function w $f(w %a) {"


def test_stores_and_calls_keep_their_operands():
    fn = eliminate_dead_code(parse_function(MEMORY))
    ops = [ins.op for ins in fn.block("start").instructions]
    assert ops == ["par", "add", "storew", "add", "arg", "call"]
    assert "dead" not in _temps(fn, "start")


def test_dead_branch_is_collapsed():
    fn = eliminate_dead_code(parse_function(DEAD_BRANCH))
    assert format_function(fn) == DEAD_BRANCH_RESULT


def test_dead_phi_is_removed():
    fn = eliminate_dead_code(parse_function(DEAD_BRANCH))
    assert fn.block("join").phis == []


def test_eliminate_alone_keeps_unreachable_blocks():
    fn = parse_function(DEAD_BRANCH)
    DeadCodeEliminator(fn).eliminate()
    assert [block.name for block in fn.blocks] == ["start", "a", "b", "join"]
    assert fn.block("a").instructions == []
    assert fn.block("start").jump.kind is JumpKind.JMP
    assert fn.block("start").successors() == ("join",)


def test_postdominator_tree_of_diamond():
    eliminator = DeadCodeEliminator(parse_function(DEAD_BRANCH))
    assert eliminator.ipostdom == {"start": "join", "a": "join", "b": "join"}
    assert eliminator.frontier == {"start": set(), "a": {"start"}, "b": {"start"}, "join": set()}


def test_postdominators_contain_block_and_exit():
    eliminator = DeadCodeEliminator(parse_function(LIVE_BRANCH))
    for name, doms in eliminator.postdominators.items():
        assert name in doms
        assert "join" in doms


def test_live_branch_is_unchanged():
    fn = eliminate_dead_code(parse_function(LIVE_BRANCH))
    assert format_function(fn) == format_function(parse_function(LIVE_BRANCH))


def test_branch_with_store_is_unchanged():
    fn = eliminate_dead_code(parse_function(STORE_BRANCH))
    assert [block.name for block in fn.blocks] == ["start", "a", "b", "join"]
    assert [ins.op for ins in fn.block("a").instructions] == ["storew"]
    assert fn.block("start").jump.kind is JumpKind.JNZ


@pytest.mark.parametrize("source", [STRAIGHT, MEMORY, DEAD_BRANCH, LIVE_BRANCH, STORE_BRANCH])
def test_elimination_is_idempotent(source):
    once = format_function(eliminate_dead_code(parse_function(source)))
    twice = format_function(eliminate_dead_code(parse_function(once)))
    assert once == twice


@pytest.mark.parametrize("source", [STRAIGHT, MEMORY, DEAD_BRANCH, LIVE_BRANCH, STORE_BRANCH])
def test_output_reparses_with_same_blocks(source):
    fn = eliminate_dead_code(parse_function(source))
    again = parse_function(format_function(fn))
    assert [block.name for block in again.blocks] == [block.name for block in fn.blocks]


def test_main_reads_file(tmp_path, capsys):
    path = tmp_path / "input.ssa"
    path.write_text(DEAD_BRANCH)
    assert main([str(path)]) == 0
    assert capsys.readouterr().out == DEAD_BRANCH_RESULT


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(LIVE_BRANCH))
    assert main([]) == 0
    assert capsys.readouterr().out == format_function(parse_function(LIVE_BRANCH))


def test_main_reports_parse_error(tmp_path, capsys):
    path = tmp_path / "bad.ssa"
    path.write_text("function $f() {\n@start\n\tjmp @nowhere\n}\n")
    assert main([str(path)]) == 1
    assert "nowhere" in capsys.readouterr().err