"""Data model, reader and writer for functions in the QBE intermediate language."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from itertools import chain, takewhile
from typing import Iterator

_LABEL_RE = re.compile(r"@([\w.]+)")
_OPERAND_RE = re.compile(r"[^\s,()@{}]+")
_HEADER_RE = re.compile(
    r"(?P<prefix>.*?)\bfunction\s+(?:(?P<ret>:?[\w.]+)\s+)?"
    r"\$(?P<name>[\w.]+)\s*\((?P<params>.*)\)\s*",
    re.S,
)
_ASSIGN_RE = re.compile(
    r"%(?P<to>[\w.]+)\s*=\s*(?P<cls>:?[\w.]+)\s+(?P<op>\w+)(?:\s+(?P<rest>.*))?"
)
_PLAIN_RE = re.compile(r"(?P<op>\w+)(?:\s+(?P<rest>.*))?")
_CALL_RE = re.compile(r"(?P<target>[^\s(]+)\s*\((?P<args>.*)\)")
_COMMENT_RE = re.compile(r'((?:[^"#]|"(?:[^"\\]|\\.)*")*)')
_STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"')

_JUMP_WORDS = frozenset({"jmp", "jnz", "ret", "hlt"})


class ParseError(ValueError):
    """Raised when the text is not a valid function definition."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        super().__init__(f"line {line}: {message}" if line is not None else message)


class JumpKind(enum.Enum):
    """How a block ends."""

    JMP = "jmp"
    JNZ = "jnz"
    RET = "ret"
    HLT = "hlt"


@dataclass
class Instruction:
    """One instruction; ``to`` is the destination temporary without its ``%``."""

    op: str
    to: str | None = None
    cls: str | None = None
    args: list[str] = field(default_factory=list)


@dataclass
class Phi:
    """A phi node; each argument pairs a predecessor label with a value."""

    to: str
    cls: str
    args: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class Jump:
    """The jump that closes a block."""

    kind: JumpKind
    arg: str | None = None
    targets: tuple[str, ...] = ()


@dataclass
class Block:
    """A basic block."""

    name: str
    phis: list[Phi] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    jump: Jump | None = None

    def successors(self) -> tuple[str, ...]:
        """Names of the blocks this block may jump to."""
        return self.jump.targets if self.jump is not None else ()


@dataclass
class Function:
    """A function: its blocks in source order."""

    name: str
    blocks: list[Block] = field(default_factory=list)
    ret_class: str | None = None
    exported: bool = False
    variadic: bool = False

    def block(self, name: str) -> Block:
        """Return the block with the given label."""
        for candidate in self.blocks:
            if candidate.name == name:
                return candidate
        raise KeyError(f"no block named @{name}")


def _strip_comment(line: str) -> str:
    return _COMMENT_RE.match(line).group(1).strip()


def _split_list(text: str, lineno: int) -> list[str]:
    if not text.strip():
        return []
    parts = [part.strip() for part in text.split(",")]
    if any(not part for part in parts):
        raise ParseError("empty item in list", lineno)
    return parts


def _operand(token: str, lineno: int) -> str:
    if not _OPERAND_RE.fullmatch(token):
        raise ParseError(f"invalid operand {token!r}", lineno)
    return token


def _label(token: str, lineno: int) -> str:
    match = _LABEL_RE.fullmatch(token.strip())
    if not match:
        raise ParseError(f"label expected, got {token!r}", lineno)
    return match.group(1)


def _typed(part: str, lineno: int) -> tuple[str, str]:
    words = part.split()
    if len(words) != 2:
        raise ParseError(f"typed value expected, got {part!r}", lineno)
    return words[0], _operand(words[1], lineno)


def _parse_jump(word: str, rest: str, lineno: int) -> Jump:
    if word == "jmp":
        return Jump(JumpKind.JMP, targets=(_label(rest, lineno),))
    if word == "jnz":
        parts = _split_list(rest, lineno)
        if len(parts) != 3:
            raise ParseError("jnz takes a value and two labels", lineno)
        return Jump(
            JumpKind.JNZ,
            _operand(parts[0], lineno),
            (_label(parts[1], lineno), _label(parts[2], lineno)),
        )
    if word == "ret":
        return Jump(JumpKind.RET, _operand(rest.strip(), lineno) if rest.strip() else None)
    if rest.strip():
        raise ParseError("hlt takes no operand", lineno)
    return Jump(JumpKind.HLT)


class _BodyReader:
    def __init__(self, fn: Function, params: list[Instruction]) -> None:
        self.fn = fn
        self.params = params
        self.current: Block | None = None

    def feed(self, line: str, lineno: int) -> None:
        label = _LABEL_RE.fullmatch(line)
        if label:
            self._open(label.group(1), lineno)
            return
        if self.current is None or self.current.jump is not None:
            raise ParseError("label expected", lineno)
        word, _, rest = line.partition(" ")
        if word in _JUMP_WORDS:
            self.current.jump = _parse_jump(word, rest, lineno)
        else:
            self._instruction(line, lineno)

    def finish(self, lineno: int) -> None:
        if self.current is None:
            raise ParseError("empty function", lineno)
        if self.current.jump is None:
            raise ParseError("last block misses jump", lineno)
        names = {block.name for block in self.fn.blocks}
        for block in self.fn.blocks:
            referenced = chain(block.successors(), (b for phi in block.phis for b, _ in phi.args))
            for target in referenced:
                if target not in names:
                    raise ParseError(f"undefined label @{target}", lineno)

    def _open(self, name: str, lineno: int) -> None:
        if any(block.name == name for block in self.fn.blocks):
            raise ParseError(f"duplicate label @{name}", lineno)
        if self.current is not None and self.current.jump is None:
            self.current.jump = Jump(JumpKind.JMP, targets=(name,))
        self.current = Block(name)
        if not self.fn.blocks:
            self.current.instructions.extend(self.params)
        self.fn.blocks.append(self.current)

    def _instruction(self, line: str, lineno: int) -> None:
        match = _ASSIGN_RE.fullmatch(line) or _PLAIN_RE.fullmatch(line)
        if not match:
            raise ParseError(f"invalid instruction {line!r}", lineno)
        groups = match.groupdict()
        to, cls = groups.get("to"), groups.get("cls")
        op, rest = groups["op"], groups["rest"] or ""
        block = self.current
        if op == "phi":
            if to is None:
                raise ParseError("phi needs a destination", lineno)
            if any(ins.op != "par" for ins in block.instructions):
                raise ParseError("phi after instructions", lineno)
            args = [_phi_arg(part, lineno) for part in _split_list(rest, lineno)]
            block.phis.append(Phi(to, cls, args))
        elif op == "call":
            call = _CALL_RE.fullmatch(rest.strip())
            if not call:
                raise ParseError("invalid call", lineno)
            for part in _split_list(call.group("args"), lineno):
                if part == "...":
                    block.instructions.append(Instruction("argv"))
                else:
                    arg_cls, value = _typed(part, lineno)
                    block.instructions.append(Instruction("arg", cls=arg_cls, args=[value]))
            target = _operand(call.group("target"), lineno)
            block.instructions.append(Instruction("call", to, cls, [target]))
        else:
            args = [_operand(part, lineno) for part in _split_list(rest, lineno)]
            if len(args) > 2:
                raise ParseError("too many operands", lineno)
            block.instructions.append(Instruction(op, to, cls, args))


def _phi_arg(part: str, lineno: int) -> tuple[str, str]:
    words = part.split()
    if len(words) != 2:
        raise ParseError("phi argument needs a label and a value", lineno)
    return _label(words[0], lineno), _operand(words[1], lineno)


def _parse_header(head: str, lineno: int) -> tuple[Function, list[Instruction]]:
    match = _HEADER_RE.fullmatch(head.strip())
    if not match:
        raise ParseError("invalid function header", lineno)
    fn = Function(
        match.group("name"),
        ret_class=match.group("ret"),
        exported="export" in match.group("prefix").split(),
    )
    params = []
    for part in _split_list(match.group("params"), lineno):
        if part == "...":
            fn.variadic = True
            continue
        cls, value = _typed(part, lineno)
        if not value.startswith("%"):
            raise ParseError("parameter must be a temporary", lineno)
        params.append(Instruction("par", value[1:], cls))
    return fn, params


def _read_function(line: str, lineno: int, lines: Iterator[tuple[int, str]]) -> Function:
    start = lineno
    header = line
    while "{" not in header:
        following = next(lines, None)
        if following is None:
            raise ParseError("function body expected", start)
        lineno, raw = following
        header += " " + _strip_comment(raw)
    head, _, rest = header.partition("{")
    fn, params = _parse_header(head, start)
    reader = _BodyReader(fn, params)
    body = chain([(lineno, rest)], lines)
    for lineno, raw in body:
        text = _strip_comment(raw)
        if not text:
            continue
        if text == "}":
            reader.finish(lineno)
            return fn
        reader.feed(" ".join(text.split()), lineno)
    raise ParseError("unterminated function", start)


def _skip_definition(line: str, lineno: int, lines: Iterator[tuple[int, str]]) -> None:
    start = lineno
    depth = 0
    opened = False
    while True:
        text = _STRING_RE.sub("", line)
        depth += text.count("{") - text.count("}")
        opened = opened or "{" in text
        if opened and depth <= 0:
            return
        following = next(lines, None)
        if following is None:
            raise ParseError("unterminated definition", start)
        lineno, raw = following
        line = _strip_comment(raw)


def parse_functions(text: str) -> list[Function]:
    """Read every function in the text; data and type definitions are skipped."""
    lines = iter(enumerate(text.splitlines(), 1))
    functions = []
    for lineno, raw in lines:
        line = _strip_comment(raw)
        if not line:
            continue
        keyword = next(
            (word for word in line.split() if word in ("data", "type", "function")), None
        )
        if keyword == "function":
            functions.append(_read_function(line, lineno, lines))
        elif keyword is not None:
            _skip_definition(line, lineno, lines)
        else:
            raise ParseError("top-level definition expected", lineno)
    return functions


def parse_function(text: str) -> Function:
    """Read a text that holds exactly one function."""
    functions = parse_functions(text)
    if len(functions) != 1:
        raise ParseError(f"expected one function, found {len(functions)}")
    return functions[0]


def _format_instructions(instructions: list[Instruction]) -> Iterator[str]:
    pending: list[str] = []
    for ins in instructions:
        if ins.op == "arg":
            pending.append(f"{ins.cls} {ins.args[0]}")
            continue
        if ins.op == "argv":
            pending.append("...")
            continue
        prefix = f"%{ins.to} ={ins.cls} " if ins.to else ""
        if ins.op == "call":
            yield f"\t{prefix}call {ins.args[0]}({', '.join(pending)})"
            pending = []
        else:
            operands = " " + ", ".join(ins.args) if ins.args else ""
            yield f"\t{prefix}{ins.op}{operands}"


def _format_jump(jump: Jump | None, following: str | None) -> str | None:
    if jump is None:
        return None
    if jump.kind is JumpKind.JMP:
        target = jump.targets[0]
        return None if target == following else f"\tjmp @{target}"
    if jump.kind is JumpKind.JNZ:
        return f"\tjnz {jump.arg}, @{jump.targets[0]}, @{jump.targets[1]}"
    if jump.kind is JumpKind.RET:
        return f"\tret {jump.arg}" if jump.arg else "\tret"
    return "\thlt"


def format_function(fn: Function) -> str:
    """Write a function back as text."""
    first = fn.blocks[0].instructions if fn.blocks else []
    params = list(takewhile(lambda ins: ins.op == "par", first))
    signature = [f"{par.cls} %{par.to}" for par in params]
    if fn.variadic:
        signature.append("...")
    linkage = "export " if fn.exported else ""
    ret = f"{fn.ret_class} " if fn.ret_class else ""
    out = [f"{linkage}function {ret}${fn.name}({', '.join(signature)}) {{"]
    for index, block in enumerate(fn.blocks):
        out.append(f"@{block.name}")
        out.extend(
            f"\t%{phi.to} ={phi.cls} phi " + ", ".join(f"@{b} {v}" for b, v in phi.args)
            for phi in block.phis
        )
        body = block.instructions[len(params):] if index == 0 else block.instructions
        out.extend(_format_instructions(body))
        following = fn.blocks[index + 1].name if index + 1 < len(fn.blocks) else None
        jump = _format_jump(block.jump, following)
        if jump:
            out.append(jump)
    out.append("}")
    return "\n".join(out) + "\n"