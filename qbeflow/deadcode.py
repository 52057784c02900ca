"""Aggressive dead-code elimination driven by reverse dominance frontiers.

The function is expected to be in SSA form: every temporary is defined once.
"""

from __future__ import annotations

import argparse
import enum
import sys
from itertools import takewhile
from pathlib import Path
from typing import NamedTuple

from .ir import (
    Block,
    Function,
    Instruction,
    Jump,
    JumpKind,
    ParseError,
    Phi,
    format_function,
    parse_functions,
)

_CALLS = frozenset({"call", "vacall"})
_STORES = frozenset({"storeb", "storeh", "storew", "storel", "stores", "stored"})
_ARGS = frozenset({"arg", "argsb", "argub", "argsh", "arguh", "argc", "arge", "argv"})


class _Kind(enum.Enum):
    INS = enum.auto()
    PHI = enum.auto()
    JUMP = enum.auto()


class _Item(NamedTuple):
    kind: _Kind
    block: str
    node: Instruction | Phi | None = None


def _is_ret(block: Block) -> bool:
    return block.jump is not None and block.jump.kind is JumpKind.RET


def _is_memory_or_call(ins: Instruction) -> bool:
    return ins.op in _STORES or ins.op in _CALLS


def _temp(operand: str | None) -> str | None:
    if operand and operand.startswith("%"):
        return operand[1:]
    return None


class DeadCodeEliminator:
    """Marks the instructions, phis and jumps a function needs and sweeps the rest."""

    def __init__(self, fn: Function) -> None:
        self.fn = fn
        self._blocks = {block.name: block for block in fn.blocks}
        self._definitions = self._collect_definitions()
        self.postdominators = self._postdominators()
        self.ipostdom = self._immediate_postdominators()
        self.frontier = self._reverse_frontier()

    def eliminate(self) -> None:
        """Remove dead code from the function in place."""
        self._sweep(*self._mark())

    def _collect_definitions(self) -> dict[str, _Item]:
        definitions: dict[str, _Item] = {}
        for block in self.fn.blocks:
            for ins in block.instructions:
                if ins.to:
                    definitions[ins.to] = _Item(_Kind.INS, block.name, ins)
            for phi in block.phis:
                definitions[phi.to] = _Item(_Kind.PHI, block.name, phi)
        return definitions

    def _postdominators(self) -> dict[str, frozenset[str]]:
        blocks = self.fn.blocks
        everything = frozenset(self._blocks)
        exits = {block.name for block in blocks if _is_ret(block)}
        out = {block.name: everything for block in blocks}
        out.update((name, frozenset({name})) for name in exits)

        changed = True
        while changed:
            changed = False
            for block in blocks:
                if block.name in exits:
                    continue
                common = everything
                for succ in set(block.successors()):
                    common = common & out[succ]
                updated = common | {block.name}
                if updated != out[block.name]:
                    out[block.name] = updated
                    changed = True
        return out

    def _immediate_postdominators(self) -> dict[str, str]:
        names = [block.name for block in self.fn.blocks]
        preds: dict[str, list[str]] = {}
        for block in self.fn.blocks:
            for succ in dict.fromkeys(block.successors()):
                preds.setdefault(succ, []).append(block.name)

        numbers: dict[str, int] = {}
        visited: set[str] = set()
        counter = len(names)
        for block in self.fn.blocks:
            if _is_ret(block):
                counter = _numerate(block.name, preds, visited, numbers, counter)

        result: dict[str, str] = {}
        for key in names:
            best: str | None = None
            for candidate in names:
                if candidate == key or candidate not in self.postdominators[key]:
                    continue
                if best is None or numbers.get(candidate, 0) < numbers.get(best, 0):
                    best = candidate
            if best is not None:
                result[key] = best
        return result

    def _reverse_frontier(self) -> dict[str, set[str]]:
        frontier: dict[str, set[str]] = {block.name: set() for block in self.fn.blocks}
        for block in self.fn.blocks:
            targets = block.successors()
            if len(targets) <= 1:
                continue
            stop = self.ipostdom.get(block.name)
            for succ in set(targets):
                if self.ipostdom.get(succ) is None:
                    continue
                node: str | None = succ
                while node is not None and node != stop:
                    frontier[node].add(block.name)
                    node = self.ipostdom.get(node)
        return frontier

    def _push_definition(self, work: list[_Item], operand: str | None) -> None:
        name = _temp(operand)
        if name is not None and name in self._definitions:
            work.append(self._definitions[name])

    def _mark(self) -> tuple[set[int], set[str], set[int], set[str]]:
        work: list[_Item] = []
        marked_ins: set[int] = set()
        marked_jmp: set[str] = set()
        marked_phi: set[int] = set()
        marked_blk: set[str] = set()

        for block in self.fn.blocks:
            for ins in block.instructions:
                if _is_memory_or_call(ins):
                    work.append(_Item(_Kind.INS, block.name, ins))
                    marked_blk.add(block.name)
            if _is_ret(block):
                work.append(_Item(_Kind.JUMP, block.name))
                marked_blk.add(block.name)
            jump = block.jump
            if jump is not None and jump.kind is JumpKind.JMP:
                target = self._blocks[jump.targets[0]]
                if not _is_ret(target) and not target.instructions and not target.phis:
                    marked_jmp.add(block.name)
            if block.name not in self.ipostdom:
                work.append(_Item(_Kind.JUMP, block.name))

        while work:
            item = work.pop()
            block = self._blocks[item.block]

            if item.kind is _Kind.INS:
                ins = item.node
                if id(ins) in marked_ins:
                    continue
                marked_blk.add(item.block)
                marked_ins.add(id(ins))
                if ins.op in _CALLS:
                    position = next(
                        index for index, other in enumerate(block.instructions) if other is ins
                    )
                    before = block.instructions[:position]
                    args = list(takewhile(lambda other: other.op in _ARGS, reversed(before)))
                    work.extend(_Item(_Kind.INS, item.block, arg) for arg in reversed(args))
                else:
                    for operand in ins.args[:2]:
                        self._push_definition(work, operand)

            elif item.kind is _Kind.PHI:
                phi = item.node
                if id(phi) in marked_phi:
                    continue
                marked_blk.add(item.block)
                marked_phi.add(id(phi))
                for pred, value in phi.args:
                    if _temp(value) is None:
                        continue
                    self._push_definition(work, value)
                    if pred in marked_jmp:
                        continue
                    work.append(_Item(_Kind.JUMP, pred))

            else:
                if item.block in marked_jmp:
                    continue
                marked_blk.add(item.block)
                marked_jmp.add(item.block)
                arg = block.jump.arg if block.jump is not None else None
                if _temp(arg) is None:
                    continue
                self._push_definition(work, arg)

            for name in self._ordered(self.frontier[item.block]):
                if name in marked_jmp:
                    continue
                other = self._blocks[name].jump
                if other is not None and other.kind is JumpKind.JMP:
                    continue
                work.append(_Item(_Kind.JUMP, name))

        return marked_ins, marked_jmp, marked_phi, marked_blk

    def _ordered(self, names: set[str]) -> list[str]:
        return [block.name for block in self.fn.blocks if block.name in names]

    def _sweep(
        self,
        marked_ins: set[int],
        marked_jmp: set[str],
        marked_phi: set[int],
        marked_blk: set[str],
    ) -> None:
        for block in self.fn.blocks:
            block.instructions = [
                ins for ins in block.instructions if ins.op == "par" or id(ins) in marked_ins
            ]
            block.phis = [phi for phi in block.phis if id(phi) in marked_phi]

            if block.name in marked_jmp:
                continue
            jump = block.jump
            if jump is not None and jump.kind is JumpKind.JMP and jump.targets[0] in marked_blk:
                continue

            target = self.ipostdom.get(block.name)
            while target is not None and target not in marked_jmp:
                target = self.ipostdom.get(target)
            if target is None:
                # Nothing live postdominates this block; leave its jump alone.
                continue
            block.jump = Jump(JumpKind.JMP, targets=(target,))


def _numerate(
    root: str,
    preds: dict[str, list[str]],
    visited: set[str],
    numbers: dict[str, int],
    counter: int,
) -> int:
    """Number blocks in depth-first pre-order over reversed edges, counting down."""

    def enter(node: str) -> None:
        nonlocal counter
        visited.add(node)
        numbers[node] = counter
        counter -= 1
        if node not in preds:
            numbers[node] = counter
            counter -= 1

    enter(root)
    stack = [iter(preds.get(root, ()))]
    while stack:
        following = next((node for node in stack[-1] if node not in visited), None)
        if following is None:
            stack.pop()
            continue
        enter(following)
        stack.append(iter(preds.get(following, ())))
    return counter


def _drop_unreachable(fn: Function) -> None:
    if not fn.blocks:
        return
    blocks = {block.name: block for block in fn.blocks}
    seen: set[str] = set()
    stack = [fn.blocks[0].name]
    while stack:
        name = stack.pop()
        if name in seen:
            continue
        seen.add(name)
        stack.extend(blocks[name].successors())
    fn.blocks = [block for block in fn.blocks if block.name in seen]
    for block in fn.blocks:
        for phi in block.phis:
            phi.args = [(pred, value) for pred, value in phi.args if pred in seen]


def eliminate_dead_code(fn: Function) -> Function:
    """Remove dead code and then unreachable blocks; the function is changed in place."""
    DeadCodeEliminator(fn).eliminate()
    _drop_unreachable(fn)
    return fn


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qbeflow-deadcode", description="Remove dead code from functions."
    )
    parser.add_argument("file", nargs="?", help="input file (default: standard input)")
    args = parser.parse_args(argv)
    text = Path(args.file).read_text() if args.file else sys.stdin.read()
    try:
        functions = parse_functions(text)
    except ParseError as error:
        print(f"{parser.prog}: {error}", file=sys.stderr)
        return 1
    for fn in functions:
        sys.stdout.write(format_function(eliminate_dead_code(fn)))
    return 0


if __name__ == "__main__":
    sys.exit(main())