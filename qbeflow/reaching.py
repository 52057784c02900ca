"""Reaching-definitions analysis: the definitions that reach the start of each block."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .genkill import gen_kill
from .ir import Function, ParseError, parse_functions


def _predecessor_map(fn: Function) -> dict[str, set[str]]:
    """Predecessor edges used by the analysis.

    The final block in source order is wired to a synthetic exit that replaces
    its first target, so that edge is not followed.
    """
    last = fn.blocks[-1].name if fn.blocks else None
    preds: dict[str, set[str]] = {block.name: set() for block in fn.blocks}
    for block in fn.blocks:
        targets = block.successors()[1:] if block.name == last else block.successors()
        for target in targets:
            preds[target].add(block.name)
    return preds


def reaching_definitions(fn: Function) -> dict[str, list[str]]:
    """Map each block name to the sorted definitions (``@block%temp``) reaching its entry."""
    sets = gen_kill(fn)
    gen = {name: set(g) for name, (g, _) in sets.items()}
    kill = {name: set(k) for name, (_, k) in sets.items()}
    preds = _predecessor_map(fn)
    reaching: dict[str, set[str]] = {block.name: set() for block in fn.blocks}

    changed = True
    while changed:
        changed = False
        for block in fn.blocks:
            updated: set[str] = set()
            for pred in preds[block.name]:
                updated |= gen[pred] | (reaching[pred] - kill[pred])
            if updated != reaching[block.name]:
                reaching[block.name] = updated
                changed = True

    return {name: sorted(defs) for name, defs in reaching.items()}


def format_reaching_definitions(fn: Function) -> str:
    """Write the reaching-definitions set of every block."""
    lines = []
    for name, defs in reaching_definitions(fn).items():
        lines.append(f"@{name}")
        lines.append("\trd_in = " + "".join(f"{entry} " for entry in defs))
    return "".join(line + "\n" for line in lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qbeflow-reaching", description="Print reaching definitions per block."
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
        sys.stdout.write(format_reaching_definitions(fn))
    return 0


if __name__ == "__main__":
    sys.exit(main())