"""Live-variable analysis: the temporaries live at the end of each block."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .defuse import def_use
from .ir import Function, ParseError, parse_functions


def _successor_map(fn: Function) -> dict[str, set[str]]:
    """Successor edges used by the analysis.

    The final block in source order is wired to a synthetic exit that replaces
    its first target, so that edge carries nothing into the result.
    """
    last = fn.blocks[-1].name if fn.blocks else None
    return {
        block.name: set(block.successors()[1:] if block.name == last else block.successors())
        for block in fn.blocks
    }


def live_out(fn: Function) -> dict[str, list[str]]:
    """Map each block name to the sorted temporaries live on leaving it."""
    sets = def_use(fn)
    defs = {name: set(defined) for name, (defined, _) in sets.items()}
    uses = {name: set(used) for name, (_, used) in sets.items()}
    successors = _successor_map(fn)
    live: dict[str, set[str]] = {block.name: set() for block in fn.blocks}

    changed = True
    while changed:
        changed = False
        for block in fn.blocks:
            updated: set[str] = set()
            for succ in successors[block.name]:
                updated |= uses[succ] | (live[succ] - defs[succ])
            if updated != live[block.name]:
                live[block.name] = updated
                changed = True

    return {name: sorted(temps) for name, temps in live.items()}


def format_live_out(fn: Function) -> str:
    """Write the live-out set of every block."""
    lines = []
    for name, temps in live_out(fn).items():
        lines.append(f"@{name}")
        lines.append("\tlv_out = " + "".join(f"%{temp} " for temp in temps))
    return "".join(line + "\n" for line in lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qbeflow-liveness", description="Print live-out variables per block."
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
        sys.stdout.write(format_live_out(fn))
    return 0


if __name__ == "__main__":
    sys.exit(main())