"""Per-block sets of defined and used temporaries."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .ir import Function, ParseError, parse_functions


def def_use(fn: Function) -> dict[str, tuple[list[str], list[str]]]:
    """Map each block name to (defined, used-before-defined) temporaries, in order seen."""
    defs: dict[str, dict[str, None]] = {block.name: {} for block in fn.blocks}
    uses: dict[str, dict[str, None]] = {block.name: {} for block in fn.blocks}
    for block in fn.blocks:
        defined, used = defs[block.name], uses[block.name]
        for ins in block.instructions:
            for arg in ins.args[:2]:
                if arg.startswith("%") and arg[1:] not in defined:
                    used.setdefault(arg[1:])
            if ins.to:
                defined.setdefault(ins.to)

    last = next((block for block in reversed(fn.blocks) if block.jump is not None), None)
    if last is not None and last.jump.arg and last.jump.arg.startswith("%"):
        name = last.jump.arg[1:]
        if name not in defs[last.name]:
            uses[last.name].setdefault(name)

    return {name: (list(defs[name]), list(uses[name])) for name in defs}


def format_def_use(fn: Function) -> str:
    """Write the def and use sets of every block."""
    lines = []
    for name, (defined, used) in def_use(fn).items():
        lines.append(f"@{name}")
        lines.append("\t def = " + "".join(f"%{entry} " for entry in defined))
        lines.append("\t use = " + "".join(f"%{entry} " for entry in used))
    return "".join(line + "\n" for line in lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qbeflow-defuse", description="Print def and use sets per block."
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
        sys.stdout.write(format_def_use(fn))
    return 0


if __name__ == "__main__":
    sys.exit(main())