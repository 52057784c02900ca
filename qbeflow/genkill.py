"""Per-block gen and kill sets of definitions."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .ir import Function, ParseError, parse_functions


def gen_kill(fn: Function) -> dict[str, tuple[list[str], list[str]]]:
    """Map each block name to its (gen, kill) definitions written as ``@block%temp``."""
    defined = {
        block.name: list(dict.fromkeys(ins.to for ins in block.instructions if ins.to))
        for block in fn.blocks
    }
    sites: dict[str, list[str]] = {}
    for name, temps in defined.items():
        for temp in temps:
            sites.setdefault(temp, []).append(name)

    return {
        name: (
            [f"@{name}%{temp}" for temp in temps],
            [f"@{other}%{temp}" for temp in temps for other in sites[temp] if other != name],
        )
        for name, temps in defined.items()
    }


def format_gen_kill(fn: Function) -> str:
    """Write the gen and kill sets of every block."""
    lines = []
    for name, (gen, kill) in gen_kill(fn).items():
        lines.append(f"@{name}")
        lines.append("\tgen = " + "".join(f"{entry} " for entry in gen))
        lines.append("\tkill = " + "".join(f"{entry} " for entry in kill))
    return "".join(line + "\n" for line in lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qbeflow-genkill", description="Print gen and kill sets per block."
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
        sys.stdout.write(format_gen_kill(fn))
    return 0


if __name__ == "__main__":
    sys.exit(main())