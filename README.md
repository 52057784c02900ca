# qbeflow

Classic compiler data-flow analyses for functions written in the QBE
intermediate language, plus a dead code elimination pass. A small sieve of
Eratosthenes is included as well.

## Installation

    pip install .

To run the test suite:

    pip install ".[test]"
    pytest

## Command-line tools

Every analysis command reads QBE IL from the file named on the command line,
or from standard input when no file is given, and prints one report per
function. Data and type definitions in the input are skipped. Malformed
input is reported on standard error and the command exits with status 1.

| Command            | What it prints                                                         |
|--------------------|------------------------------------------------------------------------|
| `qbeflow-defuse`   | For every block, the temporaries it defines and those it uses first.   |
| `qbeflow-genkill`  | For every block, the definitions it generates and the ones it kills.   |
| `qbeflow-liveness` | For every block, the temporaries live on leaving it.                   |
| `qbeflow-reaching` | For every block, the definitions that reach its entry.                 |
| `qbeflow-deadcode` | Each function rewritten with dead code and unreachable blocks removed. |
| `qbeflow-sieve`    | The primes below a count given as argument or read from standard input. |

For example:

    qbeflow-liveness program.ssa
    qbeflow-deadcode < program.ssa > program.opt.ssa
    qbeflow-sieve 50
    echo 50 | qbeflow-sieve

Blocks are reported in the order they appear in the function: the block
label on a line of its own, followed by indented result lines such as
`def =`, `use =`, `gen =`, `kill =`, `lv_out =` or `rd_in =`. Temporaries
carry the `%` sigil and labels the `@` sigil. Definitions in the gen/kill
and reaching-definitions reports are written as `@block%temp`, so the same
temporary defined in two blocks gives two distinct definitions. Live-out and
reaching sets are printed sorted; def, use, gen and kill sets in the order
they were first seen.

## Library use

    from qbeflow.ir import parse_function, parse_functions, format_function
    from qbeflow.defuse import def_use
    from qbeflow.genkill import gen_kill
    from qbeflow.liveness import live_out
    from qbeflow.reaching import reaching_definitions
    from qbeflow.deadcode import eliminate_dead_code

    fn = parse_function(source_text)
    print(live_out(fn))          # {"start": [...], ...}

    eliminate_dead_code(fn)      # changes fn in place and returns it
    print(format_function(fn))

`qbeflow.ir` holds the data model (`Function`, `Block`, `Phi`,
`Instruction`, `Jump`, `JumpKind`), the readers `parse_functions` and
`parse_function` (the latter requires exactly one function), and the writer
`format_function`. `Function.block(name)` looks a block up by label and
`Block.successors()` gives the labels it may jump to. Malformed input raises
`qbeflow.ir.ParseError`, a `ValueError` whose `line` attribute holds the
line number where known.

Each analysis module also has a `format_...` function (`format_def_use`,
`format_gen_kill`, `format_live_out`, `format_reaching_definitions`) that
renders the report exactly as its command prints it.

The dead code pass is also available as the `DeadCodeEliminator` class:
construct it with a `Function` and call `eliminate()` to rewrite the
function in place. Unlike `eliminate_dead_code`, this does not remove blocks
that became unreachable.

`qbeflow.sieve.sieve(n)` returns a list of flags for `0 .. n-1` that are
true exactly for the primes, and `primes_below(n)` returns the primes
themselves. A negative `n` raises `ValueError`.

## What it does not do

- There is no SSA construction. The dead code pass expects functions that
  are already in SSA form, with every temporary defined once.
- Nothing is compiled to assembly or run; the package only reads, analyses
  and rewrites IL text.