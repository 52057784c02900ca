"""Sieve of Eratosthenes."""

from __future__ import annotations

import argparse
import sys


def sieve(n: int) -> list[bool]:
    """Return flags for 0..n-1 that are true exactly for the primes."""
    if n < 0:
        raise ValueError("count must not be negative")
    flags = [True] * n
    flags[:2] = [False] * min(n, 2)
    candidate = 2
    while candidate * candidate < n:
        if flags[candidate]:
            start = candidate * candidate
            flags[start::candidate] = [False] * len(range(start, n, candidate))
        candidate += 1
    return flags


def primes_below(n: int) -> list[int]:
    """Return the primes smaller than n in increasing order."""
    return [number for number, is_prime in enumerate(sieve(n)) if is_prime]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="qbeflow-sieve", description="Print the primes below a count read from input."
    )
    parser.add_argument("count", nargs="?", help="upper bound (default: read from standard input)")
    args = parser.parse_args(argv)
    words = [args.count] if args.count is not None else sys.stdin.read().split()
    try:
        if not words:
            raise ValueError("no count given")
        primes = primes_below(int(words[0]))
    except ValueError as error:
        print(f"{parser.prog}: {error}", file=sys.stderr)
        return 1
    sys.stdout.write("".join(f"{prime} " for prime in primes))
    return 0


if __name__ == "__main__":
    sys.exit(main())