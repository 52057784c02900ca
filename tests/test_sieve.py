import io

import pytest

from qbeflow.sieve import main, primes_below, sieve


def test_primes_below_thirty():
    assert primes_below(30) == [2, 3, 5, 7, 11, 13, 17, 19, 23, 29]


@pytest.mark.parametrize("n", [0, 1, 2, 3, 10, 97, 100])
def test_length_matches(n):
    assert len(sieve(n)) == n


@pytest.mark.parametrize("n", [0, 1, 2])
def test_small_counts_have_no_primes(n):
    assert primes_below(n) == []


@pytest.mark.parametrize("n", [50, 101, 256])
def test_products_are_never_prime(n):
    flags = sieve(n)
    for a in range(2, n):
        for b in range(2, n // a + 1):
            if a * b < n:
                assert not flags[a * b]


def test_primes_consistent_with_flags():
    flags = sieve(200)
    primes = primes_below(200)
    assert [flags[p] for p in primes] == [True] * len(primes)
    assert sum(flags) == len(primes)
    assert primes == sorted(primes)


def test_prefix_is_stable():
    assert sieve(500)[:120] == sieve(120)


def test_negative_count_rejected():
    with pytest.raises(ValueError):
        sieve(-1)


def test_main_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("10\n"))
    assert main([]) == 0
    assert capsys.readouterr().out == "2 3 5 7 "


def test_main_takes_argument(capsys):
    assert main(["30"]) == 0
    assert capsys.readouterr().out.split() == [str(p) for p in primes_below(30)]


def test_main_rejects_bad_input(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("many"))
    assert main([]) == 1
    assert "qbeflow-sieve" in capsys.readouterr().err