"""Move validation for the prime chain.

A move appends one decimal digit to the current chain number. It is accepted
when the extended number is prime, or when the host has granted a one-shot
exception for the room.
"""

from dataclasses import dataclass
from typing import Callable, Optional

# Deterministic Miller-Rabin witnesses for every n < 3.3e24; beyond that the
# same set gives a strong probable-prime test.
_WITNESSES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71)


def is_prime(n: int) -> bool:
    if n < 2:
        return False
    for p in _WITNESSES:
        if n == p:
            return True
        if n % p == 0:
            return False

    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for a in _WITNESSES:
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def extend_chain(current: int, digit: int) -> int:
    """Append ``digit`` to the decimal form of ``current`` (23, 9 -> 239)."""
    return int(f"{current}{digit}")


def parse_digit(value) -> Optional[int]:
    """Return ``value`` as a single decimal digit, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 9 else None
    if isinstance(value, str):
        value = value.strip()
        if len(value) == 1 and value in '0123456789':
            return int(value)
    return None


@dataclass(frozen=True)
class MoveVerdict:
    candidate: int
    accepted: bool
    by_exception: bool


def validate_move(
    current: int,
    digit: int,
    allow_exception: bool,
    primality: Callable[[int], bool] = is_prime,
) -> MoveVerdict:
    candidate = extend_chain(current, digit)
    prime = primality(candidate)
    return MoveVerdict(
        candidate=candidate,
        accepted=prime or allow_exception,
        by_exception=allow_exception and not prime,
    )
