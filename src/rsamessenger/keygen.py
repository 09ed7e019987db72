"""Core Key Generation Utility: probable primes, modular inverses and key pair derivation.

Primes are drawn from cryptographically strong random byte pools and screened by trial division before a
Miller-Rabin test. The byte budgets follow the messenger key layout: p takes half of the requested size plus a
byte-aligned 20% surplus, q takes the rest, and the public exponent comes from its own fixed 4-byte pool.

Typical usage example:

    p, q, e = generate_primes(1024)
    n, d, e = derive_key_material(1024)
    private_text, public_text = generate_key_pair(1024)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import secrets
import threading
import time
from typing import Callable
import warnings

from rsamessenger import codec
from rsamessenger.errors import EntropyExhaustedError
from rsamessenger.errors import GenerationCancelledError
from rsamessenger.errors import NotInvertibleError

RandomSource = Callable[[int], bytes]

DEFAULT_WITNESSES: int = 10
E_BYTES: int = 4
MIN_KEY_BITS: int = 32
WEAK_KEY_BITS: int = 1024
SMALL_PRIME_BOUND: int = 1000

_SMALL_PRIMES: list[int] = []
_SMALL_PRIMES_CAP: int = 0


def _sieve(n: int = SMALL_PRIME_BOUND) -> list[int]:
    """Implements the Sieve of Eratosthenes over odd numbers only.

    Args:
        n: The number up to which to generate primes. Must be >= 0.

    Returns:
        A list of primes up to `n`.
    """
    if n < 2:
        return []
    i_size = (n - 1) // 2
    candidate: list[bool] = [True] * i_size
    for i in range(int(n**0.5) // 2):
        if candidate[i]:
            r = 2 * i + 3
            for j in range((r * r - 3) // 2, i_size, r):
                candidate[j] = False
    return [2] + [(no * 2 + 3) for no, ele in enumerate(candidate) if ele]


def get_small_primes(n: int = SMALL_PRIME_BOUND, change: bool = False) -> list[int]:
    """Get the small primes, sieving only when the cache does not cover `n`.

    Args:
        n: The number up to which primes are required. Must be >= 0.
        change: Whether to force a recomputation of primes. Defaults to False.

    Returns:
        List of primes in ascending order, covering at least `n` unless `change` is True.

    Raises:
        ValueError: If `n` is negative.
    """
    if n < 0:
        raise ValueError("n must be >= 0")
    global _SMALL_PRIMES
    global _SMALL_PRIMES_CAP
    if n > _SMALL_PRIMES_CAP or change or not _SMALL_PRIMES:
        _SMALL_PRIMES = _sieve(n)
        _SMALL_PRIMES_CAP = n
    return _SMALL_PRIMES


def _trial_division(no: int, n: int = SMALL_PRIME_BOUND) -> bool:
    """Check `no` against the known small primes.

    Returns:
        False if `no` cannot be prime, True otherwise.
    """
    if no < 2:
        return False
    for prime in get_small_primes(n):
        if prime**2 > no:
            return True
        if no % prime == 0:
            return False
    return True


def _random_bytes(size: int, randbytes: RandomSource) -> bytes:
    """Pull `size` bytes from the random source, treating any failure as fatal."""
    try:
        raw = randbytes(size)
    except (OSError, NotImplementedError) as exc:
        raise EntropyExhaustedError(f"Random source failed while drawing {size} bytes.") from exc
    if len(raw) != size:
        raise EntropyExhaustedError(f"Random source returned {len(raw)} of {size} requested bytes.")
    return raw


def _nonzero_bytes(size: int, randbytes: RandomSource) -> bytes:
    """Draw `size` random bytes none of which is zero, redrawing only the dropped positions."""
    raw = bytes(b for b in _random_bytes(size, randbytes) if b)
    while len(raw) < size:
        raw += bytes(b for b in _random_bytes(size - len(raw), randbytes) if b)
    return raw


def _candidate(raw: bytes) -> int:
    """Reads a random pool as a signed integer and keeps its magnitude."""
    return abs(int.from_bytes(raw, byteorder=codec.BYTE_ORDER, signed=True))


def _draw_witness(w: int, randbytes: RandomSource) -> int:
    """Draw a uniform Miller-Rabin witness in [2, w - 2] by rejection sampling."""
    size = (w.bit_length() + 7) // 8
    msk = (1 << w.bit_length()) - 1
    while True:
        a = codec.bytes_to_integer(_random_bytes(size, randbytes)) & msk
        if 2 <= a <= w - 2:
            return a


def _miller_rabin(w: int, iters: int, randbytes: RandomSource = secrets.token_bytes) -> bool:
    """Perform Miller-Rabin primality test.

    Args:
        w: Odd integer to be tested.
        iters: Number of Miller-Rabin iterations to perform.
        randbytes: Source of random bytes for witness selection.

    Returns:
        True if `w` is probably prime, False otherwise.
    """
    if w <= 3:
        return w == 2 or w == 3
    tw = w - 1
    s = (tw & -tw).bit_length() - 1
    d = tw >> s
    for _ in range(iters):
        a = _draw_witness(w, randbytes)
        x = pow(a, d, w)
        if x == 1 or x == tw:
            continue
        for _ in range(1, s):
            x = pow(x, 2, w)
            if x == tw:
                break
            if x == 1:
                return False
        else:
            return False
    return True


def is_probably_prime(value: int,
                      witnesses: int = DEFAULT_WITNESSES,
                      randbytes: RandomSource = secrets.token_bytes) -> bool:
    """Composite primality test: trial division by small primes, then Miller-Rabin.

    Values covered by the small prime table are decided exactly. Anything larger that survives trial division gets
    `witnesses` Miller-Rabin rounds, for a false positive probability of at most 4**-witnesses.

    Args:
        value: The candidate to test.
        witnesses: Number of Miller-Rabin rounds. Non-positive counts fall back to `DEFAULT_WITNESSES`.
        randbytes: Source of random bytes for witness selection.

    Returns:
        True if `value` is probably prime, False otherwise.

    Raises:
        EntropyExhaustedError: If the random source fails.
    """
    if value < 2:
        return False
    if value % 2 == 0:
        return value == 2
    if witnesses <= 0:
        witnesses = DEFAULT_WITNESSES
    if not _trial_division(value):
        return False
    if value <= SMALL_PRIME_BOUND**2:
        return True
    return _miller_rabin(value, witnesses, randbytes)


def prime_byte_sizes(bits: int) -> tuple[int, int]:
    """Split a key size into the byte budgets for p and q.

    p gets half the key plus 20% of that half, the surplus rounded up to a whole number of bytes' worth of bits.
    q gets whatever remains of the total byte budget.

    Args:
        bits: Key size in bits. Multiple of 8 and at least `MIN_KEY_BITS`.

    Returns:
        Tuple of (p_len, q_len) in bytes.
    """
    half = bits // 2
    extra = half // 5
    extra += -extra % 8
    p_len = (half + extra) // 8
    return p_len, bits // 8 - p_len


def generate_primes(bits: int,
                    cancel: threading.Event | None = None,
                    timeout: float | None = None,
                    randbytes: RandomSource = secrets.token_bytes) -> tuple[int, int, int]:
    """Generates the prime triple (p, q, e) for a key of `bits` bits.

    Each round draws a fresh non-zero pool for every slot still open and keeps the first probable prime seen per slot.
    There is no iteration cap; the loop can only be stopped through `cancel` or `timeout`.

    Args:
        bits: Key size in bits. Multiple of 8 and at least `MIN_KEY_BITS`, not re-validated here.
        cancel: Optional token; generation stops once `cancel.is_set()` is true.
        timeout: Optional limit in seconds.
        randbytes: Source of random bytes.

    Returns:
        Tuple of probable primes (p, q, e).

    Raises:
        GenerationCancelledError: If cancelled or out of time.
        EntropyExhaustedError: If the random source fails.
    """
    p_len, q_len = prime_byte_sizes(bits)
    sizes = (p_len, q_len, E_BYTES)
    found: list[int | None] = [None, None, None]
    deadline = None if timeout is None else time.monotonic() + timeout
    while None in found:
        if cancel is not None and cancel.is_set():
            raise GenerationCancelledError("Prime generation cancelled.")
        if deadline is not None and time.monotonic() >= deadline:
            raise GenerationCancelledError(f"Prime generation exceeded {timeout} seconds.")
        for slot, size in enumerate(sizes):
            if found[slot] is not None:
                continue
            cand = _candidate(_nonzero_bytes(size, randbytes))
            if is_probably_prime(cand, randbytes=randbytes):
                found[slot] = cand
    return found[0], found[1], found[2]


def eea(a: int, b: int) -> tuple[int, int, int]:
    """Implements the Extended Euclidean Algorithm.

    Such that a*s0 + b*t0 = r0 = gcd(a, b).

    Returns:
        Greatest common divisor of two integers, as well as the Bezout coefficients.
    """
    r0, r1 = a, b
    s0, s1, t0, t1 = 1, 0, 0, 1
    while r1 != 0:
        q = r0 // r1
        r0, r1 = r1, r0 - q * r1
        s0, s1 = s1, s0 - q * s1
        t0, t1 = t1, t0 - q * t1
    return r0, s0, t0


def mod_inverse(a: int, n: int) -> int:
    """Modular inverse of `a` modulo `n`, normalised into [0, n).

    Raises:
        NotInvertibleError: If `a` and `n` are not coprime.
        ValueError: If `n` is not positive.
    """
    if n <= 0:
        raise ValueError("Modulus must be positive.")
    g, s, _ = eea(a % n, n)
    if g != 1:
        raise NotInvertibleError(f"{a} has no inverse modulo {n}: gcd is {g}.")
    return s % n


def derive_key_material(bits: int,
                        cancel: threading.Event | None = None,
                        timeout: float | None = None,
                        randbytes: RandomSource = secrets.token_bytes) -> tuple[int, int, int]:
    """Derives (n, d, e) from a freshly generated prime triple.

    Args:
        bits: Key size in bits. Multiple of 8 and at least `MIN_KEY_BITS`, not re-validated here.
        cancel: Optional cancellation token, see `generate_primes`.
        timeout: Optional limit in seconds for prime generation.
        randbytes: Source of random bytes.

    Returns:
        Tuple of (modulus, private exponent, public exponent).

    Raises:
        NotInvertibleError: If the drawn public exponent is not coprime with (p-1)(q-1).
    """
    if bits < WEAK_KEY_BITS:
        warnings.warn(f"{bits}-bit keys are trivially factorable! Please use with care.", RuntimeWarning)
    p, q, e = generate_primes(bits, cancel, timeout, randbytes)
    n = p * q
    r = (p - 1) * (q - 1)
    d = mod_inverse(e, r)
    return n, d, e


def generate_key_pair(bits: int,
                      cancel: threading.Event | None = None,
                      timeout: float | None = None,
                      randbytes: RandomSource = secrets.token_bytes) -> tuple[str, str]:
    """Generates a key pair as ready-to-persist key text.

    Returns:
        Tuple of (private key text, public key text).
    """
    n, d, e = derive_key_material(bits, cancel, timeout, randbytes)
    return codec.encode_key(d, n), codec.encode_key(e, n)
