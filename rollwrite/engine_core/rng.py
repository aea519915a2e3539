"""
Deterministic RNG - xorshift128+ with serializable state.

Every dice roll in a session comes from this generator, so the exact bit
behaviour here is what makes replays reproducible:
- Seeds (int, str, word pair, serialized state) normalize to two 64-bit words
- The state is never (0, 0)
- State round-trips through {"algorithm": "xorshift128+", "state": [hex, hex]}

All arithmetic is done on Python ints masked to 64 bits.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Union

ALGORITHM = "xorshift128+"

UINT64_MASK = (1 << 64) - 1
TWO_POW_64 = 1 << 64
TWO_POW_53 = float(1 << 53)

_GOLDEN_GAMMA = 0x9E3779B97F4A7C15
_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3


class RngRangeError(ValueError):
    """Raised when a draw is requested with invalid bounds."""


class UnsupportedRngAlgorithmError(ValueError):
    """Raised when a serialized state names an algorithm other than xorshift128+."""

    def __init__(self, algorithm: Any):
        self.algorithm = algorithm
        super().__init__(f"Unsupported RNG algorithm: {algorithm}")


@dataclass(frozen=True)
class SerializedRngState:
    """
    Wire form of a generator state.

    Both words are 0x-prefixed, lower-case, 16-digit hex strings.
    """
    algorithm: str
    state: tuple[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {"algorithm": self.algorithm, "state": [self.state[0], self.state[1]]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SerializedRngState:
        algorithm = data.get("algorithm")
        if algorithm != ALGORITHM:
            raise UnsupportedRngAlgorithmError(algorithm)
        state = data.get("state")
        if not isinstance(state, (list, tuple)) or len(state) != 2:
            raise RngRangeError("Serialized RNG state must contain exactly two words")
        return cls(algorithm=algorithm, state=(str(state[0]), str(state[1])))


SeedInput = Union[int, str, tuple[int, int], list, SerializedRngState, dict, None]


def _to_uint64(value: int) -> int:
    return value & UINT64_MASK


def _to_hex(value: int) -> str:
    return f"0x{value:016x}"


def _parse_word(word: int | str) -> int:
    if isinstance(word, bool):
        raise RngRangeError("RNG state words must be integers")
    if isinstance(word, int):
        return _to_uint64(word)
    text = str(word).strip().lower()
    if text.startswith("0x"):
        return _to_uint64(int(text, 16))
    return _to_uint64(int(text, 10))


def splitmix64(seed: int):
    """
    Return a splitmix64 generator function seeded with `seed`.

    Each call advances the internal counter and returns the next mixed word.
    """
    state = _to_uint64(seed)

    def next_word() -> int:
        nonlocal state
        state = _to_uint64(state + _GOLDEN_GAMMA)
        z = state
        z = _to_uint64((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9)
        z = _to_uint64((z ^ (z >> 27)) * 0x94D049BB133111EB)
        return z ^ (z >> 31)

    return next_word


def hash_string(seed: str) -> int:
    """FNV-1a over the UTF-16 code units of `seed`."""
    hash_value = _FNV_OFFSET
    encoded = seed.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        hash_value ^= encoded[i] | (encoded[i + 1] << 8)
        hash_value = _to_uint64(hash_value * _FNV_PRIME)
    return hash_value


def normalize_seed(seed: SeedInput) -> tuple[int, int]:
    """
    Normalize any accepted seed into a two-word state.

    - int: two splitmix64 draws
    - str: FNV-1a hash, then two splitmix64 draws
    - (s0, s1) pair: masked to 64 bits
    - serialized state (dataclass or dict): parsed hex words
    - None: same as seed 1
    """
    if seed is None:
        return normalize_seed(1)

    if isinstance(seed, bool):
        raise RngRangeError("Boolean values are not valid RNG seeds")

    if isinstance(seed, int):
        generator = splitmix64(seed)
        return generator(), generator() or 1

    if isinstance(seed, str):
        generator = splitmix64(hash_string(seed))
        return generator(), generator() or 1

    if isinstance(seed, dict):
        seed = SerializedRngState.from_dict(seed)

    if isinstance(seed, SerializedRngState):
        if seed.algorithm != ALGORITHM:
            raise UnsupportedRngAlgorithmError(seed.algorithm)
        words = seed.state
    elif isinstance(seed, (tuple, list)) and len(seed) == 2:
        words = seed
    else:
        raise RngRangeError(f"Unsupported seed input: {seed!r}")

    state0 = _parse_word(words[0])
    state1 = _parse_word(words[1])
    if state0 == 0 and state1 == 0:
        state1 = 1
    return state0, state1


def _as_integer(value: Any, message: str) -> int:
    if isinstance(value, bool):
        raise RngRangeError(message)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise RngRangeError(message)


class Xorshift128Plus:
    """
    xorshift128+ pseudo-random generator.

    Usage:
        rng = Xorshift128Plus(42)
        die = rng.next_int(6) + 1

        saved = rng.serialize()
        restored = Xorshift128Plus.deserialize(saved)
    """

    def __init__(self, seed: SeedInput = None):
        self._state0, self._state1 = normalize_seed(seed)
        if self._state0 == 0 and self._state1 == 0:
            self._state1 = 1

    @classmethod
    def deserialize(cls, serialized: SerializedRngState | dict[str, Any]) -> Xorshift128Plus:
        """Restore a generator from its serialized state."""
        return cls(serialized)

    def clone(self) -> Xorshift128Plus:
        """Independent generator with the same current state."""
        clone = Xorshift128Plus.__new__(Xorshift128Plus)
        clone._state0 = self._state0
        clone._state1 = self._state1
        return clone

    def restore_from(self, other: Xorshift128Plus):
        """Adopt the state of another generator."""
        self._state0 = other._state0
        self._state1 = other._state1

    @property
    def state(self) -> tuple[int, int]:
        return self._state0, self._state1

    def serialize(self) -> SerializedRngState:
        return SerializedRngState(
            algorithm=ALGORITHM,
            state=(_to_hex(self._state0), _to_hex(self._state1)),
        )

    def next_big_int(self) -> int:
        """Advance one step and return the raw 64-bit output."""
        s1 = self._state0
        s0 = self._state1
        self._state0 = s0
        s1 ^= _to_uint64(s1 << 23)
        s1 ^= s1 >> 17
        s1 ^= s0
        s1 ^= s0 >> 26
        self._state1 = _to_uint64(s1)
        return _to_uint64(self._state1 + s0)

    def next_float(self) -> float:
        """Uniform float in [0, 1) from the top 53 bits."""
        return (self.next_big_int() >> 11) / TWO_POW_53

    def next_int(self, max_exclusive: int) -> int:
        """
        Uniform integer in [0, max_exclusive).

        Rejection sampling against 2^64 - (2^64 mod n) keeps the result
        free of modulo bias.
        """
        bound = _as_integer(max_exclusive, "max_exclusive must be a positive integer")
        if bound <= 0:
            raise RngRangeError("max_exclusive must be a positive integer")
        threshold = TWO_POW_64 - (TWO_POW_64 % bound)
        while True:
            value = self.next_big_int()
            if value < threshold:
                return value % bound

    def next_range(self, min_inclusive: int, max_exclusive: int) -> int:
        """Uniform integer in [min_inclusive, max_exclusive)."""
        low = _as_integer(min_inclusive, "Range boundaries must be integers")
        high = _as_integer(max_exclusive, "Range boundaries must be integers")
        if high <= low:
            raise RngRangeError("max_exclusive must be greater than min_inclusive")
        return low + self.next_int(high - low)

    def next(self) -> float:
        return self.next_float()

    def __repr__(self) -> str:
        return f"Xorshift128Plus(state=({_to_hex(self._state0)}, {_to_hex(self._state1)}))"
