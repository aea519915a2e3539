"""
Tests for the xorshift128+ generator.

Tests:
- Reference outputs for known states
- Seed normalization (int, str, pair, serialized)
- Serialization round trips
- Range checks
"""

import pytest

from ..engine_core.rng import (
    RngRangeError,
    SerializedRngState,
    UnsupportedRngAlgorithmError,
    Xorshift128Plus,
    hash_string,
    normalize_seed,
)


class TestReferenceOutputs:
    """Outputs for hand-checked states."""

    def test_first_outputs_from_zero_one(self):
        """State (0, 1) yields 2, then 8388673."""
        rng = Xorshift128Plus((0, 1))

        assert rng.next_big_int() == 2
        assert rng.state == (1, 1)
        assert rng.next_big_int() == 8388673

    def test_integer_seed_uses_splitmix64(self):
        """Seed 0 expands to the first two splitmix64 outputs."""
        rng = Xorshift128Plus(0)

        assert rng.state == (0xE220A8397B1DCDAF, 0x6E789E6AA1B965F4)

    def test_next_float_uses_top_bits(self):
        """Output 2 has no bits above bit 10, so the float is 0.0."""
        assert Xorshift128Plus((0, 1)).next_float() == 0.0

    def test_float_range(self):
        rng = Xorshift128Plus(7)
        for _ in range(200):
            value = rng.next_float()
            assert 0.0 <= value < 1.0


class TestSeeding:
    """Tests for seed normalization."""

    def test_same_seed_same_sequence(self):
        a = Xorshift128Plus(1234)
        b = Xorshift128Plus(1234)

        assert [a.next_big_int() for _ in range(10)] == [b.next_big_int() for _ in range(10)]

    def test_empty_string_hashes_to_fnv_offset(self):
        """The empty string seeds like the bare FNV-1a offset basis."""
        assert hash_string("") == 0xCBF29CE484222325
        assert Xorshift128Plus("").state == Xorshift128Plus(0xCBF29CE484222325).state

    def test_string_seeds_differ(self):
        assert Xorshift128Plus("alpha").state != Xorshift128Plus("beta").state

    def test_all_zero_state_is_repaired(self):
        """A (0, 0) state would be stuck forever; it becomes (0, 1)."""
        assert normalize_seed((0, 0)) == (0, 1)
        rng = Xorshift128Plus.deserialize({
            "algorithm": "xorshift128+",
            "state": ["0x0000000000000000", "0x0000000000000000"],
        })
        assert rng.state == (0, 1)

    def test_none_matches_seed_one(self):
        assert Xorshift128Plus(None).state == Xorshift128Plus(1).state

    def test_boolean_seed_rejected(self):
        with pytest.raises(RngRangeError):
            Xorshift128Plus(True)

    def test_pair_words_masked_to_64_bits(self):
        assert normalize_seed(((1 << 64) + 5, 3)) == (5, 3)


class TestSerialization:
    """Tests for state serialization."""

    def test_serialize_format(self):
        """Words are 0x-prefixed 16-digit lower-case hex."""
        state = Xorshift128Plus((0xABC, 1)).serialize()

        assert state.algorithm == "xorshift128+"
        assert state.state == ("0x0000000000000abc", "0x0000000000000001")
        assert state.to_dict() == {
            "algorithm": "xorshift128+",
            "state": ["0x0000000000000abc", "0x0000000000000001"],
        }

    def test_restored_generator_continues_sequence(self):
        rng = Xorshift128Plus("replay")
        for _ in range(5):
            rng.next_big_int()

        restored = Xorshift128Plus.deserialize(rng.serialize().to_dict())

        assert [restored.next_int(6) for _ in range(20)] == [rng.next_int(6) for _ in range(20)]

    def test_unsupported_algorithm(self):
        with pytest.raises(UnsupportedRngAlgorithmError):
            SerializedRngState.from_dict({"algorithm": "mt19937", "state": ["0x1", "0x2"]})

    def test_malformed_state(self):
        with pytest.raises(RngRangeError):
            SerializedRngState.from_dict({"algorithm": "xorshift128+", "state": ["0x1"]})


class TestCloneAndRestore:
    """Tests for clone() and restore_from()."""

    def test_clone_is_independent(self):
        rng = Xorshift128Plus(99)
        clone = rng.clone()

        clone.next_big_int()
        clone.next_big_int()

        assert rng.state != clone.state
        assert rng.state == Xorshift128Plus(99).state

    def test_restore_from_adopts_state(self):
        rng = Xorshift128Plus(99)
        clone = rng.clone()
        expected = clone.next_big_int()

        rng.restore_from(clone)

        assert rng.state == clone.state
        assert rng.next_big_int() == clone.next_big_int()
        assert expected != 0


class TestRanges:
    """Tests for bounded draws."""

    def test_next_int_range(self):
        rng = Xorshift128Plus(5)
        values = {rng.next_int(6) for _ in range(500)}

        assert values == {0, 1, 2, 3, 4, 5}

    def test_next_int_roughly_uniform(self):
        rng = Xorshift128Plus(2024)
        counts = [0] * 6
        for _ in range(6000):
            counts[rng.next_int(6)] += 1

        assert all(800 < count < 1200 for count in counts)

    def test_next_int_one_is_always_zero(self):
        rng = Xorshift128Plus(5)
        assert all(rng.next_int(1) == 0 for _ in range(20))

    @pytest.mark.parametrize("bad", [0, -3, 2.5, True])
    def test_next_int_rejects_bad_bounds(self, bad):
        with pytest.raises(RngRangeError):
            Xorshift128Plus(5).next_int(bad)

    def test_next_range(self):
        rng = Xorshift128Plus(11)
        for _ in range(100):
            assert 10 <= rng.next_range(10, 13) < 13

    def test_next_range_rejects_empty_interval(self):
        with pytest.raises(RngRangeError):
            Xorshift128Plus(11).next_range(4, 4)
