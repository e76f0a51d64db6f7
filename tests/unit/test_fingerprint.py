"""Tests for fingerprint and canonical encoding."""

from dataclasses import dataclass
from enum import Enum, IntEnum, StrEnum

import pytest

from deltasync.fingerprint import DEFAULT_SEED, canonical_bytes, fingerprint


@dataclass
class Position:
    x: int
    y: int


class Color(Enum):
    RED = 1
    BLUE = 2


class Level(IntEnum):
    LOW = 1


class Mode(StrEnum):
    FAST = "fast"


class Tagged:
    def __init__(self, name):
        self.name = name

    def to_dict(self):
        return {"name": self.name}


class TestFingerprintDeterminism:
    """Fingerprints depend on content only."""

    def test_known_seed(self):
        assert DEFAULT_SEED == 1337

    def test_same_value_same_fingerprint(self):
        assert fingerprint({1: "A", 2: "B"}) == fingerprint({1: "A", 2: "B"})

    def test_insertion_order_does_not_matter(self):
        a = {}
        a[1] = "A"
        a[2] = "B"
        b = {}
        b[2] = "B"
        b[1] = "A"
        assert fingerprint(a) == fingerprint(b)

    def test_set_order_does_not_matter(self):
        assert fingerprint({"x", "y", "z"}) == fingerprint({"z", "y", "x"})

    def test_set_and_frozenset_agree(self):
        assert fingerprint({1, 2}) == fingerprint(frozenset({1, 2}))

    def test_fits_in_64_bits(self):
        fp = fingerprint({"key": "value"})
        assert 0 <= fp < 2**64

    def test_stable_across_calls(self):
        values = [fingerprint({"a": [1, 2, {"b": None}]}) for _ in range(5)]
        assert len(set(values)) == 1

    def test_nested_mappings_canonicalized(self):
        a = {"outer": {"x": 1, "y": 2}}
        b = {"outer": {"y": 2, "x": 1}}
        assert fingerprint(a) == fingerprint(b)


class TestFingerprintSensitivity:
    """Different content gives different fingerprints."""

    def test_different_values(self):
        assert fingerprint({1: "A"}) != fingerprint({1: "B"})

    def test_different_keys(self):
        assert fingerprint({1: "A"}) != fingerprint({2: "A"})

    def test_empty_vs_nonempty(self):
        assert fingerprint({}) != fingerprint({1: "A"})

    def test_seed_changes_fingerprint(self):
        value = {1: "A"}
        assert fingerprint(value, seed=1) != fingerprint(value, seed=2)

    def test_string_boundaries(self):
        assert fingerprint(["ab", "c"]) != fingerprint(["a", "bc"])

    def test_nesting_boundaries(self):
        assert fingerprint([[1], [2]]) != fingerprint([[1, 2]])

    def test_list_and_tuple_differ(self):
        assert fingerprint([1, 2]) != fingerprint((1, 2))

    def test_fractional_float_differs_from_ints(self):
        assert fingerprint(1.5) != fingerprint(1)
        assert fingerprint(1.5) != fingerprint(2)

    def test_str_and_bytes_differ(self):
        assert fingerprint("a") != fingerprint(b"a")

    def test_large_and_negative_ints(self):
        values = [0, -1, 1, 255, 256, -256, 2**64, -(2**100)]
        fps = {fingerprint(v) for v in values}
        assert len(fps) == len(values)


class TestCanonicalBytes:
    """Tests for canonical_bytes encoding."""

    def test_negative_zero_normalized(self):
        assert canonical_bytes(-0.0) == canonical_bytes(0.0)

    def test_dataclass_encoded_by_fields(self):
        assert canonical_bytes(Position(1, 2)) == canonical_bytes(Position(1, 2))
        assert canonical_bytes(Position(1, 2)) != canonical_bytes(Position(2, 1))

    def test_dataclass_differs_from_plain_dict(self):
        assert canonical_bytes(Position(1, 2)) != canonical_bytes({"x": 1, "y": 2})

    def test_enum(self):
        assert canonical_bytes(Color.RED) != canonical_bytes(Color.BLUE)
        assert canonical_bytes(Color.RED) != canonical_bytes(1)

    def test_to_dict_objects(self):
        assert canonical_bytes(Tagged("a")) == canonical_bytes(Tagged("a"))
        assert canonical_bytes(Tagged("a")) != canonical_bytes(Tagged("b"))

    def test_mixed_key_types_sortable(self):
        assert canonical_bytes({1: "a", "1": "b", (1,): "c"}) == canonical_bytes(
            {(1,): "c", "1": "b", 1: "a"}
        )


class TestFingerprintErrors:
    """Invalid inputs raise."""

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            fingerprint(object())

    def test_unsupported_nested_type(self):
        with pytest.raises(TypeError):
            fingerprint({"k": object()})

    def test_negative_seed(self):
        with pytest.raises(ValueError):
            fingerprint({}, seed=-1)

    def test_oversized_seed(self):
        with pytest.raises(ValueError):
            fingerprint({}, seed=2**64)


class TestFingerprintFollowsEquality:
    """Values that compare equal with ``==`` fingerprint the same."""

    @pytest.mark.parametrize(
        "a, b",
        [
            (1, 1.0),
            (1, True),
            (0, False),
            (0, -0.0),
            (2**70, float(2**70)),
            ([1, 2], [1.0, True + 1]),
            ({1: "a"}, {1.0: "a"}),
            ({True: (0,)}, {1: (False,)}),
            ({1, 2}, {1.0, 2.0}),
            (Level.LOW, 1),
            (Mode.FAST, "fast"),
            (b"ab", bytearray(b"ab")),
        ],
    )
    def test_equal_values_agree(self, a, b):
        assert a == b
        assert fingerprint(a) == fingerprint(b)

    @pytest.mark.parametrize(
        "a, b",
        [
            (1, "1"),
            ([1, 2], (1, 2)),
            (Color.RED, 1),
            (0.5, 0),
            ("a", b"a"),
        ],
    )
    def test_unequal_values_differ(self, a, b):
        assert a != b
        assert fingerprint(a) != fingerprint(b)

    def test_nan_payloads_normalized(self):
        assert canonical_bytes(float("nan")) == canonical_bytes(-float("nan"))
