"""Tests for the Transform Engine and the score formula."""

from __future__ import annotations

import pytest

from biocredits.errors import UnsupportedOperation
from biocredits.systems.cipher.codec import ReversibleCodec
from biocredits.systems.cipher.transform import (
    OPERATION_FACTORS,
    OperationKind,
    TransformEngine,
    compute_score,
    parse_operation,
    preview_score,
)


def _make_engine(lenient: bool = False) -> TransformEngine:
    return TransformEngine(ReversibleCodec(), lenient=lenient)


class TestApply:
    @pytest.mark.parametrize("op", list(OperationKind))
    def test_documented_arithmetic(self, op: OperationKind):
        engine = _make_engine()
        codec = engine.codec
        encrypted = codec.encode(60.0)
        result = engine.apply(op, encrypted)
        assert codec.decode(result) == pytest.approx(60.0 * OPERATION_FACTORS[op])

    def test_increase_gives_66(self):
        engine = _make_engine()
        result = engine.apply(OperationKind.INCREASE_10PCT, engine.codec.encode(60.0))
        assert engine.codec.decode(result) == pytest.approx(66.0)

    def test_result_is_encrypted(self):
        engine = _make_engine()
        result = engine.apply(OperationKind.DOUBLE, engine.codec.encode(5.0))
        assert result.startswith("FHE-")

    def test_identity_returns_input_unchanged(self):
        engine = _make_engine()
        encrypted = engine.codec.encode(12.5)
        assert engine.apply(OperationKind.IDENTITY, encrypted) == encrypted

    def test_accepts_string_names_and_aliases(self):
        engine = _make_engine()
        encrypted = engine.codec.encode(100.0)
        assert engine.codec.decode(engine.apply("double", encrypted)) == pytest.approx(200.0)
        assert engine.codec.decode(engine.apply("increase10%", encrypted)) == pytest.approx(110.0)
        assert engine.codec.decode(engine.apply("decrease10%", encrypted)) == pytest.approx(90.0)

    def test_unknown_operation_raises(self):
        engine = _make_engine()
        with pytest.raises(UnsupportedOperation):
            engine.apply("triple", engine.codec.encode(1.0))

    def test_lenient_unknown_operation_passes_through(self):
        engine = _make_engine(lenient=True)
        encrypted = engine.codec.encode(1.0)
        assert engine.apply("triple", encrypted) == encrypted


class TestParseOperation:
    def test_canonical_and_case(self):
        assert parse_operation("DOUBLE") is OperationKind.DOUBLE
        assert parse_operation(OperationKind.IDENTITY) is OperationKind.IDENTITY

    def test_unknown_is_none(self):
        assert parse_operation("sqrt") is None


class TestScore:
    def test_reference_example(self):
        assert compute_score(12, 25) == 60.0

    def test_zero_inputs(self):
        assert compute_score(0, 25) == 0.0
        assert compute_score(12, 0) == 0.0

    def test_preview(self):
        preview = preview_score(ReversibleCodec(), area_size=25, species_count=12)
        assert preview is not None
        assert preview.score == 60.0
        assert preview.formula == "12 × √25 = 60.00"
        assert ReversibleCodec().decode(preview.encrypted) == 60.0

    def test_preview_none_until_positive(self):
        assert preview_score(ReversibleCodec(), area_size=0, species_count=12) is None
        assert preview_score(ReversibleCodec(), area_size=25, species_count=0) is None
