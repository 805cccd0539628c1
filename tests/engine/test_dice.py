from __future__ import annotations

import random
from datetime import datetime, timezone

import pytest

from inkroll.config import Settings
from inkroll.engine.dice import (
    DiceEngine,
    DiceExpression,
    DiceParseError,
    DiceRangeError,
    FormulaStatistics,
    MalformedFormulaError,
    RollOutcome,
    parse_dice_expression,
    validate_formula,
)


class _ConstantRng:
    """Deterministic RNG that always draws the same value and records bounds."""

    def __init__(self, value: int) -> None:
        self.value = value
        self.calls: list[tuple[int, int]] = []

    def randint(self, low: int, high: int) -> int:
        self.calls.append((low, high))
        return self.value


class _SequenceRng:
    def __init__(self, values: list[int]) -> None:
        self.values = list(values)

    def randint(self, _low: int, _high: int) -> int:
        return self.values.pop(0)


def make_engine(rng=None, **overrides) -> DiceEngine:
    return DiceEngine(rng=rng, settings=Settings.model_validate(overrides))


def test_parse_basic_formula() -> None:
    expression = parse_dice_expression("2d6+3")
    assert expression == DiceExpression(dice_count=2, sides=6, modifier=3)
    assert expression.modifier_is_subtractive is False


def test_parse_subtractive_modifier() -> None:
    expression = parse_dice_expression("3d6-3")
    assert expression.dice_count == 3
    assert expression.sides == 6
    assert expression.modifier == 3
    assert expression.modifier_is_subtractive is True
    assert expression.die_adjustment == -3


def test_parse_without_modifier() -> None:
    expression = parse_dice_expression("1d20")
    assert expression.modifier == 0
    assert expression.modifier_is_subtractive is False
    assert expression.notation == "1d20"


@pytest.mark.parametrize(
    "text", ["d20", "2d6 + 3", "2d6*2", "", "2d6 ", " 2d6", "2D6", "1d20+", "2d6+3d4", "1d6\n"]
)
def test_parse_rejects_malformed(text: str) -> None:
    with pytest.raises(MalformedFormulaError):
        parse_dice_expression(text)


def test_parse_rejects_non_ascii_digits() -> None:
    with pytest.raises(MalformedFormulaError):
        parse_dice_expression("٢d6")


@pytest.mark.parametrize("text", ["0d6", "2d1", "2d0"])
def test_parse_rejects_out_of_range_dice(text: str) -> None:
    assert validate_formula(text)
    with pytest.raises(DiceRangeError):
        parse_dice_expression(text)


def test_parse_errors_are_value_errors() -> None:
    assert issubclass(MalformedFormulaError, DiceParseError)
    assert issubclass(DiceParseError, ValueError)


def test_engine_parse_enforces_configured_limits() -> None:
    engine = make_engine(INKROLL_MAX_DICE=10, INKROLL_MAX_SIDES=100)
    assert engine.parse("10d100").dice_count == 10
    with pytest.raises(DiceRangeError, match="Too many dice"):
        engine.parse("11d6")
    with pytest.raises(DiceRangeError, match="Too many sides"):
        engine.parse("1d101")


def test_default_settings_place_no_cap_on_dice() -> None:
    rng = _ConstantRng(1)
    engine = make_engine(rng)
    assert engine.parse("1001d6").dice_count == 1001
    assert engine.parse("1d100000").sides == 100000

    outcome = engine.roll("1001d6")
    assert len(outcome.per_die_results) == 1001
    assert set(rng.calls) == {(1, 6)}
    assert engine.analyze("1001d6") == FormulaStatistics(minimum=1001, maximum=6006, average=3503.5)


def test_validate_formula() -> None:
    assert validate_formula("2d6")
    assert validate_formula("1d20+5")
    assert validate_formula("3d6-3")
    assert not validate_formula("2d6 ")
    assert not validate_formula("d6")
    assert not validate_formula("")
    assert not validate_formula(None)  # type: ignore[arg-type]


def test_roll_applies_modifier_to_each_die() -> None:
    engine = make_engine(_ConstantRng(4))
    outcome = engine.roll("2d6+3")
    assert outcome.per_die_results == (7, 7)
    assert outcome.total == 14
    assert outcome.source_expression_text == "2d6+3"


def test_roll_subtracts_modifier_from_each_die() -> None:
    engine = make_engine(_SequenceRng([1, 6, 4]))
    outcome = engine.roll("3d6-3", context="Goblin fight")
    assert outcome.per_die_results == (-2, 3, 1)
    assert outcome.total == 2
    assert outcome.context == "Goblin fight"


def test_roll_draws_within_die_bounds() -> None:
    rng = _ConstantRng(1)
    make_engine(rng).roll("4d8")
    assert rng.calls == [(1, 8)] * 4


def test_roll_uses_injected_clock() -> None:
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    engine = DiceEngine(rng=_ConstantRng(3), settings=Settings(), clock=lambda: moment)
    assert engine.roll("1d6").timestamp == moment


def test_roll_falls_back_to_d20_for_malformed_text() -> None:
    rng = _ConstantRng(17)
    outcome = make_engine(rng).roll("not-a-formula")
    assert rng.calls == [(1, 20)]
    assert outcome.per_die_results == (17,)
    assert outcome.total == 17
    assert outcome.source_expression_text == "not-a-formula"


def test_roll_falls_back_for_out_of_range_dice() -> None:
    rng = _ConstantRng(2)
    outcome = make_engine(rng).roll("0d6")
    assert rng.calls == [(1, 20)]
    assert outcome.per_die_results == (2,)


def test_roll_never_raises_with_real_randomness() -> None:
    outcome = DiceEngine(settings=Settings()).roll("")
    assert len(outcome.per_die_results) == 1
    assert 1 <= outcome.total <= 20


def test_roll_multiple_preserves_order() -> None:
    engine = make_engine(_SequenceRng([12, 3, 5]))
    outcomes = engine.roll_multiple(["1d20", "2d6+1"])
    assert [outcome.source_expression_text for outcome in outcomes] == ["1d20", "2d6+1"]
    assert outcomes[0].per_die_results == (12,)
    assert outcomes[1].per_die_results == (4, 6)
    assert all(outcome.context is None for outcome in outcomes)


def test_analyze_applies_modifier_per_die() -> None:
    engine = make_engine()
    assert engine.analyze("2d6+3") == FormulaStatistics(minimum=8, maximum=18, average=13.0)
    assert engine.analyze("3d6-3") == FormulaStatistics(minimum=-6, maximum=9, average=1.5)
    assert engine.analyze("1d20") == FormulaStatistics(minimum=1, maximum=20, average=10.5)


def test_analyze_returns_none_for_malformed_text() -> None:
    engine = make_engine()
    assert engine.analyze("not-a-formula") is None
    assert engine.analyze("0d6") is None


@pytest.mark.parametrize("text", ["1d20", "2d6+3", "3d6-3", "4d4+0", "10d2-5", "1d100+25"])
def test_rolls_stay_within_analyzed_bounds(text: str) -> None:
    engine = make_engine(random.Random(1234))
    stats = engine.analyze(text)
    assert stats is not None
    assert stats.minimum <= stats.average <= stats.maximum

    totals = [engine.roll(text).total for _ in range(2000)]
    assert all(stats.minimum <= total <= stats.maximum for total in totals)
    mean = sum(totals) / len(totals)
    spread = stats.maximum - stats.minimum
    assert abs(mean - stats.average) <= spread * 0.1


def test_engines_do_not_share_random_state() -> None:
    first = DiceEngine(settings=Settings())
    second = DiceEngine(settings=Settings())
    assert first.rng is not second.rng


def test_outcome_total_is_sum_of_results() -> None:
    outcome = RollOutcome(source_expression_text="2d6", per_die_results=[3, 5])
    assert outcome.total == 8
    assert outcome.timestamp.tzinfo is not None
    assert outcome.id


def test_outcome_results_cannot_be_mutated() -> None:
    results = [3, 4]
    outcome = RollOutcome(source_expression_text="2d6", per_die_results=results)
    results.append(100)
    assert outcome.per_die_results == (3, 4)
    with pytest.raises(AttributeError):
        outcome.per_die_results.append(100)  # type: ignore[attr-defined]
    assert outcome.total == sum(outcome.per_die_results) == 7


def test_outcome_dict_round_trip() -> None:
    outcome = RollOutcome(
        source_expression_text="2d6+1",
        per_die_results=[4, 7],
        context="Trap",
    )
    payload = outcome.to_dict()
    assert payload["total"] == 11
    assert payload["results"] == [4, 7]
    assert RollOutcome.from_dict(payload) == outcome
