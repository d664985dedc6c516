from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from math import isclose, log2, sqrt

from hypothesis import given, settings
import pytest

from drumroll import (
    Calibration,
    DifficultyAttributes,
    Mod,
    PerformanceCalculator,
    ScoreStatistics,
    SpeedPoint,
    Timeline,
    TimingPoint,
    performance_points,
)
from drumroll.errors import ComputationDomainError, InvalidInput
from drumroll.performance import (
    accuracy_value,
    combine,
    length_bonus,
    mod_multiplier,
    strain_value,
)
from drumroll.strategies import (
    difficulty_attributes,
    floats,
    mods as mod_masks,
    score_statistics,
)


def ms(n):
    return timedelta(milliseconds=n)


def make_attributes(star_rating=5.0, overall_difficulty=5.0):
    return DifficultyAttributes(
        star_rating=star_rating,
        overall_difficulty=overall_difficulty,
        slider_multiplier=1.4,
        timeline=Timeline(
            [TimingPoint(ms(0), 180), TimingPoint(ms(60000), 200)],
            [SpeedPoint(ms(30000), 1.2)],
        ),
        hit_object_times=[ms(n) for n in range(0, 100000, 100)],
    )


@pytest.fixture
def attributes():
    return make_attributes()


@pytest.fixture
def calculator():
    return PerformanceCalculator()


def test_length_bonus():
    base_length, bonus = length_bonus(1500)
    assert base_length == 1.0
    assert bonus == 1.1

    base_length, bonus = length_bonus(1000)
    assert isclose(base_length, log2(2500 / 1500))
    assert isclose(bonus, log2(2500 / 1500) ** 0.75 / 10 + 1)


def test_length_bonus_calibration():
    calibration = Calibration()._replace(
        length_scale=1000.0,
        length_divisor=5.0,
    )
    base_length, bonus = length_bonus(1000, calibration)
    assert base_length == 1.0
    assert bonus == 1.2


def test_strain_value():
    strain = strain_value(5.0, 1.1, 1000, 0, 1.0, 1.0, 0)
    assert isclose(strain, (4.55 * 5) ** 3 / 100 * 1.1)

    missed = strain_value(5.0, 1.1, 1000, 10, 1.0, 1.0, 0)
    assert isclose(
        missed,
        strain * (990 / 1000 - 1 / 600) ** 20,
    )

    flashlight = strain_value(5.0, 1.1, 1000, 0, 1.0, 1.0, Mod.flashlight)
    assert isclose(flashlight, strain * 1.1 * 1.05)

    assert isclose(strain_value(5.0, 1.1, 1000, 0, 0.5, 1.2, 0), strain * 0.6)


def test_strain_value_all_misses():
    assert strain_value(5.0, 1.1, 10, 10, 0.0, 1.0, 0) == 0.0


def test_accuracy_value():
    value = accuracy_value(5.0, 34.5, 0.98, 1.0, 0)
    assert isclose(
        value,
        3.75 * 5.0 ** 1.1 * 3.0 ** (2.8 - 0.04 * 34.5) *
        0.98 ** (5 * sqrt(34.5)),
    )
    hidden = accuracy_value(5.0, 34.5, 0.98, 1.0, Mod.hidden)
    assert isclose(hidden, value * 1.1)


def test_combine():
    assert combine(0.0, 0.0) == 0.0
    assert isclose(combine(100.0, 0.0), 100.0)
    assert isclose(combine(100.0, 50.0), (100 ** 1.1 + 50 ** 1.1) ** (1 / 1.1))


@given(floats(0, 1000), floats(0, 1000), floats(0.1, 100))
def test_combine_bounds_and_monotonicity(strain, accuracy, gain):
    combined = combine(strain, accuracy)
    assert combined >= max(strain, accuracy) * (1 - 1e-12)
    assert combined <= (strain + accuracy) * (1 + 1e-12)
    assert combine(strain + gain, accuracy) > combined
    assert combine(strain, accuracy + gain) > combined


def test_mod_multiplier():
    assert mod_multiplier(1.1, 0) == 1.0
    assert mod_multiplier(1.1, Mod.hidden) == 1.0
    assert mod_multiplier(1.1, Mod.flashlight) == 1.1
    assert isclose(mod_multiplier(1.1, Mod.flashlight | Mod.hidden), 1.155)


def test_component_coefficients_calibration():
    default = Calibration()
    strain = strain_value(5.0, 1.1, 1000, 0, 1.0, 1.0, 0)
    assert strain_value(5.0, 1.1, 1000, 0, 1.0, 1.0, 0, default) == strain

    doubled = default._replace(strain_divisor=50.0)
    assert isclose(
        strain_value(5.0, 1.1, 1000, 0, 1.0, 1.0, 0, doubled),
        strain * 2,
    )
    flashlight = default._replace(flashlight_strain_bonus=1.0)
    assert isclose(
        strain_value(5.0, 1.1, 1000, 0, 1.0, 1.0, Mod.flashlight, flashlight),
        strain * 1.1,
    )

    value = accuracy_value(5.0, 34.5, 0.98, 1.0, 0)
    hidden = default._replace(hidden_accuracy_bonus=1.5)
    assert isclose(
        accuracy_value(5.0, 34.5, 0.98, 1.0, Mod.hidden, hidden),
        value * 1.5,
    )
    scaled = default._replace(accuracy_scale=7.5)
    assert isclose(
        accuracy_value(5.0, 34.5, 0.98, 1.0, 0, scaled),
        value * 2,
    )

    assert mod_multiplier(
        1.1,
        Mod.flashlight | Mod.hidden,
        default._replace(hidden_flashlight_bonus=1.0),
    ) == 1.1


def test_calculator_uses_calibration_coefficients(attributes):
    statistics = ScoreStatistics.from_counts(1000, 0, 0)
    default = PerformanceCalculator().calculate(attributes, statistics, 0)
    calibration = Calibration()._replace(strain_divisor=50.0)
    doubled = PerformanceCalculator(calibration).calculate(
        attributes,
        statistics,
        0,
    )
    assert isclose(doubled.strain, default.strain * 2)
    assert doubled.accuracy == default.accuracy


def test_calculate(attributes, calculator):
    statistics = ScoreStatistics.from_counts(980, 15, 5)
    breakdown = calculator.calculate(attributes, statistics, Mod.hidden)

    base_length, bonus = length_bonus(1000)
    speed = breakdown.categories['Effective Speed']
    # 30% of the objects at 180bpm, 30% at 180 x1.2, 40% at 200 x1.2
    assert isclose(speed, 0.3 * 180 + 0.3 * 216 + 0.4 * 240)
    assert breakdown.categories['Hit Window'] == 34.5
    assert breakdown.categories['Length Bonus'] == bonus

    expected_strain = strain_value(
        5.0,
        bonus,
        1000,
        5,
        statistics.accuracy,
        breakdown.categories['Speed Bonus'],
        Mod.hidden,
    )
    expected_accuracy = accuracy_value(
        5.0,
        34.5,
        statistics.accuracy,
        base_length,
        Mod.hidden,
    )
    assert breakdown.strain == expected_strain
    assert breakdown.accuracy == expected_accuracy
    assert breakdown.total == combine(expected_strain, expected_accuracy)
    assert breakdown.categories['Strain'] == breakdown.strain
    assert breakdown.categories['Accuracy'] == breakdown.accuracy


def test_hidden_raises_performance(attributes, calculator):
    statistics = ScoreStatistics.from_counts(1000, 0, 0)
    nomod = calculator.calculate(attributes, statistics, 0)
    hidden = calculator.calculate(attributes, statistics, Mod.hidden)
    assert nomod.categories['Speed Bonus'] == 1.0
    assert hidden.accuracy > nomod.accuracy


def test_flashlight_multiplier(attributes, calculator):
    statistics = ScoreStatistics.from_counts(1000, 0, 0)
    breakdown = calculator.calculate(attributes, statistics, Mod.flashlight)
    _, bonus = length_bonus(1000)
    assert isclose(
        breakdown.total,
        combine(breakdown.strain, breakdown.accuracy) * bonus,
    )


def test_zero_total_hits():
    with pytest.raises(InvalidInput):
        ScoreStatistics.from_counts(0, 0, 0)


def test_no_hit_objects(calculator):
    attributes = DifficultyAttributes(
        star_rating=5.0,
        overall_difficulty=5.0,
        slider_multiplier=1.4,
        timeline=Timeline([TimingPoint(ms(0), 180)]),
        hit_object_times=[],
    )
    with pytest.raises(InvalidInput):
        calculator.calculate(attributes, ScoreStatistics.from_counts(1), 0)


def test_empty_timeline(calculator):
    attributes = DifficultyAttributes(
        star_rating=5.0,
        overall_difficulty=5.0,
        slider_multiplier=1.4,
        timeline=Timeline([]),
        hit_object_times=[ms(0)],
    )
    with pytest.raises(InvalidInput):
        calculator.calculate(attributes, ScoreStatistics.from_counts(1), 0)


def test_overall_difficulty_out_of_range():
    with pytest.raises(InvalidInput):
        make_attributes(overall_difficulty=20.0)


def test_overflow_is_domain_error(attributes):
    calculator = PerformanceCalculator(
        Calibration()._replace(strain_exponent=1000.0),
    )
    with pytest.raises(ComputationDomainError):
        calculator.calculate(
            attributes,
            ScoreStatistics.from_counts(1000),
            0,
        )


def test_zero_star_rating_is_zero(calculator):
    attributes = make_attributes(star_rating=0.0)
    breakdown = calculator.calculate(
        attributes,
        ScoreStatistics.from_counts(1000),
        Mod.hidden,
    )
    assert breakdown.total == 0.0
    assert breakdown.strain == 0.0
    assert breakdown.accuracy == 0.0


def test_unknown_strategy(attributes, calculator):
    with pytest.raises(ValueError):
        calculator.calculate(
            attributes,
            ScoreStatistics.from_counts(1000),
            0,
            strategy='mode',
        )


@pytest.mark.parametrize(
    'strategy',
    ['segment', 'mean', 'median', 'bonus_mean'],
)
def test_strategies(attributes, calculator, strategy):
    breakdown = calculator.calculate(
        attributes,
        ScoreStatistics.from_counts(1000),
        Mod.hard_rock,
        strategy=strategy,
    )
    assert breakdown.total > 0
    assert 0.9 <= breakdown.categories['Speed Bonus'] <= 1.2


def test_bonus_mean_strategy(attributes, calculator):
    breakdown = calculator.calculate(
        attributes,
        ScoreStatistics.from_counts(1000),
        Mod.hard_rock,
        strategy='bonus_mean',
    )
    # 300 objects at 180, 300 at 216, 400 at 240
    expected = (
        300 * (1.2 - (180 - 320) ** 2 / 128000) +
        300 * (1.2 - (216 - 320) ** 2 / 128000) +
        400 * (1.2 - (240 - 320) ** 2 / 128000)
    ) / 1000
    assert isclose(breakdown.categories['Speed Bonus'], expected)


def test_trace(attributes, calculator):
    traced = {}

    def trace(name, value):
        traced[name] = value

    breakdown = calculator.calculate(
        attributes,
        ScoreStatistics.from_counts(990, 10, 0),
        Mod.hidden | Mod.double_time,
        trace=trace,
    )
    assert set(traced) == {
        'effective_speed',
        'speed_bonus',
        'hit_window',
        'base_length',
        'length_bonus',
        'strain',
        'accuracy',
        'total',
    }
    assert traced['total'] == breakdown.total
    assert isclose(traced['hit_window'], 23.0)


def test_idempotent(attributes, calculator):
    statistics = ScoreStatistics.from_counts(950, 40, 10)
    first = calculator.calculate(attributes, statistics, Mod.hidden)
    second = calculator.calculate(attributes, statistics, Mod.hidden)
    assert first == second


def test_calculate_does_not_write_to_inputs(attributes, calculator):
    statistics = ScoreStatistics.from_counts(950, 40, 10)
    timeline = attributes.timeline
    before = (
        dict(vars(timeline)),
        dict(vars(attributes)),
        dict(vars(statistics)),
    )
    for strategy in sorted(calculator.strategies):
        calculator.calculate(
            attributes,
            statistics,
            Mod.hidden,
            strategy=strategy,
        )
    assert (
        dict(vars(timeline)),
        dict(vars(attributes)),
        dict(vars(statistics)),
    ) == before


def test_categories_are_read_only(attributes, calculator):
    breakdown = calculator.calculate(
        attributes,
        ScoreStatistics.from_counts(1000),
        0,
    )
    with pytest.raises(TypeError):
        breakdown.categories['Strain'] = 0.0


def test_shared_calculator_across_threads(attributes, calculator):
    plays = [
        (ScoreStatistics.from_counts(1000 - n, n, 0), mods)
        for n in range(20)
        for mods in (0, Mod.hidden, Mod.hard_rock | Mod.double_time)
    ]

    def rate(play):
        statistics, mods = play
        return calculator.calculate(attributes, statistics, mods)

    expected = list(map(rate, plays))
    with ThreadPoolExecutor(4) as executor:
        assert list(executor.map(rate, plays)) == expected


def test_performance_points(attributes):
    pp = performance_points(attributes, hidden=True)
    calculator = PerformanceCalculator()
    expected = calculator.calculate(
        attributes,
        ScoreStatistics.from_counts(1000),
        Mod.hidden,
    ).total
    assert pp == expected

    assert performance_points(attributes, accuracy=0.95) < (
        performance_points(attributes)
    )


@given(difficulty_attributes(), score_statistics())
@settings(deadline=None)
def test_no_mods_speed_bonus_is_exactly_one(attributes, statistics):
    breakdown = PerformanceCalculator().calculate(attributes, statistics, 0)
    assert breakdown.categories['Speed Bonus'] == 1.0


@given(floats(0, 12), floats(0, 12), floats(0, 10), mod_masks())
@settings(deadline=None)
def test_accuracy_non_decreasing_in_star_rating(first, second, od, mods):
    low, high = sorted([first, second])
    timeline = Timeline([TimingPoint(ms(0), 180)])
    statistics = ScoreStatistics.from_counts(500)
    calculator = PerformanceCalculator()

    def rate(star_rating):
        return calculator.calculate(
            DifficultyAttributes(
                star_rating=star_rating,
                overall_difficulty=od,
                slider_multiplier=1.4,
                timeline=timeline,
                hit_object_times=[ms(n * 100) for n in range(500)],
            ),
            statistics,
            mods,
        )

    assert rate(low).accuracy <= rate(high).accuracy


@given(difficulty_attributes(), score_statistics(), mod_masks())
@settings(deadline=None)
def test_total_is_finite_and_non_negative(attributes, statistics, mods):
    breakdown = PerformanceCalculator().calculate(attributes, statistics, mods)
    assert breakdown.total >= 0
    assert breakdown.strain >= 0
    assert breakdown.accuracy >= 0
