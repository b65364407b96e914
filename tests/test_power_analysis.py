import math

import pytest

from ab_testing.power_analysis import (
    MdeType, PowerAnalysisError, PowerAnalysisInputs, SampleSizeCalculator, Sidedness
)
from data_profiling.column_types import ColumnType
from data_profiling.descriptive_statistics import ColumnStatistics


def calculate(statistics, **overrides):
    inputs = PowerAnalysisInputs(metric="revenue", **overrides)
    return SampleSizeCalculator().calculate(statistics, inputs)


class TestReferenceScenario:
    """Mean 100, sd 20, two-tailed alpha 0.05, power 0.8, 5% MDE, two equal arms"""

    def test_base_sample_size(self, scenario_statistics):
        results = calculate(scenario_statistics)
        assert results.absolute_mde == pytest.approx(5.0)
        assert results.comparisons == 1
        assert results.corrected_alpha == pytest.approx(0.05)
        assert results.z_alpha == pytest.approx(1.959964, abs=1e-4)
        assert results.z_beta == pytest.approx(0.841621, abs=1e-4)
        assert results.base_sample_size == 252

    def test_required_sample_size(self, scenario_statistics):
        results = calculate(scenario_statistics)
        assert len(results.pairwise) == 1
        assert results.pairwise[0].variance_adjustment_factor == pytest.approx(4.0)
        assert results.required_sample_size == 1008
        assert results.advisories == []

    def test_follows_the_formula(self, scenario_statistics):
        results = calculate(scenario_statistics)
        expected = math.ceil(2 * 400 * (results.z_alpha + results.z_beta) ** 2 / 25)
        assert results.base_sample_size == expected

    def test_to_dict(self, scenario_statistics):
        record = calculate(scenario_statistics).to_dict()
        assert record['sidedness'] == "two-tailed"
        assert record['pairwise'][0]['arms'] == (0, 1)
        assert record['required_sample_size'] == 1008
        assert record['relative_mde'] == pytest.approx(5.0)


class TestMonotonicity:

    def test_smaller_effect_needs_more_samples(self, scenario_statistics):
        assert calculate(scenario_statistics, mde=2.0).base_sample_size > calculate(scenario_statistics, mde=5.0).base_sample_size

    def test_more_power_needs_more_samples(self, scenario_statistics):
        assert calculate(scenario_statistics, power=0.9).base_sample_size > calculate(scenario_statistics, power=0.8).base_sample_size

    def test_more_arms_never_lower_the_critical_value(self, scenario_statistics):
        z_values = [calculate(scenario_statistics, num_arms=k).z_alpha for k in range(2, 7)]
        assert z_values == sorted(z_values)

    def test_one_tailed_is_cheaper(self, scenario_statistics):
        one_tailed = calculate(scenario_statistics, sidedness=Sidedness.ONE_TAILED)
        assert one_tailed.z_alpha == pytest.approx(1.644854, abs=1e-4)
        assert one_tailed.base_sample_size < calculate(scenario_statistics).base_sample_size


class TestEffectSize:

    def test_custom_mde_overrides_option(self, scenario_statistics):
        results = calculate(scenario_statistics, mde=5.0, custom_mde=10.0)
        assert results.absolute_mde == pytest.approx(10.0)

    def test_absolute_mde(self, scenario_statistics):
        results = calculate(scenario_statistics, mde=2.0, mde_type=MdeType.ABSOLUTE)
        assert results.absolute_mde == 2.0
        assert results.relative_mde == pytest.approx(2.0)

    def test_absolute_mde_with_zero_mean(self, metric_statistics):
        statistics = {"revenue": metric_statistics(mean=0.0, standard_deviation=1.0)}
        results = calculate(statistics, mde=0.5, mde_type=MdeType.ABSOLUTE)
        assert results.relative_mde is None
        assert results.base_sample_size > 0

    def test_percentage_mde_with_zero_mean(self, metric_statistics):
        statistics = {"revenue": metric_statistics(mean=0.0, standard_deviation=1.0)}
        with pytest.raises(PowerAnalysisError, match="use an absolute MDE"):
            calculate(statistics)

    def test_zero_variance_is_advised(self, metric_statistics):
        statistics = {"revenue": metric_statistics(standard_deviation=0.0)}
        results = calculate(statistics)
        assert results.base_sample_size == 0
        assert any("zero variance" in advisory for advisory in results.advisories)


class TestMultipleArms:

    def test_five_arms_stay_below_advisory(self, scenario_statistics):
        results = calculate(scenario_statistics, num_arms=5)
        assert results.comparisons == 10
        assert results.corrected_alpha == pytest.approx(0.005)
        assert results.advisories == []

    def test_six_arms_trigger_advisory(self, scenario_statistics):
        results = calculate(scenario_statistics, num_arms=6)
        assert results.comparisons == 15
        assert len(results.advisories) == 1
        assert "15 pairwise comparisons" in results.advisories[0]

    def test_unequal_allocation(self, scenario_statistics):
        results = calculate(scenario_statistics, allocation_ratios=[20, 80])
        pair = results.pairwise[0]
        assert pair.variance_adjustment_factor == pytest.approx(6.25)
        assert pair.sample_size == math.ceil(pair.variance_adjustment_factor * results.base_sample_size)

    def test_required_size_is_largest_pair(self, scenario_statistics):
        results = calculate(scenario_statistics, num_arms=3, allocation_ratios=[50, 30, 20])
        assert len(results.pairwise) == 3
        assert results.required_sample_size == max(p.sample_size for p in results.pairwise)
        assert (results.pairwise[2].arm_a, results.pairwise[2].arm_b) == (1, 2)
        assert results.required_sample_size == results.pairwise[2].sample_size

    def test_equal_split_by_default(self, scenario_statistics):
        results = calculate(scenario_statistics, num_arms=4)
        assert results.allocation_ratios == [25.0] * 4

    def test_allocation_within_tolerance(self, scenario_statistics):
        results = calculate(scenario_statistics, allocation_ratios=[50.005, 49.999])
        assert results.allocation_ratios == [50.005, 49.999]


class TestValidation:

    @pytest.mark.parametrize("overrides, message", [
        ({"alpha": 0.02}, "Significance level"),
        ({"alpha": None}, "Significance level"),
        ({"power": 0.7}, "Power"),
        ({"num_arms": 1}, "at least 2 arms"),
        ({"num_arms": 2.5}, "whole number"),
        ({"allocation_ratios": [60, 50]}, "sum to 100%"),
        ({"allocation_ratios": [100]}, "Expected 2 allocation ratios"),
        ({"allocation_ratios": [120, -20]}, "positive percentages"),
        ({"allocation_ratios": ["half", "half"]}, "positive percentages"),
        ({"allocation_ratios": [None, 50]}, "positive percentages"),
        ({"mde": None}, "Minimum detectable effect is required"),
        ({"custom_mde": -1.0}, "positive number"),
    ])
    def test_invalid_inputs(self, scenario_statistics, overrides, message):
        with pytest.raises(PowerAnalysisError, match=message):
            calculate(scenario_statistics, **overrides)

    def test_errors_are_value_errors(self, scenario_statistics):
        with pytest.raises(ValueError):
            calculate(scenario_statistics, power=0.5)

    def test_unknown_metric(self, scenario_statistics):
        inputs = PowerAnalysisInputs(metric="profit")
        with pytest.raises(PowerAnalysisError, match="not found"):
            SampleSizeCalculator().calculate(scenario_statistics, inputs)

    def test_missing_metric(self, scenario_statistics):
        with pytest.raises(PowerAnalysisError, match="select a primary metric"):
            SampleSizeCalculator().calculate(scenario_statistics, PowerAnalysisInputs(metric=""))

    def test_categorical_metric(self):
        statistics = {"revenue": ColumnStatistics(
            name="revenue",
            type=ColumnType.CATEGORICAL,
            total_count=3,
            null_count=0,
            missing_count=0,
            completeness=100.0,
        )}
        with pytest.raises(PowerAnalysisError, match="must be numeric"):
            calculate(statistics)

    def test_custom_tolerance(self, scenario_statistics):
        calculator = SampleSizeCalculator(allocation_tolerance=1.0)
        inputs = PowerAnalysisInputs(metric="revenue", allocation_ratios=[50.5, 50])
        assert calculator.calculate(scenario_statistics, inputs).num_arms == 2


class TestDurationAndAchievedPower:

    def test_duration_rounds_up(self):
        assert SampleSizeCalculator().estimate_duration_days(1008, 100) == 11
        assert SampleSizeCalculator().estimate_duration_days(1000, 100) == 10

    @pytest.mark.parametrize("users_per_day", [0, -5, None])
    def test_duration_needs_traffic(self, users_per_day):
        with pytest.raises(PowerAnalysisError, match="Users per day"):
            SampleSizeCalculator().estimate_duration_days(1008, users_per_day)

    def test_base_size_per_arm_reaches_planned_power(self, scenario_statistics):
        calculator = SampleSizeCalculator()
        results = calculate(scenario_statistics)
        achieved = calculator.calculate_achieved_power(results, [252, 252])
        assert achieved[(0, 1)] == pytest.approx(0.8, abs=0.01)

    def test_more_traffic_means_more_power(self, scenario_statistics):
        calculator = SampleSizeCalculator()
        results = calculate(scenario_statistics)
        low = calculator.calculate_achieved_power(results, [100, 100])[(0, 1)]
        high = calculator.calculate_achieved_power(results, [1000, 1000])[(0, 1)]
        assert low < high

    def test_arm_sizes_must_match_arms(self, scenario_statistics):
        results = calculate(scenario_statistics)
        with pytest.raises(PowerAnalysisError, match="Expected 2 arm sizes"):
            SampleSizeCalculator().calculate_achieved_power(results, [100, 100, 100])
