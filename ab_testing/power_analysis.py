import logging
import math
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple
from statsmodels.stats.power import NormalIndPower

from data_profiling.descriptive_statistics import ColumnStatistics
from statistical_engine import arm_pairs, bonferroni_alpha, inverse_normal_cdf, pairwise_comparisons

logger = logging.getLogger(__name__)


ALPHA_OPTIONS = (0.01, 0.05, 0.1)
POWER_OPTIONS = (0.8, 0.9, 0.95)
MDE_OPTIONS = (2.0, 5.0, 10.0, 15.0, 20.0)
ALLOCATION_TOLERANCE = 0.01
BONFERRONI_ADVISORY_THRESHOLD = 10


class MdeType(Enum):
    ABSOLUTE = "absolute"
    PERCENTAGE = "percentage"


class Sidedness(Enum):
    ONE_TAILED = "one-tailed"
    TWO_TAILED = "two-tailed"


class PowerAnalysisError(ValueError):
    """Invalid input to the sample-size calculation"""


@dataclass
class PowerAnalysisInputs:
    metric: str
    alpha: float = 0.05
    power: float = 0.8
    mde: Optional[float] = 5.0
    custom_mde: Optional[float] = None
    mde_type: MdeType = MdeType.PERCENTAGE
    sidedness: Sidedness = Sidedness.TWO_TAILED
    num_arms: int = 2
    allocation_ratios: Optional[Sequence[float]] = None

    @property
    def effective_mde(self) -> Optional[float]:
        """Custom value when given, otherwise the chosen option"""
        return self.custom_mde if self.custom_mde is not None else self.mde


@dataclass(frozen=True)
class PairwiseComparison:
    arm_a: int
    arm_b: int
    variance_adjustment_factor: float
    sample_size: int


@dataclass
class CalculationResults:
    metric: str
    mean: float
    standard_deviation: float
    variance: float
    absolute_mde: float
    relative_mde: Optional[float]
    alpha: float
    power: float
    sidedness: Sidedness
    num_arms: int
    allocation_ratios: List[float]
    comparisons: int
    corrected_alpha: float
    z_alpha: float
    z_beta: float
    base_sample_size: int
    pairwise: List[PairwiseComparison]
    required_sample_size: int
    advisories: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metric': self.metric,
            'mean': self.mean,
            'standard_deviation': self.standard_deviation,
            'variance': self.variance,
            'absolute_mde': self.absolute_mde,
            'relative_mde': self.relative_mde,
            'alpha': self.alpha,
            'power': self.power,
            'sidedness': self.sidedness.value,
            'num_arms': self.num_arms,
            'allocation_ratios': list(self.allocation_ratios),
            'comparisons': self.comparisons,
            'corrected_alpha': self.corrected_alpha,
            'z_alpha': self.z_alpha,
            'z_beta': self.z_beta,
            'base_sample_size': self.base_sample_size,
            'pairwise': [
                {
                    'arms': (p.arm_a, p.arm_b),
                    'variance_adjustment_factor': p.variance_adjustment_factor,
                    'sample_size': p.sample_size,
                }
                for p in self.pairwise
            ],
            'required_sample_size': self.required_sample_size,
            'advisories': list(self.advisories),
        }


class SampleSizeCalculator:
    """Bonferroni-corrected sample sizes for A/B/n tests with unequal allocation"""

    def __init__(
        self,
        allocation_tolerance: float = ALLOCATION_TOLERANCE,
        advisory_threshold: int = BONFERRONI_ADVISORY_THRESHOLD
    ):
        self.allocation_tolerance = allocation_tolerance
        self.advisory_threshold = advisory_threshold

    def calculate(
        self,
        statistics: Dict[str, ColumnStatistics],
        inputs: PowerAnalysisInputs
    ) -> CalculationResults:
        """Validate the inputs, then size every pairwise comparison"""
        metric_stats = self._validate_metric(statistics, inputs.metric)
        self._validate_option("Significance level (alpha)", inputs.alpha, ALPHA_OPTIONS)
        self._validate_option("Power", inputs.power, POWER_OPTIONS)
        num_arms = self._validate_num_arms(inputs.num_arms)
        ratios = self._validate_allocation(inputs.allocation_ratios, num_arms)

        mean = metric_stats.mean
        std_dev = metric_stats.standard_deviation
        variance = std_dev ** 2
        absolute_mde = self._resolve_mde(inputs, mean)

        comparisons = pairwise_comparisons(num_arms)
        corrected_alpha = bonferroni_alpha(inputs.alpha, comparisons)

        if inputs.sidedness == Sidedness.ONE_TAILED:
            z_alpha = inverse_normal_cdf(1 - corrected_alpha)
        else:
            z_alpha = inverse_normal_cdf(1 - corrected_alpha / 2)
        z_beta = inverse_normal_cdf(inputs.power)

        base_sample_size = int(math.ceil(
            2 * variance * (z_alpha + z_beta) ** 2 / absolute_mde ** 2
        ))

        pairwise = []
        for i, j in arm_pairs(num_arms):
            vaf = 1 / (ratios[i] / 100) + 1 / (ratios[j] / 100)
            pairwise.append(PairwiseComparison(
                arm_a=i,
                arm_b=j,
                variance_adjustment_factor=vaf,
                sample_size=int(math.ceil(vaf * base_sample_size))
            ))

        advisories = []
        if comparisons > self.advisory_threshold:
            advisories.append(
                f"{comparisons} pairwise comparisons: the Bonferroni correction "
                f"(alpha {corrected_alpha:.5f} per comparison) is conservative; "
                f"consider fewer arms or comparisons against control only"
            )
        if variance == 0:
            advisories.append(
                f"Metric '{inputs.metric}' has zero variance in the sample; the sample size is not informative"
            )
        for advisory in advisories:
            logger.info("Power analysis advisory: %s", advisory)

        return CalculationResults(
            metric=inputs.metric,
            mean=mean,
            standard_deviation=std_dev,
            variance=variance,
            absolute_mde=absolute_mde,
            relative_mde=absolute_mde / mean * 100 if mean else None,
            alpha=inputs.alpha,
            power=inputs.power,
            sidedness=inputs.sidedness,
            num_arms=num_arms,
            allocation_ratios=ratios,
            comparisons=comparisons,
            corrected_alpha=corrected_alpha,
            z_alpha=z_alpha,
            z_beta=z_beta,
            base_sample_size=base_sample_size,
            pairwise=pairwise,
            required_sample_size=max(p.sample_size for p in pairwise),
            advisories=advisories,
        )

    def calculate_achieved_power(
        self,
        results: CalculationResults,
        arm_sizes: Sequence[int]
    ) -> Dict[Tuple[int, int], float]:
        """Power each pairwise comparison reaches with the observed per-arm counts"""
        if len(arm_sizes) != results.num_arms:
            raise PowerAnalysisError(
                f"Expected {results.num_arms} arm sizes, got {len(arm_sizes)}"
            )
        if any(size <= 0 for size in arm_sizes):
            raise PowerAnalysisError("Arm sizes must all be positive")
        if results.standard_deviation == 0:
            raise PowerAnalysisError(
                f"Metric '{results.metric}' has zero variance; power is undefined"
            )

        effect_size = abs(results.absolute_mde) / results.standard_deviation
        alternative = 'larger' if results.sidedness == Sidedness.ONE_TAILED else 'two-sided'
        power_solver = NormalIndPower()

        achieved = {}
        for pair in results.pairwise:
            n_a = arm_sizes[pair.arm_a]
            n_b = arm_sizes[pair.arm_b]
            achieved[(pair.arm_a, pair.arm_b)] = float(power_solver.power(
                effect_size=effect_size,
                nobs1=n_a,
                alpha=results.corrected_alpha,
                ratio=n_b / n_a,
                alternative=alternative
            ))
        return achieved

    def estimate_duration_days(self, required_sample_size: int, users_per_day: float) -> int:
        """Days of traffic needed to reach the required sample size"""
        if users_per_day is None or not users_per_day > 0:
            raise PowerAnalysisError("Users per day must be a positive number")
        return int(math.ceil(required_sample_size / users_per_day))

    def _validate_metric(self, statistics: Dict[str, ColumnStatistics], metric: str) -> ColumnStatistics:
        if not metric:
            raise PowerAnalysisError("Please select a primary metric")
        if metric not in statistics:
            raise PowerAnalysisError(f"Metric '{metric}' not found in dataset")

        metric_stats = statistics[metric]
        if not metric_stats.is_numeric or metric_stats.standard_deviation is None:
            raise PowerAnalysisError(f"Selected metric '{metric}' must be numeric")
        return metric_stats

    def _validate_option(self, label: str, value: Optional[float], options: Sequence[float]) -> None:
        if value is None:
            raise PowerAnalysisError(f"{label} is required")
        if not any(math.isclose(value, option) for option in options):
            allowed = ", ".join(str(option) for option in options)
            raise PowerAnalysisError(f"{label} must be one of {allowed}, got {value}")

    def _validate_num_arms(self, num_arms: Any) -> int:
        if isinstance(num_arms, bool) or not isinstance(num_arms, (int, np.integer)):
            raise PowerAnalysisError(f"Number of arms must be a whole number, got {num_arms!r}")
        if num_arms < 2:
            raise PowerAnalysisError(f"Experiment must have at least 2 arms, got {num_arms}")
        return int(num_arms)

    def _validate_allocation(self, allocation_ratios: Optional[Sequence[float]], num_arms: int) -> List[float]:
        if allocation_ratios is None:
            return [100 / num_arms] * num_arms

        try:
            ratios = [float(ratio) for ratio in allocation_ratios]
        except (TypeError, ValueError):
            raise PowerAnalysisError("Allocation ratios must all be positive percentages") from None
        if len(ratios) != num_arms:
            raise PowerAnalysisError(
                f"Expected {num_arms} allocation ratios, got {len(ratios)}"
            )
        if any(not math.isfinite(ratio) or ratio <= 0 for ratio in ratios):
            raise PowerAnalysisError("Allocation ratios must all be positive percentages")

        total = sum(ratios)
        if abs(total - 100) > self.allocation_tolerance:
            raise PowerAnalysisError(f"Allocation ratios must sum to 100%, got {total:g}%")
        return ratios

    def _resolve_mde(self, inputs: PowerAnalysisInputs, mean: float) -> float:
        mde = inputs.effective_mde
        if mde is None:
            raise PowerAnalysisError("Minimum detectable effect is required")
        if not math.isfinite(mde) or mde <= 0:
            raise PowerAnalysisError(f"Minimum detectable effect must be a positive number, got {mde}")

        absolute_mde = (mde / 100) * mean if inputs.mde_type == MdeType.PERCENTAGE else mde
        if absolute_mde == 0:
            raise PowerAnalysisError(
                f"A {mde}% effect on metric '{inputs.metric}' is zero because its mean is 0; use an absolute MDE"
            )
        return absolute_mde
