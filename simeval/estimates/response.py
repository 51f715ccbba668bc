"""Statistical estimates of simulation responses."""

from __future__ import annotations

import gc
import math
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
from attrs import cmp_using, define, field
from attrs.validators import instance_of
from scipy import stats
from typing_extensions import Self, override

from simeval.exceptions import MergeMismatchError
from simeval.serialization import SerialMixin
from simeval.utils.interval import Interval
from simeval.utils.validation import (
    finite_float,
    validate_confidence_level,
    validate_not_blank,
)


def _nan_equal(x: float, y: float) -> bool:
    """Compare two floats, treating two ``nan`` values as equal."""
    return (math.isnan(x) and math.isnan(y)) or x == y


def _to_count(value: Any) -> int:
    """Convert an observation count to an integer, rejecting fractional values."""
    if isinstance(value, bool) or float(value) != int(value):
        raise ValueError(f"An observation count must be integral. Given: {value}.")
    return int(value)


def _student_t_quantile(level: float, dof: float) -> float:
    """The two-sided Student-t critical value for a confidence level."""
    return float(stats.t.ppf(1.0 - (1.0 - level) / 2.0, dof))


@define(frozen=True)
class EstimatedResponse(SerialMixin):
    """An estimate of a response based on an independent sample.

    For a sample of size one, the variance is undefined and represented by ``nan``.
    """

    name: str = field(validator=[instance_of(str), validate_not_blank])
    """The name of the estimated response."""

    average: float = field(converter=float, validator=finite_float)
    """The sample average."""

    variance: float = field(
        default=float("nan"),
        converter=float,
        eq=cmp_using(eq=_nan_equal),
        hash=False,
    )
    """The sample variance (``nan`` if and only if the count is one)."""

    count: int = field(default=1, converter=_to_count)
    """The number of observations in the sample."""

    @count.validator
    def _validate_count(self, _: Any, value: int) -> None:  # noqa: DOC101, DOC103
        """Validate the count and its compatibility with the variance.

        Raises:
            ValueError: If the count is smaller than one.
            ValueError: If the variance is not ``nan`` for a single observation.
            ValueError: If the variance is negative or undefined for two or more
                observations.
        """
        if value < 1:
            raise ValueError(f"The count must be >= 1. Given: {value}.")
        if value == 1:
            if not math.isnan(self.variance):
                raise ValueError(
                    f"The variance of a single observation is undefined and must be "
                    f"'nan'. Given: {self.variance}."
                )
        elif not (math.isfinite(self.variance) and self.variance >= 0.0):
            raise ValueError(
                f"The variance must be a finite value >= 0. Given: {self.variance}."
            )

    @classmethod
    def from_data(cls, name: str, data: Sequence[float] | np.ndarray, /) -> Self:
        """Summarize raw observations into an estimate.

        Args:
            name: The name of the response.
            data: The observed values. Must be non-empty and finite.

        Raises:
            ValueError: If the data is empty.

        Returns:
            The estimate computed from the data.
        """
        arr = np.asarray(data, dtype=float).ravel()
        if arr.size == 0:
            raise ValueError(f"Cannot estimate response '{name}' from empty data.")
        variance = float(np.var(arr, ddof=1)) if arr.size > 1 else float("nan")
        return cls(name, float(np.mean(arr)), variance, arr.size)

    @property
    def standard_deviation(self) -> float:
        """The sample standard deviation (``nan`` for a single observation)."""
        return math.sqrt(self.variance) if not math.isnan(self.variance) else math.nan

    @property
    def standard_error(self) -> float:
        """The standard error of the average."""
        return self.standard_deviation / math.sqrt(self.count)

    def half_width(self, level: float | None = None) -> float:
        """Compute the confidence interval half-width of the average.

        Args:
            level: The confidence level. Defaults to the active settings.

        Returns:
            The half-width, or ``nan`` for a single observation.
        """
        level = _resolve_level(level)
        if self.count <= 1:
            return math.nan
        return _student_t_quantile(level, self.count - 1) * self.standard_error

    def confidence_interval(self, level: float | None = None) -> Interval:
        """Compute a confidence interval for the average.

        For a single observation, the interval spans the entire real line.
        """
        level = _resolve_level(level)
        if self.count <= 1:
            return Interval()
        hw = self.half_width(level)
        return Interval(self.average - hw, self.average + hw)

    def screening_width(
        self, other: EstimatedResponse, level: float | None = None
    ) -> float:
        """Compute the pair-wise screening width assuming independent estimates.

        The width is the square root of the sum of the squared half-widths and is
        used to construct screening intervals in ranking-and-selection clean-up
        procedures (Boesel, Nelson & Kim 2003, Operations Research 51(5)).
        """
        hw1 = self.half_width(level)
        hw2 = other.half_width(level)
        return math.sqrt(hw1 * hw1 + hw2 * hw2)

    def merge(self, other: EstimatedResponse, /) -> EstimatedResponse:
        """Combine the estimate with another estimate from independent observations.

        Args:
            other: The estimate to merge with.

        Raises:
            MergeMismatchError: If the estimates refer to different responses.

        Returns:
            A new estimate representing the combined sample.
        """
        if self.name != other.name:
            raise MergeMismatchError(
                f"Only estimates of the same response can be merged. "
                f"Given: '{self.name}' and '{other.name}'."
            )
        n = self.count + other.count
        average = (self.average * self.count + other.average * other.count) / n
        return EstimatedResponse(
            self.name, average, self._pooled_variance(other, average), n
        )

    def _pooled_variance(self, other: EstimatedResponse, average: float) -> float:
        """Compute the variance of the combined sample."""
        if self.count == 1 and other.count == 1:
            return (self.average - average) ** 2 + (other.average - average) ** 2
        if self.count == 1 or other.count == 1:
            single, rich = (self, other) if self.count == 1 else (other, self)
            if rich.count == 2:
                return rich.variance

            # Welford update of the richer sample with the single observation
            m2 = rich.variance * (rich.count - 1)
            delta = single.average - rich.average
            m2 += delta * (single.average - average)
            return m2 / (rich.count + single.count - 1)

        n = self.count + other.count
        pooled = (self.count - 1) * self.variance + (other.count - 1) * other.variance
        return pooled / (n - 2)

    def as_mapped_data(self) -> dict[str, float]:
        """Return the statistical summary with keys prefixed by the response name.

        Example:
            >>> EstimatedResponse("power", 2.0).as_mapped_data()["power_average"]
            2.0
        """
        return {
            f"{self.name}_average": self.average,
            f"{self.name}_variance": self.variance,
            f"{self.name}_count": float(self.count),
            f"{self.name}_standard_deviation": self.standard_deviation,
            f"{self.name}_standard_error": self.standard_error,
        }

    @override
    def __str__(self) -> str:
        return (
            f"{self.name}: average={self.average:g}, variance={self.variance:g}, "
            f"count={self.count}"
        )


def _resolve_level(level: float | None) -> float:
    """Fall back to the globally configured confidence level."""
    if level is None:
        from simeval.settings import active_settings

        level = active_settings.confidence_level
    validate_confidence_level(level)
    return level


def statistical_summaries(
    data: Mapping[str, Sequence[float] | np.ndarray], /
) -> list[EstimatedResponse]:
    """Summarize each named data array into an estimate.

    Raises:
        ValueError: If the mapping is empty.
    """
    if not data:
        raise ValueError("The mapping of data must not be empty.")
    return [EstimatedResponse.from_data(name, values) for name, values in data.items()]


def difference_confidence_interval(
    first: EstimatedResponse,
    second: EstimatedResponse,
    level: float | None = None,
) -> Interval:
    """Construct a confidence interval on the difference of two averages.

    The interval assumes normally distributed, independent samples with unequal
    variances.

    Args:
        first: The first estimate.
        second: The second estimate.
        level: The confidence level. Defaults to the active settings.

    Raises:
        ValueError: If either estimate has fewer than two observations.

    Returns:
        The interval on ``first.average - second.average``.
    """
    level = _resolve_level(level)
    for estimate in (first, second):
        if estimate.count < 2:
            raise ValueError(
                f"At least two observations are required to build a difference "
                f"interval. Given: {estimate}."
            )
    d = first.average - second.average
    n1, n2 = first.count, second.count
    v1 = first.variance / n1
    v2 = second.variance / n2
    v = v1 + v2
    if v == 0.0:
        return Interval(d, d)
    denominator = (v1 * v1) / (n1 + 1.0) + (v2 * v2) / (n2 + 1.0)
    if denominator > 0.0:
        dof = max(1.0, (v * v) / denominator - 2.0)
    else:
        dof = float(n1 + n2 - 2)
    hw = _student_t_quantile(level, dof) * math.sqrt(v)
    return Interval(d - hw, d + hw)


def compare_estimated_responses(
    first: EstimatedResponse,
    second: EstimatedResponse,
    level: float | None = None,
    indifference_zone: float = 0.0,
) -> int:
    """Compare two estimates statistically.

    Args:
        first: The first estimate.
        second: The second estimate.
        level: The confidence level. Defaults to the active settings.
        indifference_zone: Differences within this tolerance are considered equal.

    Raises:
        ValueError: If the indifference zone is negative.

    Returns:
        ``-1`` if the first estimate is smaller, ``1`` if it is larger, and ``0`` if
        both are statistically indistinguishable.
    """
    level = _resolve_level(level)
    if indifference_zone < 0.0:
        raise ValueError(
            f"The indifference zone must be >= 0. Given: {indifference_zone}."
        )
    d = first.average - second.average

    if first.count == 1 and second.count == 1:
        if d < -indifference_zone:
            return -1
        if d > indifference_zone:
            return 1
        return 0

    if first.count == 1 or second.count == 1:
        hw = (second if first.count == 1 else first).half_width(level)
        interval = Interval(d - hw, d + hw)
    else:
        interval = difference_confidence_interval(first, second, level)

    if interval.upper + indifference_zone < 0.0:
        return -1
    if interval.lower - indifference_zone > 0.0:
        return 1
    return 0


@define(frozen=True)
class EstimatedResponseComparator:
    """Compare estimates via confidence intervals on their difference."""

    level: float = field(factory=lambda: _resolve_level(None), converter=float)
    """The confidence level of the comparison."""

    indifference_zone: float = field(default=0.0, converter=float)
    """Differences within this tolerance are considered equal."""

    @level.validator
    def _validate_level(self, _: Any, value: float) -> None:  # noqa: DOC101, DOC103
        validate_confidence_level(value)

    @indifference_zone.validator
    def _validate_indifference_zone(  # noqa: DOC101, DOC103
        self, _: Any, value: float
    ) -> None:
        if value < 0.0:
            raise ValueError(f"The indifference zone must be >= 0. Given: {value}.")

    def __call__(self, first: EstimatedResponse, second: EstimatedResponse) -> int:
        """Compare two estimates (usable with :func:`functools.cmp_to_key`)."""
        return compare_estimated_responses(
            first, second, self.level, self.indifference_zone
        )


# Collect leftover original slotted classes processed by `attrs.define`
gc.collect()
