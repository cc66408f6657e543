"""Log-linear latency histogram for approximate percentile queries.

Values are whole milliseconds. The bucket layout follows HdrHistogram: the
value range is split into power-of-two buckets, each divided into a fixed
number of linear sub-buckets. That number is chosen so that any recorded
value is represented within ``10 ** -significant_figures`` relative error.
Memory grows with the number of powers of two in the range, not with the
number of samples.

Values above ``highest_trackable`` are clamped to it (and counted in
``clamped_count``). Negative values are rejected.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass

from pressr.config import Settings

DEFAULT_PERCENTILES: dict[str, float] = {
    "p50": 50.0,
    "p75": 75.0,
    "p90": 90.0,
    "p95": 95.0,
    "p99": 99.0,
    "p999": 99.9,
}


@dataclass(frozen=True)
class HistogramSettings:
    lowest_discernible: int = 1
    highest_trackable: int = 3_600_000
    significant_figures: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "HistogramSettings":
        return cls(
            lowest_discernible=settings.histogram_lowest_ms,
            highest_trackable=settings.histogram_highest_ms,
            significant_figures=settings.histogram_significant_figures,
        )


class LatencyHistogram:
    def __init__(
        self,
        lowest_discernible: int = 1,
        highest_trackable: int = 3_600_000,
        significant_figures: int = 3,
    ) -> None:
        if lowest_discernible < 1:
            raise ValueError("lowest_discernible must be >= 1")
        if highest_trackable < 2 * lowest_discernible:
            raise ValueError("highest_trackable must be >= 2 * lowest_discernible")
        if not 1 <= significant_figures <= 5:
            raise ValueError("significant_figures must be between 1 and 5")

        self.lowest_discernible = lowest_discernible
        self.highest_trackable = highest_trackable
        self.significant_figures = significant_figures

        single_unit_limit = 2 * 10**significant_figures
        sub_bucket_count_magnitude = math.ceil(math.log2(single_unit_limit))

        self._unit_magnitude = lowest_discernible.bit_length() - 1
        self._sub_bucket_half_count_magnitude = max(sub_bucket_count_magnitude, 1) - 1
        self._sub_bucket_count = 1 << (self._sub_bucket_half_count_magnitude + 1)
        self._sub_bucket_half_count = self._sub_bucket_count // 2
        self._sub_bucket_mask = (self._sub_bucket_count - 1) << self._unit_magnitude

        # Number of power-of-two buckets needed to cover highest_trackable
        smallest_untrackable = self._sub_bucket_count << self._unit_magnitude
        bucket_count = 1
        while smallest_untrackable <= highest_trackable:
            smallest_untrackable <<= 1
            bucket_count += 1
        self._bucket_count = bucket_count

        self._counts = [0] * ((bucket_count + 1) * self._sub_bucket_half_count)
        self.total_count = 0
        self.clamped_count = 0
        self._min: int | None = None
        self._max: int | None = None
        self._sum = 0

    @classmethod
    def from_settings(cls, settings: HistogramSettings) -> "LatencyHistogram":
        return cls(
            lowest_discernible=settings.lowest_discernible,
            highest_trackable=settings.highest_trackable,
            significant_figures=settings.significant_figures,
        )

    # ---- bucket arithmetic ---------------------------------------------------

    def _bucket_index(self, value: int) -> int:
        pow2_ceiling = (value | self._sub_bucket_mask).bit_length()
        return pow2_ceiling - self._unit_magnitude - (self._sub_bucket_half_count_magnitude + 1)

    def _sub_bucket_index(self, value: int, bucket_index: int) -> int:
        return value >> (bucket_index + self._unit_magnitude)

    def _counts_index(self, value: int) -> int:
        bucket_index = self._bucket_index(value)
        sub_bucket_index = self._sub_bucket_index(value, bucket_index)
        bucket_base = (bucket_index + 1) << self._sub_bucket_half_count_magnitude
        return bucket_base + (sub_bucket_index - self._sub_bucket_half_count)

    def _value_from_index(self, index: int) -> int:
        bucket_index = (index >> self._sub_bucket_half_count_magnitude) - 1
        sub_bucket_index = (index & (self._sub_bucket_half_count - 1)) + self._sub_bucket_half_count
        if bucket_index < 0:
            sub_bucket_index -= self._sub_bucket_half_count
            bucket_index = 0
        return sub_bucket_index << (bucket_index + self._unit_magnitude)

    def size_of_equivalent_range(self, value: int) -> int:
        bucket_index = self._bucket_index(value)
        sub_bucket_index = self._sub_bucket_index(value, bucket_index)
        if sub_bucket_index >= self._sub_bucket_count:
            bucket_index += 1
        return 1 << (self._unit_magnitude + bucket_index)

    def lowest_equivalent(self, value: int) -> int:
        bucket_index = self._bucket_index(value)
        sub_bucket_index = self._sub_bucket_index(value, bucket_index)
        return sub_bucket_index << (bucket_index + self._unit_magnitude)

    def highest_equivalent(self, value: int) -> int:
        return self.lowest_equivalent(value) + self.size_of_equivalent_range(value) - 1

    # ---- recording -----------------------------------------------------------

    def record(self, value: int, count: int = 1) -> None:
        if value < 0:
            raise ValueError(f"cannot record negative value {value}")
        if count < 1:
            raise ValueError("count must be >= 1")
        value = int(value)
        if value > self.highest_trackable:
            value = self.highest_trackable
            self.clamped_count += count

        self._counts[self._counts_index(value)] += count
        self.total_count += count
        self._sum += value * count
        self._min = value if self._min is None else min(self._min, value)
        self._max = value if self._max is None else max(self._max, value)

    def record_all(self, values: Iterable[int]) -> None:
        for value in values:
            self.record(value)

    # ---- queries -------------------------------------------------------------

    @property
    def min(self) -> int | None:
        return self._min

    @property
    def max(self) -> int | None:
        return self._max

    @property
    def mean(self) -> float | None:
        if self.total_count == 0:
            return None
        return self._sum / self.total_count

    def value_at_percentile(self, percentile: float) -> int | None:
        """Value below which *percentile* percent of recorded samples fall.

        Returns None when nothing has been recorded.
        """
        if not 0.0 <= percentile <= 100.0:
            raise ValueError(f"percentile must be within [0, 100], got {percentile}")
        if self.total_count == 0:
            return None

        # Rounded first so that e.g. 99.9% of 1000 is exactly 999
        target = math.ceil(round(percentile / 100.0 * self.total_count, 9))
        target = max(target, 1)

        running = 0
        for index, count in enumerate(self._counts):
            if not count:
                continue
            running += count
            if running >= target:
                value = self._value_from_index(index)
                if percentile == 0.0:
                    return self.lowest_equivalent(value)
                assert self._max is not None
                return min(self.highest_equivalent(value), self._max)

        # Unreachable while total_count matches the bucket counts
        raise RuntimeError("histogram counts are inconsistent with total_count")

    def percentiles(self, names: dict[str, float] | None = None) -> dict[str, float]:
        """Named percentile values; empty when nothing has been recorded."""
        if self.total_count == 0:
            return {}
        names = names or DEFAULT_PERCENTILES
        result: dict[str, float] = {}
        for name, pct in names.items():
            value = self.value_at_percentile(pct)
            if value is not None:
                result[name] = float(value)
        return result
