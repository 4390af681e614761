"""
Signal, kernel and result types shared by the convolution engine and the
pop predictor.

Provides:
- Error taxonomy (InvalidArgumentError, NoDataError)
- Boundary validation that turns caller sequences into float arrays
- KernelSwitch / KernelSchedule: which kernel is active at each output sample
- PerceptualImpact: audibility ratio with its ordinal classification
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np


# =============================================================================
# ERRORS
# =============================================================================

class KernelSwitchingError(Exception):
    """Base class for errors raised by this package."""
    pass


class InvalidArgumentError(KernelSwitchingError, ValueError):
    """Raised when an argument is rejected before any processing starts."""
    pass


class NoDataError(InvalidArgumentError):
    """Raised when a signal or kernel has no samples."""
    pass


# =============================================================================
# VALIDATION
# =============================================================================

def as_signal(values: Any, name: str = "signal") -> np.ndarray:
    """
    Convert a caller sequence into a 1-D float64 array.

    Args:
        values: Any 1-D sequence of real numbers
        name: Argument name used in error messages

    Returns:
        Float array (a new array whenever a conversion was needed)

    Raises:
        InvalidArgumentError: If values is None, not 1-D or not finite
        NoDataError: If values is empty
    """
    if values is None:
        raise InvalidArgumentError(f"{name} cannot be None")

    try:
        array = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"{name} must be a sequence of real numbers: {e}")

    if array.ndim != 1:
        raise InvalidArgumentError(
            f"{name} must be one-dimensional (mono), got shape {array.shape}"
        )
    if array.size == 0:
        raise NoDataError(f"{name} cannot be empty")
    if not np.all(np.isfinite(array)):
        raise InvalidArgumentError(f"{name} contains NaN or infinite samples")

    return array


def as_kernel_list(kernels: Sequence[Any]) -> List[np.ndarray]:
    """
    Validate a kernel list: non-empty, every kernel valid, one shared length.

    Raises:
        InvalidArgumentError: On an empty list or mismatched kernel lengths
    """
    if kernels is None or len(kernels) == 0:
        raise InvalidArgumentError("kernels cannot be empty")

    arrays = [as_signal(k, name=f"kernels[{i}]") for i, k in enumerate(kernels)]

    kernel_length = len(arrays[0])
    if any(len(k) != kernel_length for k in arrays):
        raise InvalidArgumentError("all kernels must have the same length")

    return arrays


def validate_period(period_samples: Any) -> int:
    """Check that a switching period is a positive integer."""
    if isinstance(period_samples, bool) or not isinstance(period_samples, (int, np.integer)):
        raise InvalidArgumentError(
            f"period_samples must be an integer, got {type(period_samples).__name__}"
        )
    if period_samples <= 0:
        raise InvalidArgumentError("period_samples must be positive")
    return int(period_samples)


# =============================================================================
# KERNEL SWITCHING
# =============================================================================

@dataclass(frozen=True, eq=False)
class KernelSwitch:
    """
    Kernel that becomes active at an output sample index.

    Attributes:
        sample_index: First output sample convolved with this kernel (>= 0)
        kernel: FIR coefficients, stored as a read-only float array
    """
    sample_index: int
    kernel: np.ndarray = field(repr=False)

    def __post_init__(self):
        index = self.sample_index
        if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
            raise InvalidArgumentError("sample index must be an integer")
        if index < 0:
            raise InvalidArgumentError("sample index cannot be negative")

        kernel = np.array(as_signal(self.kernel, name="kernel"), copy=True)
        kernel.flags.writeable = False
        object.__setattr__(self, "sample_index", int(index))
        object.__setattr__(self, "kernel", kernel)


class KernelSchedule:
    """
    Sorted table of (start_sample, kernel_index) pairs.

    The entry active for output sample n is the one with the greatest
    start <= n; samples before the first start use the first entry.
    Lookups are binary searches over the start column.
    """

    def __init__(self, kernels: List[np.ndarray], entries: Sequence[Tuple[int, int]]):
        if not entries:
            raise InvalidArgumentError("kernel schedule needs at least one entry")
        self.kernels = kernels
        # Stable sort: of several entries sharing a start, the last one wins
        ordered = sorted(entries, key=lambda entry: entry[0])
        self.starts: List[int] = [start for start, _ in ordered]
        self.kernel_indices: List[int] = [index for _, index in ordered]

    @property
    def kernel_length(self) -> int:
        return len(self.kernels[0])

    @classmethod
    def periodic(
        cls,
        kernels: List[np.ndarray],
        period_samples: int,
        output_length: int
    ) -> "KernelSchedule":
        """Cycle through kernels every period_samples output samples."""
        entries = [
            (start, (start // period_samples) % len(kernels))
            for start in range(0, output_length, period_samples)
        ]
        return cls(kernels, entries)

    @classmethod
    def from_switches(cls, switches: Sequence[KernelSwitch]) -> "KernelSchedule":
        """Build a schedule from explicit switches (validated and sorted)."""
        if switches is None or len(switches) == 0:
            raise InvalidArgumentError("kernel switches cannot be empty")
        for switch in switches:
            if not isinstance(switch, KernelSwitch):
                raise InvalidArgumentError(
                    f"expected KernelSwitch, got {type(switch).__name__}"
                )

        kernels = as_kernel_list([s.kernel for s in switches])
        entries = [(s.sample_index, i) for i, s in enumerate(switches)]
        return cls(kernels, entries)

    def entry_at(self, sample: int) -> int:
        """Position in the table of the entry governing an output sample."""
        return max(bisect_right(self.starts, sample) - 1, 0)

    def kernel_index_at(self, sample: int) -> int:
        return self.kernel_indices[self.entry_at(sample)]

    def kernel_at(self, sample: int) -> np.ndarray:
        return self.kernels[self.kernel_index_at(sample)]

    def runs(self, start: int, stop: int) -> List[Tuple[int, int, int]]:
        """
        Split the output range [start, stop) into single-kernel runs.

        Adjacent table entries that use the same kernel are merged.

        Returns:
            List of (run_start, run_stop, kernel_index)
        """
        runs: List[Tuple[int, int, int]] = []
        position = start
        while position < stop:
            entry = self.entry_at(position)
            # starts[entry + 1] > position always holds after bisect_right
            next_start = self.starts[entry + 1] if entry + 1 < len(self.starts) else stop
            run_stop = min(next_start, stop)
            kernel_index = self.kernel_indices[entry]
            if runs and runs[-1][2] == kernel_index:
                runs[-1] = (runs[-1][0], run_stop, kernel_index)
            else:
                runs.append((position, run_stop, kernel_index))
            position = run_stop
        return runs

    def is_uniform(self, start: int, stop: int) -> bool:
        """True when every output sample in [start, stop) uses one kernel."""
        return len(self.runs(start, stop)) <= 1

    def largest_gap(self, output_length: int) -> int:
        """Longest stretch of output governed by a single table entry."""
        starts = [min(max(s, 0), output_length) for s in self.starts]
        starts[0] = 0
        bounds = starts + [output_length]
        return max(max(b - a for a, b in zip(bounds[:-1], bounds[1:])), 1)


# =============================================================================
# PERCEPTUAL IMPACT
# =============================================================================

class AudibilityLevel(Enum):
    """Ordinal classification of a PerceptualImpact ratio."""
    WELL_BELOW_THRESHOLD = "well_below_threshold"
    BELOW_THRESHOLD = "below_threshold"
    SLIGHTLY_AUDIBLE = "slightly_audible"
    CLEARLY_AUDIBLE = "clearly_audible"
    VERY_AUDIBLE = "very_audible"


@dataclass(frozen=True)
class PerceptualImpact:
    """
    Ratio of a switch's discontinuity to its audibility threshold.

    ratio < 1.0 is inaudible, ratio >= 1.0 is audible.
    """
    ratio: float

    def __post_init__(self):
        ratio = float(self.ratio)
        if np.isnan(ratio) or ratio < 0:
            raise InvalidArgumentError(f"impact ratio must be non-negative, got {self.ratio}")
        object.__setattr__(self, "ratio", ratio)

    @property
    def is_audible(self) -> bool:
        return self.ratio >= 1.0

    @property
    def is_inaudible(self) -> bool:
        return self.ratio < 1.0

    @property
    def level(self) -> AudibilityLevel:
        if self.ratio < 0.5:
            return AudibilityLevel.WELL_BELOW_THRESHOLD
        if self.ratio < 1.0:
            return AudibilityLevel.BELOW_THRESHOLD
        if self.ratio < 2.0:
            return AudibilityLevel.SLIGHTLY_AUDIBLE
        if self.ratio < 5.0:
            return AudibilityLevel.CLEARLY_AUDIBLE
        return AudibilityLevel.VERY_AUDIBLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ratio": round(self.ratio, 6),
            "audible": self.is_audible,
            "level": self.level.value,
        }


@dataclass
class SwitchAnalysis:
    """
    Every intermediate value of one audibility prediction.

    Attributes:
        switch_index: Output sample where the candidate kernel takes over
        current_output: Output sample value with the current kernel
        candidate_output: Output sample value with the candidate kernel
        raw_discontinuity: |candidate_output - current_output|
        dominant_frequency: Frequency (Hz) of the strongest analysis bin
        base_threshold: Bark-table threshold at the dominant frequency
        flatness: Spectral flatness of the analysis segment
        flux: Normalized spectral flux of the context window
        masking_factor: Threshold multiplier in [1, 3]
        effective_threshold: base_threshold * masking_factor
        impact: Resulting PerceptualImpact
    """
    switch_index: int
    current_output: float
    candidate_output: float
    raw_discontinuity: float
    dominant_frequency: float
    base_threshold: float
    flatness: float
    flux: float
    masking_factor: float
    effective_threshold: float
    impact: PerceptualImpact
    sample_rate: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "switch_index": self.switch_index,
            "sample_rate": self.sample_rate,
            "raw_discontinuity": round(self.raw_discontinuity, 6),
            "dominant_frequency_hz": round(self.dominant_frequency, 2),
            "base_threshold": round(self.base_threshold, 6),
            "flatness": round(self.flatness, 6),
            "flux": round(self.flux, 6),
            "masking_factor": round(self.masking_factor, 4),
            "effective_threshold": round(self.effective_threshold, 6),
            "impact": self.impact.to_dict(),
        }
