"""
Unit tests for shared signal types

Tests boundary validation, KernelSwitch invariants and PerceptualImpact
classification.
"""

import pytest
import sys
import numpy as np
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kernel_switching.signals import (
    AudibilityLevel,
    InvalidArgumentError,
    KernelSwitch,
    KernelSwitchingError,
    NoDataError,
    PerceptualImpact,
    as_kernel_list,
    as_signal,
    validate_period,
)


class TestValidation:
    """Tests for boundary conversion and checks."""

    def test_as_signal_converts(self):
        result = as_signal([1, 2, 3])
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_as_signal_errors(self):
        with pytest.raises(InvalidArgumentError):
            as_signal(None)
        with pytest.raises(NoDataError):
            as_signal([])
        with pytest.raises(InvalidArgumentError):
            as_signal([[1.0, 2.0]])
        with pytest.raises(InvalidArgumentError):
            as_signal([1.0, np.inf])
        with pytest.raises(InvalidArgumentError):
            as_signal(["a", "b"])

    def test_error_hierarchy(self):
        assert issubclass(NoDataError, InvalidArgumentError)
        assert issubclass(InvalidArgumentError, KernelSwitchingError)
        assert issubclass(InvalidArgumentError, ValueError)

    def test_kernel_list(self):
        kernels = as_kernel_list([[1.0, 0.0], (0.5, 0.5)])
        assert len(kernels) == 2
        with pytest.raises(InvalidArgumentError, match="empty"):
            as_kernel_list([])
        with pytest.raises(InvalidArgumentError, match="same length"):
            as_kernel_list([[1.0], [1.0, 0.0]])

    def test_validate_period(self):
        assert validate_period(10) == 10
        assert validate_period(np.int64(3)) == 3
        for bad in (0, -1, 1.5, True, None):
            with pytest.raises(InvalidArgumentError):
                validate_period(bad)


class TestKernelSwitch:
    """Tests for the immutable switch value."""

    def test_fields(self):
        switch = KernelSwitch(100, [1.0, 0.5])
        assert switch.sample_index == 100
        np.testing.assert_array_equal(switch.kernel, [1.0, 0.5])

    def test_kernel_is_copied_and_read_only(self):
        source = np.array([1.0, 2.0])
        switch = KernelSwitch(0, source)
        source[0] = 99.0

        assert switch.kernel[0] == 1.0
        with pytest.raises(ValueError):
            switch.kernel[0] = 5.0

    def test_frozen(self):
        switch = KernelSwitch(0, [1.0])
        with pytest.raises(AttributeError):
            switch.sample_index = 5

    def test_invalid_index(self):
        with pytest.raises(InvalidArgumentError):
            KernelSwitch(-1, [1.0])
        with pytest.raises(InvalidArgumentError):
            KernelSwitch(1.5, [1.0])


class TestPerceptualImpact:
    """Tests for audibility classification."""

    @pytest.mark.parametrize("ratio,level", [
        (0.0, AudibilityLevel.WELL_BELOW_THRESHOLD),
        (0.49, AudibilityLevel.WELL_BELOW_THRESHOLD),
        (0.5, AudibilityLevel.BELOW_THRESHOLD),
        (0.99, AudibilityLevel.BELOW_THRESHOLD),
        (1.0, AudibilityLevel.SLIGHTLY_AUDIBLE),
        (1.99, AudibilityLevel.SLIGHTLY_AUDIBLE),
        (2.0, AudibilityLevel.CLEARLY_AUDIBLE),
        (4.99, AudibilityLevel.CLEARLY_AUDIBLE),
        (5.0, AudibilityLevel.VERY_AUDIBLE),
        (100.0, AudibilityLevel.VERY_AUDIBLE),
    ])
    def test_levels(self, ratio, level):
        assert PerceptualImpact(ratio).level == level

    def test_audible_boundary(self):
        assert PerceptualImpact(1.0).is_audible
        assert not PerceptualImpact(1.0).is_inaudible
        assert PerceptualImpact(0.999).is_inaudible

    def test_negative_rejected(self):
        with pytest.raises(InvalidArgumentError):
            PerceptualImpact(-0.1)
        with pytest.raises(InvalidArgumentError):
            PerceptualImpact(float("nan"))

    def test_to_dict(self):
        assert PerceptualImpact(2.5).to_dict() == {
            "ratio": 2.5,
            "audible": True,
            "level": "clearly_audible",
        }
