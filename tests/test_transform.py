"""
Unit tests for the spectral transform helpers

Tests power-of-two sizing, forward/inverse transforms, padding, block
extraction and power spectra.
"""

import pytest
import sys
import numpy as np
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from kernel_switching.signals import InvalidArgumentError
from kernel_switching.transform import (
    TransformContext,
    extract_block,
    is_power_of_two,
    magnitude_spectrum,
    multiply_spectra,
    next_power_of_two,
    pad_symmetric,
    power_spectrum,
    zero_pad,
    zero_pad_edges,
)


class TestSizeHelpers:
    """Tests for power-of-two helpers."""

    def test_next_power_of_two(self):
        """Test rounding up to powers of two."""
        assert next_power_of_two(1) == 1
        assert next_power_of_two(2) == 2
        assert next_power_of_two(3) == 4
        assert next_power_of_two(64) == 64
        assert next_power_of_two(65) == 128
        assert next_power_of_two(1000) == 1024

    def test_is_power_of_two(self):
        """Test power-of-two detection."""
        assert is_power_of_two(1)
        assert is_power_of_two(512)
        assert not is_power_of_two(0)
        assert not is_power_of_two(3)
        assert not is_power_of_two(-4)


class TestTransformContext:
    """Tests for forward and inverse transforms."""

    def test_round_trip(self, rng):
        """Inverse transform recovers the block."""
        context = TransformContext()
        x = rng.standard_normal(256)

        spectrum = context.transform(x)
        recovered = context.inverse_transform(spectrum, 256)

        assert len(spectrum) == 129
        np.testing.assert_allclose(recovered, x, atol=1e-12)

    def test_impulse_has_flat_spectrum(self):
        """A unit impulse transforms to all ones."""
        context = TransformContext()
        impulse = np.zeros(64)
        impulse[0] = 1.0

        spectrum = context.transform(impulse)

        np.testing.assert_allclose(spectrum, np.ones(33), atol=1e-12)

    def test_rejects_non_power_of_two(self):
        """Transform lengths must be powers of two."""
        context = TransformContext()
        with pytest.raises(InvalidArgumentError):
            context.transform(np.zeros(100))
        with pytest.raises(InvalidArgumentError):
            context.inverse_transform(np.zeros(51, dtype=complex), 100)

    def test_rejects_mismatched_bin_count(self):
        """Spectrum bins must match the requested length."""
        context = TransformContext()
        with pytest.raises(InvalidArgumentError):
            context.inverse_transform(np.zeros(10, dtype=complex), 64)

    def test_reuse_matches_fresh_context(self, rng):
        """A shared context gives the same results as fresh ones."""
        shared = TransformContext()
        a = rng.standard_normal(128)
        b = rng.standard_normal(128)

        shared.transform(a)
        reused = shared.transform(b)
        fresh = TransformContext().transform(b)

        np.testing.assert_array_equal(reused, fresh)

    def test_window_cached_and_read_only(self):
        """Windows are cached per size and cannot be modified."""
        context = TransformContext()
        w1 = context.window(512)
        w2 = context.window(512)

        assert w1 is w2
        assert len(w1) == 512
        assert w1[0] == pytest.approx(0.0)
        with pytest.raises(ValueError):
            w1[0] = 1.0


class TestPadding:
    """Tests for padding and block helpers."""

    def test_zero_pad_extends(self):
        """Zeros are appended up to the target length."""
        padded = zero_pad([1.0, 2.0], 4)
        np.testing.assert_array_equal(padded, [1.0, 2.0, 0.0, 0.0])

    def test_zero_pad_returns_long_input_unchanged(self):
        """Input already long enough comes back as-is."""
        x = np.arange(8, dtype=np.float64)
        assert zero_pad(x, 4) is x

    def test_zero_pad_edges(self):
        """Lead and trail zeros."""
        padded = zero_pad_edges([1.0], 2, 1)
        np.testing.assert_array_equal(padded, [0.0, 0.0, 1.0, 0.0])

    def test_zero_pad_edges_rejects_negative(self):
        """Negative padding is invalid."""
        with pytest.raises(InvalidArgumentError):
            zero_pad_edges([1.0], -1, 0)

    def test_pad_symmetric(self):
        """Same padding both sides."""
        padded = pad_symmetric([1.0, 2.0], 2)
        np.testing.assert_array_equal(padded, [0.0, 0.0, 1.0, 2.0, 0.0, 0.0])

    def test_extract_block_past_end_reads_zero(self):
        """Out-of-range positions are zero."""
        block = extract_block(np.array([1.0, 2.0, 3.0]), 1, 4)
        np.testing.assert_array_equal(block, [2.0, 3.0, 0.0, 0.0])

    def test_extract_block_before_start_reads_zero(self):
        """Negative start positions are zero-filled."""
        block = extract_block(np.array([1.0, 2.0, 3.0]), -2, 4)
        np.testing.assert_array_equal(block, [0.0, 0.0, 1.0, 2.0])

    def test_multiply_spectra(self):
        """Element-wise complex product."""
        a = np.array([1 + 1j, 2.0])
        b = np.array([1 - 1j, 0.5j])
        np.testing.assert_allclose(multiply_spectra(a, b), [2.0, 1j])

    def test_multiply_spectra_length_mismatch(self):
        """Spectra of different lengths cannot be multiplied."""
        with pytest.raises(InvalidArgumentError):
            multiply_spectra(np.ones(3), np.ones(4))


class TestPowerSpectrum:
    """Tests for one-sided power spectra."""

    def test_length(self):
        """Zero-padded to the next power of two."""
        assert len(power_spectrum(np.ones(100))) == 65
        assert len(power_spectrum(np.ones(128))) == 65

    def test_non_negative(self, rng):
        """Power is never negative."""
        assert np.all(power_spectrum(rng.standard_normal(300)) >= 0)

    def test_parseval(self, rng):
        """Energy is preserved for a one-sided power spectrum."""
        x = rng.standard_normal(256)
        p = power_spectrum(x)
        n = 256

        energy = (p[0] + 2 * np.sum(p[1:-1]) + p[-1]) / n

        assert energy == pytest.approx(np.sum(x ** 2), rel=1e-10)

    def test_sine_peak_bin(self):
        """A bin-centred sine peaks at its bin."""
        n = 512
        x = np.sin(2 * np.pi * 32 * np.arange(n) / n)
        p = power_spectrum(x)
        assert int(np.argmax(p)) == 32

    def test_magnitude_spectrum(self):
        """Magnitude of a DC frame sits in bin 0."""
        mags = magnitude_spectrum(np.ones(16))
        assert mags[0] == pytest.approx(16.0)
        np.testing.assert_allclose(mags[1:], 0.0, atol=1e-12)
