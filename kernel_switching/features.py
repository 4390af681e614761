"""
Spectral feature calculators: flatness, crest and flux.

Flatness and crest work on a precomputed spectrum; flux works on the signal
itself and frames it internally.
"""

from typing import Optional
import logging

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .signals import InvalidArgumentError
from .transform import TransformContext, is_power_of_two

logger = logging.getLogger(__name__)

DEFAULT_FLATNESS_EPSILON = 1e-10
DEFAULT_FLUX_WINDOW = 512
DEFAULT_FLUX_HOP = DEFAULT_FLUX_WINDOW // 4  # 75% overlap
# Largest raw flux observed over the speech/music/noise calibration material
DEFAULT_FLUX_NORMALIZATION = 14.253


def spectral_flatness(
    power_spectrum: np.ndarray,
    epsilon: float = DEFAULT_FLATNESS_EPSILON
) -> float:
    """
    Geometric mean over arithmetic mean of a power spectrum.

    Bins at or below epsilon are dropped first so log(0) never happens.
    Near 0 means tonal, near 1 means noise-like.

    Returns:
        Flatness in (0, 1], or 0.0 for an empty or all-zero spectrum
    """
    power = np.asarray(power_spectrum, dtype=np.float64)
    retained = power[power > epsilon]
    if retained.size == 0:
        return 0.0

    geometric_mean = np.exp(np.mean(np.log(retained)))
    arithmetic_mean = np.mean(retained)
    return float(geometric_mean / arithmetic_mean)


def spectral_crest(spectrum: np.ndarray) -> float:
    """
    Peak over mean of a spectrum.

    High crest: energy in a few bins (tonal or transient).
    Low crest: energy spread evenly.
    """
    values = np.asarray(spectrum, dtype=np.float64)
    if values.size == 0:
        return 0.0
    mean = np.mean(values)
    if mean <= 0:
        return 0.0
    return float(np.max(values) / mean)


def _is_integer(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class SpectralFluxCalculator:
    """
    Average frame-to-frame spectral change of a signal.

    Frames are Hann-windowed and overlap by window_size - hop_size samples.
    For each consecutive pair of frames the positive magnitude increases are
    collected per bin and reduced to a Euclidean norm; the norms are averaged
    over all pairs.

    Attributes:
        window_size: Frame length (power of two)
        hop_size: Samples between frame starts
        normalization: Raw flux that maps to 1.0
    """

    def __init__(
        self,
        window_size: int = DEFAULT_FLUX_WINDOW,
        hop_size: int = DEFAULT_FLUX_HOP,
        normalization: float = DEFAULT_FLUX_NORMALIZATION,
        context: Optional[TransformContext] = None
    ):
        if not _is_integer(window_size) or not is_power_of_two(window_size):
            raise InvalidArgumentError(f"window_size must be a power of two, got {window_size!r}")
        if not _is_integer(hop_size) or hop_size <= 0:
            raise InvalidArgumentError(f"hop_size must be a positive integer, got {hop_size!r}")
        if not normalization > 0:
            raise InvalidArgumentError(f"normalization must be positive, got {normalization!r}")

        self.window_size = window_size
        self.hop_size = hop_size
        self.normalization = normalization
        self.context = context or TransformContext()

    def _frame_magnitudes(self, signal: np.ndarray) -> np.ndarray:
        frames = sliding_window_view(signal, self.window_size)[::self.hop_size]
        windowed = frames * self.context.window(self.window_size, "hann")
        magnitudes = np.abs(self.context.transform(windowed))
        # Nyquist bin excluded
        return magnitudes[:, :self.window_size // 2]

    def average_flux(self, signal: np.ndarray) -> float:
        """
        Raw (unnormalized) average flux.

        Returns 0.0 when the signal holds fewer than two full windows.
        """
        signal = np.asarray(signal, dtype=np.float64)
        if len(signal) < self.window_size * 2:
            return 0.0

        magnitudes = self._frame_magnitudes(signal)
        increases = np.maximum(np.diff(magnitudes, axis=0), 0.0)
        frame_flux = np.sqrt(np.sum(increases ** 2, axis=1))
        return float(np.mean(frame_flux))

    def normalized_average_flux(self, signal: np.ndarray) -> float:
        """Average flux scaled into [0, 1]."""
        raw = self.average_flux(signal)
        normalized = min(1.0, raw / self.normalization)
        logger.debug(f"Spectral flux raw={raw:.4f} normalized={normalized:.4f}")
        return normalized


def spectral_flux(signal: np.ndarray) -> float:
    """Normalized average spectral flux with default framing."""
    return SpectralFluxCalculator().normalized_average_flux(signal)
