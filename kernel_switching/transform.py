"""
Spectral transform helpers for block convolution and spectral analysis.

Wraps scipy.fft real transforms behind an explicitly passed TransformContext
and provides the padding, block extraction and spectrum helpers used by the
convolution engine and the feature calculators.
"""

from typing import Dict, Optional, Tuple

import numpy as np
from scipy import signal
from scipy.fft import irfft, rfft

from .signals import InvalidArgumentError


# =============================================================================
# SIZE HELPERS
# =============================================================================

def is_power_of_two(n: int) -> bool:
    """True for 1, 2, 4, 8, ..."""
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


# =============================================================================
# TRANSFORM CONTEXT
# =============================================================================

class TransformContext:
    """
    Reusable transform object passed to whatever needs FFTs.

    Holds configuration and a window cache only. No signal data survives a
    call, so sharing one context between calls on the same thread gives the
    same results as building a fresh one each time. Use one context per
    thread.

    Attributes:
        workers: Worker count handed to scipy.fft (None = scipy default)

    Example:
        >>> context = TransformContext()
        >>> spectrum = context.transform(np.ones(8))
        >>> block = context.inverse_transform(spectrum, 8)
    """

    def __init__(self, workers: Optional[int] = None):
        self.workers = workers
        self._windows: Dict[Tuple[str, int], np.ndarray] = {}

    def transform(self, x: np.ndarray) -> np.ndarray:
        """
        Forward real FFT.

        Args:
            x: Real samples; length (last axis) must be a power of two

        Returns:
            One-sided complex spectrum of len(x) // 2 + 1 bins
        """
        n = np.shape(x)[-1]
        if not is_power_of_two(n):
            raise InvalidArgumentError(f"transform length must be a power of two, got {n}")
        return rfft(x, workers=self.workers)

    def inverse_transform(self, spectrum: np.ndarray, n: int) -> np.ndarray:
        """
        Inverse real FFT back to n real samples.

        The one-sided spectrum of a real block is Hermitian, so the result
        has no imaginary residue to discard.
        """
        if not is_power_of_two(n):
            raise InvalidArgumentError(f"transform length must be a power of two, got {n}")
        if np.shape(spectrum)[-1] != n // 2 + 1:
            raise InvalidArgumentError(
                f"spectrum has {np.shape(spectrum)[-1]} bins, expected {n // 2 + 1} for n={n}"
            )
        return irfft(spectrum, n=n, workers=self.workers)

    def window(self, size: int, name: str = "hann") -> np.ndarray:
        """Cached periodic analysis window (read-only)."""
        key = (name, size)
        if key not in self._windows:
            win = signal.get_window(name, size)
            win.flags.writeable = False
            self._windows[key] = win
        return self._windows[key]


# =============================================================================
# PADDING / BLOCKS
# =============================================================================

def zero_pad(array: np.ndarray, target_length: int) -> np.ndarray:
    """
    Append zeros up to target_length.

    Returns the input unchanged when it is already long enough.
    """
    array = np.asarray(array, dtype=np.float64)
    if len(array) >= target_length:
        return array
    padded = np.zeros(target_length)
    padded[:len(array)] = array
    return padded


def zero_pad_edges(array: np.ndarray, lead: int, trail: int) -> np.ndarray:
    """Add lead zeros before and trail zeros after the samples."""
    if lead < 0 or trail < 0:
        raise InvalidArgumentError("padding amounts must be non-negative")
    array = np.asarray(array, dtype=np.float64)
    if lead == 0 and trail == 0:
        return array
    return np.pad(array, (lead, trail), mode='constant')


def pad_symmetric(array: np.ndarray, padding: int) -> np.ndarray:
    """Same amount of zeros on both sides."""
    return zero_pad_edges(array, padding, padding)


def extract_block(padded: np.ndarray, start: int, size: int) -> np.ndarray:
    """
    Copy size samples starting at start.

    Positions outside the buffer (before 0 or past the end) read as zeros.
    """
    block = np.zeros(size)
    src_start = max(start, 0)
    src_stop = min(start + size, len(padded))
    if src_stop > src_start:
        block[src_start - start:src_stop - start] = padded[src_start:src_stop]
    return block


def multiply_spectra(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Element-wise complex product of two equal-length spectra."""
    if len(a) != len(b):
        raise InvalidArgumentError(
            f"spectra must have the same length ({len(a)} != {len(b)})"
        )
    return a * b


# =============================================================================
# SPECTRA
# =============================================================================

def power_spectrum(
    x: np.ndarray,
    context: Optional[TransformContext] = None
) -> np.ndarray:
    """
    One-sided squared-magnitude spectrum.

    The signal is zero-padded to the next power of two N; bin k holds |X_k|^2
    for k = 0..N/2. Parseval holds as
    (P[0] + 2 * sum(P[1:-1]) + P[-1]) / N == sum(x ** 2).

    Args:
        x: Real samples (non-empty)
        context: Transform context (a fresh one when omitted)

    Returns:
        Array of N // 2 + 1 non-negative values
    """
    context = context or TransformContext()
    x = np.asarray(x, dtype=np.float64)
    if len(x) == 0:
        return np.zeros(0)
    n = next_power_of_two(len(x))
    if n < 2:
        n = 2
    spectrum = context.transform(zero_pad(x, n))
    return np.abs(spectrum) ** 2


def magnitude_spectrum(
    frame: np.ndarray,
    context: Optional[TransformContext] = None
) -> np.ndarray:
    """One-sided magnitude spectrum of a power-of-two frame."""
    context = context or TransformContext()
    return np.abs(context.transform(np.asarray(frame, dtype=np.float64)))
