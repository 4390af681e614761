"""
Utility functions and constants for kernel switching work.

Provides:
- Test signal generators (sine, sawtooth, white noise, impulse)
- Kernel helpers (unit-energy scaling, length matching)
- Discontinuity measurement for checking switch artefacts
"""

from typing import List, Optional, Sequence

import numpy as np

from .signals import InvalidArgumentError, NoDataError, as_signal


# =============================================================================
# AUDIO CONSTANTS
# =============================================================================

SAMPLE_RATE = 44100  # Hz - CD quality
NORMALIZE_CEILING = 0.99  # Peak after normalize()


# =============================================================================
# SIGNAL GENERATORS
# =============================================================================

def _num_samples(duration: float, sample_rate: int) -> int:
    if duration <= 0:
        raise InvalidArgumentError("duration must be positive")
    if sample_rate <= 0:
        raise InvalidArgumentError("sample_rate must be positive")
    return int(duration * sample_rate)


def generate_sine_wave(
    frequency: float,
    duration: float,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 1.0,
    phase: float = 0.0
) -> np.ndarray:
    """
    Sine wave starting at the given phase (radians).

    Args:
        frequency: Frequency in Hz
        duration: Length in seconds
        sample_rate: Sample rate in Hz
        amplitude: Peak amplitude
        phase: Starting phase in radians

    Returns:
        Array of int(duration * sample_rate) samples
    """
    t = np.arange(_num_samples(duration, sample_rate)) / sample_rate
    return amplitude * np.sin(2 * np.pi * frequency * t + phase)


def generate_sawtooth_wave(
    frequency: float,
    duration: float,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 1.0
) -> np.ndarray:
    """Naive (non band-limited) sawtooth rising from -amplitude to +amplitude."""
    t = np.arange(_num_samples(duration, sample_rate)) / sample_rate
    cycle = (frequency * t) % 1.0
    return amplitude * (2.0 * cycle - 1.0)


def generate_white_noise(
    duration: float,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 1.0,
    rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Uniform white noise in [-amplitude, amplitude)."""
    rng = rng or np.random.default_rng()
    n = _num_samples(duration, sample_rate)
    return amplitude * rng.uniform(-1.0, 1.0, n)


def generate_impulse(length: int, position: int = 0, value: float = 1.0) -> np.ndarray:
    """Unit impulse (Kronecker delta) of the given length."""
    if length <= 0:
        raise InvalidArgumentError("length must be positive")
    if not 0 <= position < length:
        raise InvalidArgumentError(f"impulse position {position} outside [0, {length})")
    impulse = np.zeros(length)
    impulse[position] = value
    return impulse


# =============================================================================
# KERNEL / BUFFER HELPERS
# =============================================================================

def normalize(signal: Sequence[float], ceiling: float = NORMALIZE_CEILING) -> np.ndarray:
    """
    Scale down so the peak does not exceed ceiling.

    Signals already within the ceiling come back unscaled.
    """
    signal = as_signal(signal)
    peak = np.max(np.abs(signal))
    if peak > ceiling:
        return signal * (ceiling / peak)
    return signal.copy()


def unit_vector(kernel: Sequence[float]) -> np.ndarray:
    """Scale a kernel to unit Euclidean norm."""
    kernel = as_signal(kernel, "kernel")
    norm = np.linalg.norm(kernel)
    if norm == 0:
        raise InvalidArgumentError("cannot normalize an all-zero kernel")
    return kernel / norm


def pad_kernels_to_same_length(kernels: Sequence[Sequence[float]]) -> List[np.ndarray]:
    """Zero-pad every kernel at the end to the length of the longest one."""
    if kernels is None or len(kernels) == 0:
        raise InvalidArgumentError("kernels cannot be empty")
    arrays = [as_signal(k, name=f"kernels[{i}]") for i, k in enumerate(kernels)]
    target = max(len(k) for k in arrays)
    return [np.pad(k, (0, target - len(k)), mode='constant') for k in arrays]


# =============================================================================
# DISCONTINUITY MEASUREMENT
# =============================================================================

def max_discontinuity(signal: Sequence[float]) -> float:
    """Largest absolute difference between consecutive samples."""
    signal = np.asarray(signal, dtype=np.float64)
    if signal.size == 0:
        raise NoDataError("signal cannot be empty")
    if signal.size < 2:
        return 0.0
    return float(np.max(np.abs(np.diff(signal))))


def max_discontinuity_near(signal: Sequence[float], index: int, radius: int) -> float:
    """
    Largest sample-to-sample jump within radius samples of index.

    Looks at consecutive pairs inside [index - radius, index + radius],
    clipped to the signal.
    """
    signal = np.asarray(signal, dtype=np.float64)
    if radius < 0:
        raise InvalidArgumentError("radius must be non-negative")
    start = max(0, index - radius)
    stop = min(len(signal), index + radius + 1)
    if stop - start < 2:
        return 0.0
    return max_discontinuity(signal[start:stop])
