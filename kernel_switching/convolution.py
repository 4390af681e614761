"""
Overlap-Save Convolution - FFT block convolution with kernel switching.

Convolves a long mono signal with one FIR kernel, or with a set of
equal-length kernels that take turns over the output: periodically (cycling
through the list) or at explicit sample indices. Blocks whose output range
uses one kernel run in the frequency domain; blocks that straddle a kernel
boundary are evaluated directly in the time domain so no kernel's response
leaks into samples governed by another.
"""

from typing import List, Optional, Sequence
import logging
import math

import numpy as np

from .config_loader import ConvolutionSettings
from .signals import (
    InvalidArgumentError,
    KernelSchedule,
    KernelSwitch,
    as_kernel_list,
    as_signal,
    validate_period,
)
from .transform import TransformContext, extract_block, multiply_spectra, next_power_of_two, zero_pad

logger = logging.getLogger(__name__)


class OverlapSaveConvolver:
    """
    Overlap-save convolution engine.

    Every method is a pure function of its arguments; the instance only
    carries FFT sizing settings and the transform context.

    Usage:
        convolver = OverlapSaveConvolver()

        # Fixed kernel
        wet = convolver.convolve(audio, ir)

        # Alternate two kernels every half second
        wet = convolver.convolve_periodic(audio, [ir_a, ir_b], 22050)

        # Switch at arbitrary points
        wet = convolver.convolve_switches(audio, [
            KernelSwitch(0, ir_a),
            KernelSwitch(30000, ir_b),
        ])
    """

    def __init__(
        self,
        settings: Optional[ConvolutionSettings] = None,
        context: Optional[TransformContext] = None
    ):
        self.settings = settings or ConvolutionSettings()
        self.context = context or TransformContext()

    # -------------------------------------------------------------------------
    # FFT sizing
    # -------------------------------------------------------------------------

    def choose_fft_size(self, signal_length: int, kernel_length: int) -> int:
        """
        Pick the FFT size for single-kernel convolution.

        Starts at the smallest power of two >= max(2L - 1, min_fft_size).
        For signals much longer than the kernel, keeps doubling (up to
        fft_search_multiplier times the minimum, and never past the output
        length) while the operations-per-sample cost strictly improves.
        """
        min_size = max(2 * kernel_length - 1, self.settings.min_fft_size)
        optimal_size = next_power_of_two(min_size)

        if signal_length <= self.settings.fft_search_signal_ratio * kernel_length:
            return optimal_size

        total_length = signal_length + kernel_length - 1
        best_size = optimal_size
        best_cost = _operations_per_sample(total_length, kernel_length, optimal_size)

        limit = min(optimal_size * self.settings.fft_search_multiplier, total_length)
        size = optimal_size * 2
        while size <= limit:
            cost = _operations_per_sample(total_length, kernel_length, size)
            if cost < best_cost:
                best_size = size
                best_cost = cost
            else:
                break
            size *= 2

        return best_size

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def convolve(self, signal: Sequence[float], kernel: Sequence[float]) -> np.ndarray:
        """
        Linear convolution of signal with kernel.

        Args:
            signal: Input samples (non-empty)
            kernel: FIR coefficients (non-empty)

        Returns:
            Array of len(signal) + len(kernel) - 1 samples

        Raises:
            InvalidArgumentError: On invalid input (NoDataError when empty)
        """
        signal = as_signal(signal, "signal")
        kernel = as_signal(kernel, "kernel")
        return self._convolve_single(signal, kernel)

    def convolve_periodic(
        self,
        signal: Sequence[float],
        kernels: Sequence[Sequence[float]],
        period_samples: int
    ) -> np.ndarray:
        """
        Convolve with kernels that take turns every period_samples.

        Output sample n uses kernels[(n // period_samples) % len(kernels)],
        so the list cycles for as long as the output runs, tail included.

        Args:
            signal: Input samples
            kernels: Equal-length FIR kernels
            period_samples: Output samples per kernel turn (> 0)

        Returns:
            Array of len(signal) + kernel_length - 1 samples
        """
        kernel_list = as_kernel_list(kernels)
        period = validate_period(period_samples)
        signal = as_signal(signal, "signal")

        kernel_length = len(kernel_list[0])
        result_length = len(signal) + kernel_length - 1
        schedule = KernelSchedule.periodic(kernel_list, period, result_length)

        if schedule.is_uniform(0, result_length):
            return self._convolve_single(signal, schedule.kernel_at(0))

        # Past this point period < result_length
        fft_size = max(next_power_of_two(period + kernel_length - 1), self.settings.min_fft_size)

        # Blocks advance by exactly one period so each block maps to one kernel
        return self._convolve_scheduled(signal, schedule, fft_size, period)

    def convolve_switches(
        self,
        signal: Sequence[float],
        switches: Sequence[KernelSwitch]
    ) -> np.ndarray:
        """
        Convolve with kernels that take over at explicit output samples.

        Output sample n uses the switch with the greatest sample_index <= n,
        or the first switch when n precedes all of them.

        Args:
            signal: Input samples
            switches: KernelSwitch list (any order, equal-length kernels)

        Returns:
            Array of len(signal) + kernel_length - 1 samples
        """
        schedule = KernelSchedule.from_switches(switches)
        signal = as_signal(signal, "signal")

        kernel_length = schedule.kernel_length
        result_length = len(signal) + kernel_length - 1

        if schedule.is_uniform(0, result_length):
            return self._convolve_single(signal, schedule.kernel_at(0))

        # Longest single-kernel stretch, capped at the cost-optimal size
        gap = schedule.largest_gap(result_length)
        fft_size = min(
            max(next_power_of_two(gap + kernel_length - 1), self.settings.min_fft_size),
            self.choose_fft_size(len(signal), kernel_length),
        )
        step = fft_size - kernel_length + 1

        return self._convolve_scheduled(signal, schedule, fft_size, step)

    def convolve_at(
        self,
        signal: Sequence[float],
        kernel: Sequence[float],
        index: int
    ) -> float:
        """
        One output sample of the linear convolution, computed directly.

        output[index] = sum_k signal[index - k] * kernel[k], with signal
        samples outside the buffer taken as zero.

        Args:
            signal: Input samples
            kernel: FIR coefficients
            index: Output sample, 0 <= index < len(signal) + len(kernel) - 1
        """
        signal = as_signal(signal, "signal")
        kernel = as_signal(kernel, "kernel")
        result_length = len(signal) + len(kernel) - 1

        if isinstance(index, bool) or not isinstance(index, (int, np.integer)):
            raise InvalidArgumentError(f"index must be an integer, got {type(index).__name__}")
        if not 0 <= index < result_length:
            raise InvalidArgumentError(
                f"index {index} outside convolution output [0, {result_length})"
            )

        taps = np.arange(max(0, index - len(signal) + 1), min(len(kernel) - 1, index) + 1)
        return float(np.dot(signal[index - taps], kernel[taps]))

    # -------------------------------------------------------------------------
    # Block processing
    # -------------------------------------------------------------------------

    def _convolve_single(self, signal: np.ndarray, kernel: np.ndarray) -> np.ndarray:
        kernel_length = len(kernel)
        fft_size = self.choose_fft_size(len(signal), kernel_length)
        block_size = fft_size - kernel_length + 1
        result_length = len(signal) + kernel_length - 1

        kernel_spectrum = self.context.transform(zero_pad(kernel, fft_size))

        total_blocks = math.ceil(result_length / block_size)
        padded = _pad_signal(signal, kernel_length, (total_blocks - 1) * block_size + fft_size)
        result = np.zeros(result_length)

        for block_index in range(total_blocks):
            start = block_index * block_size
            valid = min(block_size, result_length - start)
            saved = self._process_block(padded, start, fft_size, kernel_spectrum, kernel_length)
            result[start:start + valid] = saved[:valid]

        logger.debug(
            f"Single-kernel convolution: signal={len(signal)}, kernel={kernel_length}, "
            f"fft_size={fft_size}, blocks={total_blocks}"
        )
        return result

    def _convolve_scheduled(
        self,
        signal: np.ndarray,
        schedule: KernelSchedule,
        fft_size: int,
        step: int
    ) -> np.ndarray:
        kernel_length = schedule.kernel_length
        result_length = len(signal) + kernel_length - 1

        kernel_spectra: List[np.ndarray] = [
            self.context.transform(zero_pad(k, fft_size)) for k in schedule.kernels
        ]

        total_blocks = math.ceil(result_length / step)
        padded = _pad_signal(signal, kernel_length, (total_blocks - 1) * step + fft_size)
        result = np.zeros(result_length)
        straddling = 0

        for block_index in range(total_blocks):
            start = block_index * step
            stop = min(start + step, result_length)
            runs = schedule.runs(start, stop)

            if len(runs) == 1:
                kernel_index = runs[0][2]
                saved = self._process_block(
                    padded, start, fft_size, kernel_spectra[kernel_index], kernel_length
                )
                result[start:stop] = saved[:stop - start]
            else:
                straddling += 1
                for run_start, run_stop, kernel_index in runs:
                    result[run_start:run_stop] = _direct_convolve(
                        padded, schedule.kernels[kernel_index], run_start, run_stop
                    )

        logger.debug(
            f"Switched convolution: signal={len(signal)}, kernels={len(schedule.kernels)}, "
            f"fft_size={fft_size}, step={step}, blocks={total_blocks}, "
            f"straddling={straddling}"
        )
        return result

    def _process_block(
        self,
        padded: np.ndarray,
        start: int,
        fft_size: int,
        kernel_spectrum: np.ndarray,
        kernel_length: int
    ) -> np.ndarray:
        """Circular-convolve one block and return its alias-free tail."""
        block = extract_block(padded, start, fft_size)
        block_spectrum = multiply_spectra(self.context.transform(block), kernel_spectrum)
        block_result = self.context.inverse_transform(block_spectrum, fft_size)
        # First kernel_length - 1 samples wrap around
        return block_result[kernel_length - 1:]


def _operations_per_sample(total_length: int, kernel_length: int, fft_size: int) -> float:
    block_size = fft_size - kernel_length + 1
    num_blocks = math.ceil(total_length / block_size)
    return num_blocks * fft_size * math.log2(fft_size) / total_length


def _pad_signal(signal: np.ndarray, kernel_length: int, required_length: int) -> np.ndarray:
    """kernel_length - 1 leading zeros, trailing zeros up to required_length."""
    lead = kernel_length - 1
    padded = np.zeros(max(required_length, lead + len(signal)))
    padded[lead:lead + len(signal)] = signal
    return padded


def _direct_convolve(
    padded: np.ndarray,
    kernel: np.ndarray,
    start: int,
    stop: int
) -> np.ndarray:
    """
    Time-domain output samples [start, stop) from the padded signal.

    padded[p] holds signal[p - (L - 1)], so output[n] is the dot product of
    padded[n:n + L] reversed with the kernel.
    """
    segment = padded[start:stop + len(kernel) - 1]
    return np.convolve(segment, kernel, mode='valid')


# Convenience functions
def convolve(signal: Sequence[float], kernel: Sequence[float]) -> np.ndarray:
    """Linear convolution with a default engine."""
    return OverlapSaveConvolver().convolve(signal, kernel)


def convolve_periodic(
    signal: Sequence[float],
    kernels: Sequence[Sequence[float]],
    period_samples: int
) -> np.ndarray:
    """Periodic kernel switching with a default engine."""
    return OverlapSaveConvolver().convolve_periodic(signal, kernels, period_samples)


def convolve_switches(
    signal: Sequence[float],
    switches: Sequence[KernelSwitch]
) -> np.ndarray:
    """Explicit kernel switching with a default engine."""
    return OverlapSaveConvolver().convolve_switches(signal, switches)


def convolve_at(signal: Sequence[float], kernel: Sequence[float], index: int) -> float:
    """Single output sample of the linear convolution."""
    return OverlapSaveConvolver().convolve_at(signal, kernel, index)
