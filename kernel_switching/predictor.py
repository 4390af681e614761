"""
Kernel Switch Pop Predictor - will swapping kernels here produce a click?

Compares the output sample of the current and the candidate kernel at the
switch point and sets that jump against a frequency-dependent audibility
threshold, raised by however much the surrounding content masks it.

Threshold model:
- Base threshold from a 24-band Bark table (linear interpolation, clamped)
- Masking factor 1.0-3.0 from spectral flatness and spectral flux
- impact = |jump| / (base * masking); >= 1.0 is audible
"""

from typing import Optional, Sequence
import logging

import numpy as np

from .config_loader import Settings
from .convolution import OverlapSaveConvolver
from .features import SpectralFluxCalculator, spectral_flatness
from .masking import MaskingFactorCalculator
from .signals import (
    InvalidArgumentError,
    PerceptualImpact,
    SwitchAnalysis,
    as_kernel_list,
    as_signal,
)
from .transform import TransformContext, extract_block, power_spectrum

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 44100

# Bark band centres (Hz) and the smallest audible sample jump in each band
BARK_CENTER_FREQUENCIES = np.array([
    50, 150, 250, 350, 450, 570, 700, 840,
    1000, 1170, 1370, 1600, 1850, 2150, 2500, 2900,
    3400, 4000, 4800, 5800, 7000, 8500, 10500, 13500,
], dtype=np.float64)

BARK_DISCONTINUITY_THRESHOLDS = np.array([
    0.012, 0.015, 0.018, 0.025, 0.035, 0.045, 0.055, 0.065,
    0.070, 0.075, 0.080, 0.085, 0.090, 0.095, 0.100, 0.110,
    0.120, 0.130, 0.140, 0.150, 0.160, 0.170, 0.180, 0.200,
], dtype=np.float64)


class KernelSwitchPopPredictor:
    """
    Predicts whether switching kernels at a sample produces an audible pop.

    Usage:
        predictor = KernelSwitchPopPredictor(sample_rate=48000)
        impact = predictor.predict_audibility(audio, ir_a, ir_b, 24000)
        if impact.is_audible:
            ...  # pick a quieter switch point or crossfade

        # Every intermediate value
        analysis = predictor.analyze(audio, ir_a, ir_b, 24000)
        print(analysis.to_dict())
    """

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        settings: Optional[Settings] = None,
        convolver: Optional[OverlapSaveConvolver] = None,
        masking: Optional[MaskingFactorCalculator] = None,
        context: Optional[TransformContext] = None
    ):
        self.sample_rate = _validate_sample_rate(sample_rate)
        self.settings = settings or Settings()
        self.context = context or TransformContext()

        analysis = self.settings.analysis
        self.convolver = convolver or OverlapSaveConvolver(self.settings.convolution, self.context)
        self.masking = masking or MaskingFactorCalculator(
            noise_flatness_threshold=analysis.noise_flatness_threshold,
            flatness_epsilon=analysis.flatness_epsilon,
        )
        self.flux_calculator = SpectralFluxCalculator(
            window_size=analysis.flux_window_size,
            hop_size=analysis.flux_hop_size,
            normalization=analysis.flux_normalization,
            context=self.context,
        )

    def predict_audibility(
        self,
        signal: Sequence[float],
        current_kernel: Sequence[float],
        candidate_kernel: Sequence[float],
        switch_index: int,
        sample_rate: Optional[int] = None
    ) -> PerceptualImpact:
        """
        Audibility of switching from current_kernel to candidate_kernel.

        Args:
            signal: Dry input signal
            current_kernel: Kernel active before the switch
            candidate_kernel: Kernel active from switch_index on
            switch_index: Output sample where the switch happens
            sample_rate: Overrides the predictor's sample rate for this call

        Returns:
            PerceptualImpact (ratio >= 1.0 means audible)
        """
        return self.analyze(
            signal, current_kernel, candidate_kernel, switch_index, sample_rate
        ).impact

    def analyze(
        self,
        signal: Sequence[float],
        current_kernel: Sequence[float],
        candidate_kernel: Sequence[float],
        switch_index: int,
        sample_rate: Optional[int] = None
    ) -> SwitchAnalysis:
        """Run the full prediction and keep every intermediate value."""
        signal = as_signal(signal, "signal")
        current, candidate = as_kernel_list([current_kernel, candidate_kernel])
        rate = self.sample_rate if sample_rate is None else _validate_sample_rate(sample_rate)

        output_length = len(signal) + len(current) - 1
        if isinstance(switch_index, bool) or not isinstance(switch_index, (int, np.integer)):
            raise InvalidArgumentError(
                f"switch_index must be an integer, got {type(switch_index).__name__}"
            )
        if not 0 <= switch_index < output_length:
            raise InvalidArgumentError(
                f"switch_index {switch_index} outside convolution output [0, {output_length})"
            )
        switch_index = int(switch_index)

        # 1. Jump at the switch point
        current_output = self.convolver.convolve_at(signal, current, switch_index)
        candidate_output = self.convolver.convolve_at(signal, candidate, switch_index)
        raw_discontinuity = abs(candidate_output - current_output)

        # 2. Content around the switch point
        analysis = self.settings.analysis
        context_size = analysis.context_window_size
        context_window = extract_block(signal, switch_index - context_size // 2, context_size)
        flux = self.flux_calculator.normalized_average_flux(context_window)

        peak_size = analysis.peak_window_size
        segment = extract_block(signal, switch_index - peak_size // 2, peak_size)
        segment = segment * self.context.window(peak_size, "hann")
        power = power_spectrum(segment, self.context)

        # 3. Threshold at the dominant frequency
        dominant_frequency = self._dominant_frequency(segment, rate)
        base_threshold = self.threshold_for_frequency(dominant_frequency)

        # 4. Masking
        flatness = spectral_flatness(power, analysis.flatness_epsilon)
        masking_factor = self.calculate_masking_factor_with_flux(power, flux)
        effective_threshold = base_threshold * masking_factor

        impact = PerceptualImpact(raw_discontinuity / effective_threshold)

        logger.debug(
            f"Switch at {switch_index}: jump={raw_discontinuity:.6f}, "
            f"freq={dominant_frequency:.1f}Hz, threshold={base_threshold:.4f}, "
            f"masking={masking_factor:.3f}, ratio={impact.ratio:.4f}"
        )

        return SwitchAnalysis(
            switch_index=switch_index,
            current_output=current_output,
            candidate_output=candidate_output,
            raw_discontinuity=raw_discontinuity,
            dominant_frequency=dominant_frequency,
            base_threshold=base_threshold,
            flatness=flatness,
            flux=flux,
            masking_factor=masking_factor,
            effective_threshold=effective_threshold,
            impact=impact,
            sample_rate=rate,
        )

    def threshold_for_frequency(self, frequency_hz: float) -> float:
        """
        Smallest audible discontinuity at a frequency.

        Linear interpolation between Bark bands; below the first band the
        first threshold applies, above the last band the last one.
        """
        return float(np.interp(
            frequency_hz, BARK_CENTER_FREQUENCIES, BARK_DISCONTINUITY_THRESHOLDS
        ))

    def calculate_masking_factor_with_flux(
        self,
        power_spectrum: np.ndarray,
        flux: float
    ) -> float:
        """Masking factor in [1.0, 3.0] from flatness and normalized flux."""
        return self.masking.calculate(power_spectrum, flux)

    def _dominant_frequency(self, segment: np.ndarray, sample_rate: int) -> float:
        magnitudes = np.abs(self.context.transform(segment))
        peak_bin = int(np.argmax(magnitudes))
        return peak_bin * sample_rate / len(segment)


def _validate_sample_rate(sample_rate) -> int:
    """Positive whole number of Hz; integral floats such as 44100.0 are accepted."""
    if isinstance(sample_rate, bool) or not isinstance(
        sample_rate, (int, np.integer, float, np.floating)
    ):
        raise InvalidArgumentError(
            f"sample_rate must be a number, got {type(sample_rate).__name__}"
        )
    if isinstance(sample_rate, (float, np.floating)) and not float(sample_rate).is_integer():
        raise InvalidArgumentError(f"sample_rate must be a whole number of Hz, got {sample_rate}")
    if sample_rate <= 0:
        raise InvalidArgumentError("sample_rate must be positive")
    return int(sample_rate)


def predict_audibility(
    signal: Sequence[float],
    current_kernel: Sequence[float],
    candidate_kernel: Sequence[float],
    switch_index: int,
    sample_rate: int = DEFAULT_SAMPLE_RATE
) -> PerceptualImpact:
    """Audibility of a kernel switch with default settings."""
    predictor = KernelSwitchPopPredictor(sample_rate=sample_rate)
    return predictor.predict_audibility(signal, current_kernel, candidate_kernel, switch_index)
