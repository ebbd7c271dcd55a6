"""Synthetic three-phase stator currents with motor fault signatures.

Broken rotor bars modulate the supply current and show up as sidebands at
``(1 +/- 2s) f0``. Bearing defects add components at the characteristic
bearing frequencies (BPFO for the outer race, BPFI for the inner race)
together with their line-frequency modulation sidebands. Amplitudes grow
with the fault severity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np

from motorfault.noise import NoiseConfig, apply_noise
from motorfault.recording import RecordingSet, WaveformSample


@dataclass(frozen=True)
class FaultSignature:
    """Kind (``"healthy"``, ``"brb"``, ``"inner"``, ``"outer"``) and severity."""

    kind: str
    severity: float = 0.0


DEFAULT_FAULT_CLASSES: dict[str, FaultSignature] = {
    "Healthy": FaultSignature("healthy"),
    "BRB100": FaultSignature("brb", 100.0),
    "BRB300": FaultSignature("brb", 300.0),
    "BFI100": FaultSignature("inner", 100.0),
    "BFI200": FaultSignature("inner", 200.0),
    "BFI300": FaultSignature("inner", 300.0),
    "BFO100": FaultSignature("outer", 100.0),
    "BFO200": FaultSignature("outer", 200.0),
    "BFO300": FaultSignature("outer", 300.0),
}


@dataclass
class MotorSignalConfig:
    """Configuration for synthetic current generation."""

    sample_rate: float = 10000.0      # Hz
    duration: float = 0.1             # seconds
    n_phases: int = 3
    line_frequency: float = 50.0      # Hz
    amplitude: float = 10.0           # peak phase current (A)
    slip: float = 0.03
    seed: int = 42

    # Bearing fault multipliers (relative to line frequency)
    bpfo_ratio: float = 3.5
    bpfi_ratio: float = 5.4

    # Relative fault component amplitude per 100 units of severity
    brb_gain: float = 0.02
    bearing_gain: float = 0.01

    def __post_init__(self) -> None:
        if self.sample_rate <= 0 or self.duration <= 0:
            raise ValueError("sample_rate and duration must be positive")
        if self.n_phases < 1:
            raise ValueError(f"n_phases must be >= 1, got {self.n_phases}")

    @property
    def n_samples(self) -> int:
        return int(round(self.duration * self.sample_rate))


def _fault_components(
    signature: FaultSignature,
    config: MotorSignalConfig,
) -> list[tuple[float, float]]:
    """(frequency Hz, relative amplitude) pairs added on top of the supply."""
    f0 = config.line_frequency
    level = signature.severity / 100.0

    if signature.kind == "healthy":
        return []
    if signature.kind == "brb":
        rel = config.brb_gain * level
        return [
            ((1.0 - 2.0 * config.slip) * f0, rel),
            ((1.0 + 2.0 * config.slip) * f0, rel * 0.8),
        ]
    if signature.kind in ("inner", "outer"):
        ratio = config.bpfi_ratio if signature.kind == "inner" else config.bpfo_ratio
        fc = ratio * f0
        rel = config.bearing_gain * level
        return [(fc, rel), (fc - f0, rel * 0.5), (fc + f0, rel * 0.5)]
    raise ValueError(
        f"Unknown fault kind '{signature.kind}'. "
        "Supported: 'healthy', 'brb', 'inner', 'outer'."
    )


def generate_phase_currents(
    label: str,
    signature: FaultSignature,
    config: MotorSignalConfig = MotorSignalConfig(),
    noise_config: Optional[NoiseConfig] = None,
    rng: Optional[np.random.Generator] = None,
) -> WaveformSample:
    """Generate one synthetic recording of balanced phase currents.

    Parameters
    ----------
    label : class label stored on the recording
    signature : fault kind and severity
    config : signal generation configuration
    noise_config : optional measurement noise
    rng : random generator; defaults to one seeded with ``config.seed``

    Returns
    -------
    WaveformSample with ``config.n_phases`` phases.
    """
    if rng is None:
        rng = np.random.default_rng(config.seed)

    n = config.n_samples
    t = np.arange(n) / config.sample_rate
    f0 = config.line_frequency
    amp = config.amplitude
    components = _fault_components(signature, config)

    phases = np.zeros((config.n_phases, n))
    for p in range(config.n_phases):
        shift = -2.0 * np.pi * p / config.n_phases
        phases[p] = amp * np.cos(2.0 * np.pi * f0 * t + shift)
        for freq, rel in components:
            jitter = rng.uniform(0.0, 2.0 * np.pi)
            phases[p] += amp * rel * np.cos(2.0 * np.pi * freq * t + shift + jitter)

    if noise_config is not None:
        phases = apply_noise(phases, noise_config, f0, config.sample_rate, rng)

    return WaveformSample(phases=phases, label=label, sample_rate=config.sample_rate)


def generate_recording_set(
    classes: Mapping[str, FaultSignature] = DEFAULT_FAULT_CLASSES,
    n_recordings: int = 1,
    config: MotorSignalConfig = MotorSignalConfig(),
    noise_config: Optional[NoiseConfig] = None,
) -> RecordingSet:
    """Generate ``n_recordings`` recordings per class.

    One generator seeded with ``config.seed`` drives the whole set, so the
    output is reproducible.
    """
    rng = np.random.default_rng(config.seed)
    return {
        label: [
            generate_phase_currents(label, signature, config, noise_config, rng)
            for _ in range(n_recordings)
        ]
        for label, signature in classes.items()
    }
