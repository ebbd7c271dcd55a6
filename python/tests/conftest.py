"""Shared fixtures for motorfault Python tests."""

import numpy as np
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: tests taking more than a few seconds")


def sine_recording(label, freqs_amps, n_samples=1000, sample_rate=10000.0, n_phases=3):
    """Balanced recording made of ``(frequency, amplitude)`` sinusoids."""
    from motorfault.recording import WaveformSample

    t = np.arange(n_samples) / sample_rate
    phases = np.zeros((n_phases, n_samples))
    for p in range(n_phases):
        shift = -2.0 * np.pi * p / n_phases
        for freq, amp in freqs_amps:
            phases[p] += amp * np.sin(2.0 * np.pi * freq * t + shift)
    return WaveformSample(phases=phases, label=label, sample_rate=sample_rate)


@pytest.fixture(scope="session")
def synthetic_recordings():
    """Nine-class synthetic recording set, three noisy recordings per class."""
    from motorfault.noise import NoiseConfig
    from motorfault.signal_gen import MotorSignalConfig, generate_recording_set

    return generate_recording_set(
        n_recordings=3,
        config=MotorSignalConfig(duration=0.1, seed=7),
        noise_config=NoiseConfig(gaussian_snr_db=40.0),
    )


@pytest.fixture(scope="session")
def small_raw_recordings():
    """Three well-separated classes, short enough for quick raw-row runs."""
    return {
        "Healthy": [sine_recording("Healthy", [(50.0, 10.0)], n_samples=200)],
        "BRB100": [sine_recording("BRB100", [(50.0, 10.0), (47.0, 2.0)], n_samples=200)],
        "BFO100": [sine_recording("BFO100", [(50.0, 20.0)], n_samples=200)],
    }


@pytest.fixture
def make_recording():
    """Factory fixture wrapping :func:`sine_recording`."""
    return sine_recording
