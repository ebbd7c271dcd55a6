"""Tests for motorfault.signal_gen (synthetic fault currents)."""

import numpy as np
import pytest


def _descriptor(recording, name, phase=0):
    from motorfault.ml.features import DESCRIPTOR_NAMES, extract_phase_descriptor

    desc = extract_phase_descriptor(recording.phases[phase])
    return desc[DESCRIPTOR_NAMES.index(name)]


class TestGeneratePhaseCurrents:
    def test_shape_and_metadata(self):
        from motorfault.signal_gen import (
            FaultSignature, MotorSignalConfig, generate_phase_currents,
        )

        config = MotorSignalConfig(duration=0.2)
        rec = generate_phase_currents("Healthy", FaultSignature("healthy"), config)
        assert rec.phases.shape == (3, 2000)
        assert rec.label == "Healthy"
        assert rec.sample_rate == 10000.0
        assert rec.duration == pytest.approx(0.2)

    def test_balanced_healthy_phases(self):
        from motorfault.signal_gen import FaultSignature, generate_phase_currents

        rec = generate_phase_currents("Healthy", FaultSignature("healthy"))
        assert np.allclose(rec.phases.sum(axis=0), 0.0, atol=1e-9)
        assert np.max(np.abs(rec.phases)) == pytest.approx(10.0, rel=1e-3)

    def test_outer_race_fault_raises_bpfo_power(self):
        from motorfault.signal_gen import FaultSignature, generate_phase_currents

        healthy = generate_phase_currents("Healthy", FaultSignature("healthy"))
        mild = generate_phase_currents("BFO100", FaultSignature("outer", 100.0))
        severe = generate_phase_currents("BFO300", FaultSignature("outer", 300.0))

        assert _descriptor(severe, "bpfo_power") > _descriptor(mild, "bpfo_power")
        assert _descriptor(mild, "bpfo_power") > 5.0 * _descriptor(healthy, "bpfo_power")

    def test_unknown_kind(self):
        from motorfault.signal_gen import FaultSignature, generate_phase_currents

        with pytest.raises(ValueError, match="Unknown fault kind"):
            generate_phase_currents("X", FaultSignature("stator", 100.0))

    def test_config_validation(self):
        from motorfault.signal_gen import MotorSignalConfig

        with pytest.raises(ValueError):
            MotorSignalConfig(duration=0.0)
        with pytest.raises(ValueError, match="n_phases"):
            MotorSignalConfig(n_phases=0)


class TestGenerateRecordingSet:
    def test_default_classes(self):
        from motorfault.signal_gen import DEFAULT_FAULT_CLASSES, generate_recording_set

        recordings = generate_recording_set(n_recordings=2)
        assert list(recordings) == list(DEFAULT_FAULT_CLASSES)
        assert all(len(v) == 2 for v in recordings.values())
        assert all(r.label == label for label, recs in recordings.items() for r in recs)

    def test_reproducible(self):
        from motorfault.noise import NoiseConfig
        from motorfault.signal_gen import MotorSignalConfig, generate_recording_set

        config = MotorSignalConfig(seed=5)
        a = generate_recording_set(config=config, noise_config=NoiseConfig())
        b = generate_recording_set(config=config, noise_config=NoiseConfig())
        for label in a:
            np.testing.assert_array_equal(a[label][0].phases, b[label][0].phases)
