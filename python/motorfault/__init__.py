"""motorfault: motor current signature analysis for induction motor faults."""

from motorfault.errors import (
    MotorFaultError,
    MalformedInputError,
    InsufficientClassSamplesError,
    TrainingFailureError,
    PredictionFailureError,
    NoModelsAvailableError,
)
from motorfault.recording import WaveformSample, RecordingSet

from motorfault.io import load_recordings, read_recording_csv
from motorfault.noise import NoiseConfig, apply_noise
from motorfault.signal_gen import (
    FaultSignature,
    MotorSignalConfig,
    generate_phase_currents,
    generate_recording_set,
)
from motorfault.dataset import (
    DatasetConfig,
    export_feature_dataset,
    load_feature_dataset,
)

from motorfault.ml import (
    FeatureConfig,
    TrainingConfig,
    build_feature_matrix,
    stratified_split,
    train_roster,
    evaluate_roster,
    run_frequency_pipeline,
    run_raw_pipeline,
)

__version__ = "0.1.0"

__all__ = [
    "MotorFaultError",
    "MalformedInputError",
    "InsufficientClassSamplesError",
    "TrainingFailureError",
    "PredictionFailureError",
    "NoModelsAvailableError",
    "WaveformSample",
    "RecordingSet",
    "load_recordings",
    "read_recording_csv",
    "NoiseConfig",
    "apply_noise",
    "FaultSignature",
    "MotorSignalConfig",
    "generate_phase_currents",
    "generate_recording_set",
    "DatasetConfig",
    "export_feature_dataset",
    "load_feature_dataset",
    "FeatureConfig",
    "TrainingConfig",
    "build_feature_matrix",
    "stratified_split",
    "train_roster",
    "evaluate_roster",
    "run_frequency_pipeline",
    "run_raw_pipeline",
]
