"""Classification pipeline for motor fault detection.

This package turns stator current recordings into labeled feature matrices
and runs them through a train / evaluate / rank harness:

1. Frequency path: 13 spectral descriptors per phase, one row per class
2. Raw path: one row per sample instant, per-phase current values
"""

from motorfault.ml.features import (
    DESCRIPTOR_NAMES,
    FeatureConfig,
    FeatureDataset,
    single_sided_spectrum,
    band_statistics,
    extract_phase_descriptor,
    build_feature_matrix,
    build_raw_rows,
    zscore,
)
from motorfault.ml.models import (
    ClassifierSpec,
    TrainedModel,
    FREQUENCY_ROSTER,
    RAW_ROSTER,
    fit_classifier,
    load_trained_model,
)
from motorfault.ml.pipeline import (
    TrainingConfig,
    Split,
    stratified_split,
    train_roster,
    evaluate_model,
    evaluate_roster,
    run_frequency_pipeline,
    run_raw_pipeline,
)

__all__ = [
    "DESCRIPTOR_NAMES",
    "FeatureConfig",
    "FeatureDataset",
    "single_sided_spectrum",
    "band_statistics",
    "extract_phase_descriptor",
    "build_feature_matrix",
    "build_raw_rows",
    "zscore",
    "ClassifierSpec",
    "TrainedModel",
    "FREQUENCY_ROSTER",
    "RAW_ROSTER",
    "fit_classifier",
    "load_trained_model",
    "TrainingConfig",
    "Split",
    "stratified_split",
    "train_roster",
    "evaluate_model",
    "evaluate_roster",
    "run_frequency_pipeline",
    "run_raw_pipeline",
]
