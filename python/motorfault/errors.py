"""Error kinds raised by the motorfault pipeline.

Malformed input and insufficient class samples are fatal to a run.
Training and prediction failures are caught per classifier variant by the
harness and reported alongside the surviving results.
"""

from __future__ import annotations

from typing import Any, Sequence


class MotorFaultError(Exception):
    """Base class for all motorfault errors."""


class MalformedInputError(MotorFaultError, ValueError):
    """A recording has the wrong phase count, no samples, or non-finite values."""


class InsufficientClassSamplesError(MotorFaultError, ValueError):
    """A class has too few rows for the requested split."""


class TrainingFailureError(MotorFaultError, RuntimeError):
    """A classifier variant failed to fit."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name


class PredictionFailureError(MotorFaultError, RuntimeError):
    """A trained model failed to score a held-out set."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name


class NoModelsAvailableError(MotorFaultError, RuntimeError):
    """No classifier variant trained successfully."""

    def __init__(self, message: str, failures: Sequence[Any] = ()) -> None:
        super().__init__(message)
        self.failures = list(failures)
