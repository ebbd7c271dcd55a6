"""Train / evaluate / rank harness for motor fault classification.

Two feature representations run through the same stages:

  Frequency path: one spectral feature row per representative recording
  Raw path:       one row per sample instant (per-phase current values)

Stages, each a full barrier:
  1. Stratified train / validation / test split (seeded)
  2. Independent training of every roster variant, failures isolated
  3. Per-model confusion matrix, per-class precision / recall / F1,
     accuracy, and a ranking by mean F1
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

import numpy as np

from motorfault.errors import (
    InsufficientClassSamplesError,
    NoModelsAvailableError,
    PredictionFailureError,
    TrainingFailureError,
)
from motorfault.ml.features import (
    FeatureConfig,
    FeatureDataset,
    build_feature_matrix,
    build_raw_rows,
    select_representatives,
    zscore,
)
from motorfault.ml.models import (
    FREQUENCY_ROSTER,
    RAW_ROSTER,
    ClassifierSpec,
    TrainedModel,
    VariantFailure,
    fit_classifier,
)
from motorfault.recording import WaveformSample


logger = logging.getLogger(__name__)


@dataclass
class TrainingConfig:
    """Configuration for splitting, training and evaluation."""

    # Data splits
    test_ratio: float = 0.15
    val_ratio: float = 0.15
    seed: int = 42
    strict_stratification: bool = False  # every class must reach every subset

    # "full": z-score over the whole set before splitting (parity mode)
    # "train": statistics from the training subset only
    normalization: str = "full"

    # Harness
    n_workers: int = 1
    frequency_roster: tuple[ClassifierSpec, ...] = FREQUENCY_ROSTER
    raw_roster: tuple[ClassifierSpec, ...] = RAW_ROSTER

    def __post_init__(self) -> None:
        _check_ratios(self.test_ratio, self.val_ratio)
        if self.normalization not in ("full", "train"):
            raise ValueError(
                f"normalization must be 'full' or 'train', got '{self.normalization}'"
            )
        if self.n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {self.n_workers}")


# ---------------------------------------------------------------------------
# Stratified splitting
# ---------------------------------------------------------------------------

@dataclass
class Split:
    """Disjoint index sets of a labeled matrix."""

    train: np.ndarray
    val: np.ndarray
    test: np.ndarray
    seed: int = 42

    @property
    def sizes(self) -> dict[str, int]:
        return {"train": len(self.train), "val": len(self.val), "test": len(self.test)}

    def to_dict(self) -> dict[str, list[int]]:
        return {
            "train": self.train.tolist(),
            "val": self.val.tolist(),
            "test": self.test.tolist(),
        }


def _check_ratios(test_ratio: float, val_ratio: float) -> None:
    if not 0.0 < test_ratio < 1.0:
        raise ValueError(f"test_ratio must be in (0, 1), got {test_ratio}")
    if not 0.0 <= val_ratio < 1.0:
        raise ValueError(f"val_ratio must be in [0, 1), got {val_ratio}")
    if test_ratio + val_ratio >= 1.0:
        raise ValueError(
            f"test_ratio + val_ratio must be < 1, got {test_ratio + val_ratio}"
        )


def _stratified_holdout(
    labels: np.ndarray,
    ratio: float,
    rng: np.random.Generator,
) -> tuple[np.ndarray, np.ndarray]:
    """Single stratified holdout.

    The holdout size ``round(ratio * n)`` (at least one row, at most
    ``n - 1``) is spread over classes by largest remainder of
    ``ratio * class_count``; members are drawn from a seeded permutation of
    each class.

    Returns ``(keep_idx, holdout_idx)`` relative to ``labels``.
    """
    n = labels.size
    n_hold = int(np.clip(np.floor(ratio * n + 0.5), 1, n - 1))

    classes, inverse = np.unique(labels, return_inverse=True)
    counts = np.bincount(inverse, minlength=len(classes))
    quota = ratio * counts
    alloc = np.floor(quota).astype(np.int64)

    remaining = n_hold - int(alloc.sum())
    if remaining > 0:
        frac = quota - alloc
        # Random order first so that the stable sort breaks ties randomly
        order = rng.permutation(len(classes))
        ranked = order[np.argsort(-frac[order], kind="stable")]
        eligible = [c for c in ranked if alloc[c] < counts[c]]
        for c in eligible[:remaining]:
            alloc[c] += 1

    holdout: list[np.ndarray] = []
    for c in range(len(classes)):
        members = rng.permutation(np.flatnonzero(inverse == c))
        holdout.append(members[:alloc[c]])

    holdout_idx = np.sort(np.concatenate(holdout)).astype(np.intp)
    keep_idx = np.setdiff1d(np.arange(n, dtype=np.intp), holdout_idx)
    return keep_idx, holdout_idx


def stratified_split(
    labels: Sequence[Any],
    test_ratio: float,
    val_ratio: float = 0.0,
    seed: int = 42,
    *,
    strict: bool = False,
) -> Split:
    """Split row indices into stratified train / validation / test sets.

    The test set is carved from the whole set first; validation is then
    carved from the remainder with ratio ``val_ratio / (1 - test_ratio)``.
    ``val_ratio=0`` gives a two-way train / test split.

    Parameters
    ----------
    labels : sequence of class labels, one per row
    test_ratio : fraction of rows held out for testing, in (0, 1)
    val_ratio : fraction of rows held out for validation, in [0, 1)
    seed : seed of the private random generator; same seed and same labels
        always give the same split
    strict : require every class to have enough rows to appear in every
        requested subset

    Returns
    -------
    Split

    Raises
    ------
    InsufficientClassSamplesError
        If there are fewer rows than requested subsets, or ``strict`` is set
        and some class has fewer members than requested subsets.
    ValueError
        On invalid ratios.
    """
    _check_ratios(test_ratio, val_ratio)
    labels = np.asarray(labels)
    n = labels.size
    n_subsets = 3 if val_ratio > 0 else 2

    if n < n_subsets:
        raise InsufficientClassSamplesError(
            f"{n} row(s) cannot fill {n_subsets} non-empty subsets."
        )

    classes, counts = np.unique(labels, return_counts=True)
    small = [str(c) for c, k in zip(classes, counts) if k < n_subsets]
    if small:
        if strict:
            raise InsufficientClassSamplesError(
                f"Classes {small} have fewer than {n_subsets} members; "
                "they cannot appear in every subset."
            )
        logger.warning(
            "Classes %s have fewer than %d members and cannot appear in every subset.",
            small, n_subsets,
        )

    rng = np.random.default_rng(seed)
    rest_idx, test_idx = _stratified_holdout(labels, test_ratio, rng)

    if val_ratio > 0:
        if rest_idx.size < 2:
            raise InsufficientClassSamplesError(
                "Too few rows remain after the test holdout to carve a validation set."
            )
        inner_ratio = val_ratio / (1.0 - test_ratio)
        keep_rel, val_rel = _stratified_holdout(labels[rest_idx], inner_ratio, rng)
        train_idx, val_idx = rest_idx[keep_rel], rest_idx[val_rel]
    else:
        train_idx, val_idx = rest_idx, np.array([], dtype=np.intp)

    split = Split(train=train_idx, val=val_idx, test=test_idx, seed=seed)
    logger.info(
        "Splits: Train=%d  Val=%d  Test=%d",
        len(split.train), len(split.val), len(split.test),
    )
    return split


# ---------------------------------------------------------------------------
# Classifier harness
# ---------------------------------------------------------------------------

@dataclass
class RosterResult:
    """Successfully trained models (roster order) and isolated failures."""

    models: list[TrainedModel]
    failures: list[VariantFailure] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [m.name for m in self.models]


def _duplicate_names(names: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    dupes: list[str] = []
    for name in names:
        if name in seen and name not in dupes:
            dupes.append(name)
        seen.add(name)
    return dupes


def _train_variant(
    spec: ClassifierSpec,
    X: np.ndarray,
    y: np.ndarray,
    seed: int,
) -> Union[TrainedModel, VariantFailure]:
    try:
        model = fit_classifier(spec, X.copy(), y.copy(), seed=seed)
    except TrainingFailureError as exc:
        logger.exception("%s training failed; skipping.", spec.name)
        cause = exc.__cause__ if exc.__cause__ is not None else exc
        return VariantFailure(
            name=spec.name,
            stage="train",
            error_type=type(cause).__name__,
            message=str(exc),
        )
    logger.info("Trained %s in %.2fs", model.name, model.train_time_s)
    return model


def train_roster(
    specs: Sequence[ClassifierSpec],
    X: np.ndarray,
    y: np.ndarray,
    *,
    seed: int = 42,
    n_workers: int = 1,
) -> RosterResult:
    """Train every roster variant independently.

    A variant that fails is logged and recorded in
    :attr:`RosterResult.failures`; the remaining variants still train.
    With ``n_workers > 1`` variants train on worker threads, each from its
    own copy of the training arrays; the result keeps roster order.

    Raises
    ------
    NoModelsAvailableError
        If no variant trained successfully.
    ValueError
        If the roster is empty or two variants share a name.
    """
    specs = list(specs)
    if not specs:
        raise ValueError("Classifier roster is empty.")
    duplicates = _duplicate_names(s.name for s in specs)
    if duplicates:
        raise ValueError(f"Classifier roster has duplicate variant names: {duplicates}")
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y)

    def _attempt(spec: ClassifierSpec) -> Union[TrainedModel, VariantFailure]:
        return _train_variant(spec, X, y, seed)

    if n_workers > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            outcomes = list(pool.map(_attempt, specs))
    else:
        outcomes = [_attempt(spec) for spec in specs]

    models = [o for o in outcomes if isinstance(o, TrainedModel)]
    failures = [o for o in outcomes if isinstance(o, VariantFailure)]

    logger.info("%d of %d models trained successfully", len(models), len(specs))
    if not models:
        raise NoModelsAvailableError(
            "No models were successfully trained: "
            + "; ".join(f.message for f in failures),
            failures=failures,
        )
    return RosterResult(models=models, failures=failures)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

@dataclass
class ModelEvaluation:
    """Held-out scores of one model.

    ``confusion[i, j]`` counts rows of true class ``classes[i]`` predicted
    as ``classes[j]``.
    """

    name: str
    classes: list[Any]
    confusion: np.ndarray
    tp: np.ndarray
    fp: np.ndarray
    fn: np.ndarray
    precision: np.ndarray
    recall: np.ndarray
    f1: np.ndarray
    accuracy: float
    n_samples: int

    @property
    def mean_f1(self) -> float:
        return float(np.mean(self.f1)) if self.f1.size else 0.0

    def metrics_table(self) -> list[dict[str, Any]]:
        """Per-class rows: class, TP, FP, FN, precision, recall, f1."""
        return [
            {
                "class": c,
                "TP": int(self.tp[i]),
                "FP": int(self.fp[i]),
                "FN": int(self.fn[i]),
                "precision": float(self.precision[i]),
                "recall": float(self.recall[i]),
                "f1": float(self.f1[i]),
            }
            for i, c in enumerate(self.classes)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "classes": list(self.classes),
            "confusion": self.confusion.tolist(),
            "accuracy": self.accuracy,
            "mean_f1": self.mean_f1,
            "n_samples": self.n_samples,
            "per_class": self.metrics_table(),
        }


def _safe_divide(num: np.ndarray, den: np.ndarray) -> np.ndarray:
    """Element-wise ``num / den`` with 0/0 (and x/0) taken as 0."""
    num = np.asarray(num, dtype=np.float64)
    den = np.asarray(den, dtype=np.float64)
    out = np.zeros_like(num)
    np.divide(num, den, out=out, where=den != 0)
    return out


def evaluate_model(
    model: TrainedModel,
    X: np.ndarray,
    y: np.ndarray,
    labels: Optional[Sequence[Any]] = None,
) -> ModelEvaluation:
    """Score one model on a held-out subset.

    Parameters
    ----------
    model : TrainedModel
    X : numpy.ndarray, shape (N, n_features)
    y : numpy.ndarray, shape (N,) true labels
    labels : class axis of the confusion matrix; defaults to the sorted
        union of true and predicted labels

    Raises
    ------
    PredictionFailureError
        If the model cannot score ``X``.
    ValueError
        If the held-out set is empty.
    """
    from sklearn.metrics import confusion_matrix

    y_true = np.asarray(y)
    if y_true.size == 0:
        raise ValueError("Held-out set is empty; cannot evaluate.")

    try:
        y_pred = model.predict(X)
    except Exception as exc:
        raise PredictionFailureError(model.name, f"{type(exc).__name__}: {exc}") from exc
    if y_pred.shape[0] != y_true.shape[0]:
        raise PredictionFailureError(
            model.name,
            f"predicted {y_pred.shape[0]} labels for {y_true.shape[0]} rows",
        )

    classes = np.asarray(labels) if labels is not None else np.union1d(y_true, y_pred)
    cm = confusion_matrix(y_true, y_pred, labels=classes)

    tp = np.diag(cm)
    fp = cm.sum(axis=0) - tp
    fn = cm.sum(axis=1) - tp
    precision = _safe_divide(tp, tp + fp)
    recall = _safe_divide(tp, tp + fn)
    f1 = _safe_divide(2.0 * precision * recall, precision + recall)
    accuracy = float(np.trace(cm)) / y_true.size

    return ModelEvaluation(
        name=model.name,
        classes=classes.tolist(),
        confusion=cm,
        tp=tp,
        fp=fp,
        fn=fn,
        precision=precision,
        recall=recall,
        f1=f1,
        accuracy=accuracy,
        n_samples=int(y_true.size),
    )


def rank_models(evaluations: Sequence[ModelEvaluation]) -> list[str]:
    """Model names by mean F1, then accuracy (both descending), then input order."""
    order = sorted(
        range(len(evaluations)),
        key=lambda i: (-evaluations[i].mean_f1, -evaluations[i].accuracy, i),
    )
    return [evaluations[i].name for i in order]


@dataclass
class EvaluationReport:
    """Evaluations of a roster on one held-out subset."""

    evaluations: dict[str, ModelEvaluation]
    failures: list[VariantFailure] = field(default_factory=list)
    ranking: list[str] = field(default_factory=list)

    @property
    def best(self) -> Optional[str]:
        """Top model by mean F1."""
        return self.ranking[0] if self.ranking else None

    @property
    def best_by_accuracy(self) -> Optional[str]:
        """Top model by accuracy; ties keep roster order."""
        if not self.evaluations:
            return None
        evals = list(self.evaluations.values())
        best_idx = max(range(len(evals)), key=lambda i: (evals[i].accuracy, -i))
        return evals[best_idx].name

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluations": {k: v.to_dict() for k, v in self.evaluations.items()},
            "failures": [vars(f) for f in self.failures],
            "ranking": list(self.ranking),
            "best": self.best,
            "best_by_accuracy": self.best_by_accuracy,
        }


def evaluate_roster(
    models: Sequence[TrainedModel],
    X: np.ndarray,
    y: np.ndarray,
    labels: Optional[Sequence[Any]] = None,
) -> EvaluationReport:
    """Evaluate every trained model and rank the ones that could predict.

    A model whose prediction fails is recorded in
    :attr:`EvaluationReport.failures` and left out of the ranking.

    Raises
    ------
    NoModelsAvailableError
        If ``models`` is empty.
    ValueError
        If two models share a name.
    """
    if not models:
        raise NoModelsAvailableError("No trained models to evaluate.")
    duplicates = _duplicate_names(m.name for m in models)
    if duplicates:
        raise ValueError(f"Models to evaluate have duplicate names: {duplicates}")

    evaluations: dict[str, ModelEvaluation] = {}
    failures: list[VariantFailure] = []

    for model in models:
        try:
            result = evaluate_model(model, X, y, labels)
        except PredictionFailureError as exc:
            logger.exception("Evaluation failed for %s", model.name)
            cause = exc.__cause__ if exc.__cause__ is not None else exc
            failures.append(VariantFailure(
                name=model.name,
                stage="predict",
                error_type=type(cause).__name__,
                message=str(exc),
            ))
            continue
        evaluations[model.name] = result
        logger.info(
            "%s Accuracy: %.4f  mean F1: %.4f",
            model.name, result.accuracy, result.mean_f1,
        )

    ranking = rank_models(list(evaluations.values()))
    report = EvaluationReport(evaluations=evaluations, failures=failures, ranking=ranking)
    if report.best is not None:
        best = evaluations[report.best]
        logger.info(
            "Best Model (by mean F1): %s (%.4f, accuracy %.4f)",
            best.name, best.mean_f1, best.accuracy,
        )
    else:
        logger.warning("No model could be evaluated.")
    return report


# ---------------------------------------------------------------------------
# End-to-end runs
# ---------------------------------------------------------------------------

@dataclass
class PipelineResult:
    """Everything a run hands to reporting and visualization."""

    features: FeatureDataset
    X: np.ndarray                       # matrix the models were trained on
    split: Split
    models: list[TrainedModel]
    training_failures: list[VariantFailure]
    report: EvaluationReport            # on the test subset
    val_report: Optional[EvaluationReport] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "feature_names": list(self.features.feature_names),
            "labels": self.features.y.tolist(),
            "split": self.split.to_dict(),
            "models": [m.name for m in self.models],
            "training_failures": [vars(f) for f in self.training_failures],
            "report": self.report.to_dict(),
            "val_report": self.val_report.to_dict() if self.val_report else None,
        }


def _standardize_on_train(X_raw: np.ndarray, train_idx: np.ndarray) -> np.ndarray:
    # same ddof=1 convention as the full-set normalization
    return zscore(X_raw, fit_rows=train_idx)


def _run_stages(
    dataset: FeatureDataset,
    roster: Sequence[ClassifierSpec],
    config: TrainingConfig,
) -> PipelineResult:
    y = dataset.y
    split = stratified_split(
        y, config.test_ratio, config.val_ratio, config.seed,
        strict=config.strict_stratification,
    )

    if config.normalization == "train":
        X = _standardize_on_train(dataset.X_raw, split.train)
    else:
        X = dataset.X

    roster_result = train_roster(
        roster, X[split.train], y[split.train],
        seed=config.seed, n_workers=config.n_workers,
    )

    report = evaluate_roster(roster_result.models, X[split.test], y[split.test])
    val_report = None
    if len(split.val) > 0:
        val_report = evaluate_roster(roster_result.models, X[split.val], y[split.val])

    return PipelineResult(
        features=dataset,
        X=X,
        split=split,
        models=roster_result.models,
        training_failures=roster_result.failures,
        report=report,
        val_report=val_report,
    )


def run_frequency_pipeline(
    recordings_by_class: Mapping[str, Sequence[WaveformSample]],
    feature_config: FeatureConfig = FeatureConfig(),
    config: TrainingConfig = TrainingConfig(),
    *,
    roster: Optional[Sequence[ClassifierSpec]] = None,
) -> PipelineResult:
    """Spectral-feature path: one representative recording per class.

    Returns a :class:`PipelineResult` whose ``features`` hold one row per
    class with ``13 * n_phases`` columns.
    """
    logger.info("=== Training Models on Frequency-Domain Features ===")
    representatives = select_representatives(recordings_by_class)
    dataset = build_feature_matrix(
        representatives, feature_config,
        normalize=(config.normalization == "full"),
    )
    return _run_stages(
        dataset,
        roster if roster is not None else config.frequency_roster,
        config,
    )


def run_raw_pipeline(
    recordings_by_class: Mapping[str, Sequence[WaveformSample]],
    config: TrainingConfig = TrainingConfig(),
    *,
    n_phases: int = 3,
    roster: Optional[Sequence[ClassifierSpec]] = None,
) -> PipelineResult:
    """Raw-row path: every sample instant of every recording is one row."""
    logger.info("=== Training Models on Raw Current Rows ===")
    X_raw, y = build_raw_rows(recordings_by_class, n_phases=n_phases)
    dataset = FeatureDataset(
        X=zscore(X_raw) if config.normalization == "full" else X_raw.copy(),
        y=y,
        feature_names=[f"{chr(ord('A') + p)}:current" for p in range(n_phases)],
        X_raw=X_raw,
    )
    return _run_stages(
        dataset,
        roster if roster is not None else config.raw_roster,
        config,
    )
