"""Classifier variants for the motor fault harness.

Each variant is a :class:`ClassifierSpec` (name, family, hyperparameters)
resolved through the :data:`CLASSIFIER_FAMILIES` registry into an unfitted
scikit-learn estimator:

knn           -- KNeighborsClassifier, optionally behind a StandardScaler
tree          -- DecisionTreeClassifier limited by number of splits
discriminant  -- Linear / Quadratic / diagonal-linear discriminant analysis
ensemble      -- bagged trees (RandomForest) or AdaBoost
naive_bayes   -- GaussianNB

A quadratic discriminant that cannot be fit (too few samples per class to
estimate per-class covariances) is retried as the degenerate diagonal
linear variant before the roster slot is given up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Optional

import numpy as np

from motorfault.errors import TrainingFailureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifierSpec:
    """One entry of a classifier roster.

    Parameters
    ----------
    name : display name, unique within a roster (e.g. ``"KNN"``)
    family : key into :data:`CLASSIFIER_FAMILIES`
    params : family-specific hyperparameters
    """

    name: str
    family: str
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class TrainedModel:
    """A fitted classifier tagged with the variant it came from."""

    name: str
    spec: ClassifierSpec
    estimator: Any
    train_time_s: float = 0.0
    fallback_from: Optional[str] = None
    trained: bool = True

    @property
    def classes_(self) -> np.ndarray:
        return np.asarray(self.estimator.classes_)

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predict class labels for the rows of ``X``."""
        return np.asarray(self.estimator.predict(np.asarray(X, dtype=np.float64)))

    def save(self, path: str) -> None:
        """Persist model to disk via joblib.

        Parameters
        ----------
        path : str
            File path (typically ``*.joblib``).
        """
        import joblib

        joblib.dump(
            {
                "name": self.name,
                "spec": {
                    "name": self.spec.name,
                    "family": self.spec.family,
                    "params": dict(self.spec.params),
                },
                "estimator": self.estimator,
                "train_time_s": self.train_time_s,
                "fallback_from": self.fallback_from,
            },
            path,
        )


def load_trained_model(path: str) -> TrainedModel:
    """Load a model written by :meth:`TrainedModel.save`."""
    import joblib

    data = joblib.load(path)
    return TrainedModel(
        name=data["name"],
        spec=ClassifierSpec(**data["spec"]),
        estimator=data["estimator"],
        train_time_s=data.get("train_time_s", 0.0),
        fallback_from=data.get("fallback_from"),
    )


@dataclass
class VariantFailure:
    """Record of a classifier variant that failed to train or predict."""

    name: str
    stage: str          # "train" or "predict"
    error_type: str
    message: str


# ---------------------------------------------------------------------------
# Diagonal linear discriminant
# ---------------------------------------------------------------------------

class DiagonalLinearDiscriminant:
    """Linear discriminant with a diagonal pooled covariance.

    All classes share one variance per feature, pooled from the within-class
    scatter with ``n - n_classes`` degrees of freedom (``n`` when no rows are
    spare). Variances are floored at machine precision so that features
    without within-class spread, or single-member classes, can still be
    scored. Follows the scikit-learn ``fit`` / ``predict`` / ``classes_``
    protocol.
    """

    def fit(self, X: np.ndarray, y: np.ndarray) -> "DiagonalLinearDiscriminant":
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y)
        if X.ndim != 2 or X.shape[0] == 0 or X.shape[0] != y.shape[0]:
            raise ValueError(
                f"Expected non-empty 2-D X aligned with y, got X{X.shape}, y{y.shape}"
            )

        self.classes_, inverse = np.unique(y, return_inverse=True)
        n, k = X.shape[0], len(self.classes_)
        counts = np.bincount(inverse, minlength=k)

        self.means_ = np.vstack([X[inverse == c].mean(axis=0) for c in range(k)])
        scatter = ((X - self.means_[inverse]) ** 2).sum(axis=0)
        var = scatter / (n - k if n > k else n)
        floor = np.finfo(np.float64).eps * max(float(var.max()), 1.0)
        self.var_ = np.maximum(var, floor)
        self.priors_ = counts / n
        return self

    def decision_function(self, X: np.ndarray) -> np.ndarray:
        """Log posterior up to a constant, shape ``(n_rows, n_classes)``."""
        X = np.asarray(X, dtype=np.float64)
        dist = (((X[:, np.newaxis, :] - self.means_) ** 2) / self.var_).sum(axis=2)
        return np.log(self.priors_) - 0.5 * dist

    def predict(self, X: np.ndarray) -> np.ndarray:
        return self.classes_[np.argmax(self.decision_function(X), axis=1)]


# ---------------------------------------------------------------------------
# Family builders
# ---------------------------------------------------------------------------

def _build_knn(params: Mapping[str, Any], seed: int) -> Any:
    from sklearn.neighbors import KNeighborsClassifier
    from sklearn.pipeline import make_pipeline
    from sklearn.preprocessing import StandardScaler

    knn = KNeighborsClassifier(n_neighbors=int(params.get("n_neighbors", 5)))
    if params.get("standardize", False):
        return make_pipeline(StandardScaler(), knn)
    return knn


def _build_tree(params: Mapping[str, Any], seed: int) -> Any:
    from sklearn.tree import DecisionTreeClassifier

    max_splits = params.get("max_splits")
    max_leaf_nodes = None if max_splits is None else int(max_splits) + 1
    return DecisionTreeClassifier(max_leaf_nodes=max_leaf_nodes, random_state=seed)


def _build_discriminant(params: Mapping[str, Any], seed: int) -> Any:
    from sklearn.discriminant_analysis import (
        LinearDiscriminantAnalysis,
        QuadraticDiscriminantAnalysis,
    )

    discrim_type = params.get("discrim_type", "linear")
    if discrim_type == "linear":
        return LinearDiscriminantAnalysis()
    if discrim_type == "quadratic":
        return QuadraticDiscriminantAnalysis()
    if discrim_type == "diaglinear":
        return DiagonalLinearDiscriminant()
    raise ValueError(
        f"Unknown discrim_type '{discrim_type}'. "
        "Supported: 'linear', 'quadratic', 'diaglinear'."
    )


def _build_ensemble(params: Mapping[str, Any], seed: int) -> Any:
    from sklearn.ensemble import AdaBoostClassifier, RandomForestClassifier

    method = str(params.get("method", "bag")).lower()
    n_cycles = int(params.get("n_cycles", 50))
    if method == "bag":
        return RandomForestClassifier(n_estimators=n_cycles, random_state=seed)
    if method == "adaboost":
        return AdaBoostClassifier(n_estimators=n_cycles, random_state=seed)
    raise ValueError(
        f"Unknown ensemble method '{method}'. Supported: 'bag', 'adaboost'."
    )


def _build_naive_bayes(params: Mapping[str, Any], seed: int) -> Any:
    from sklearn.naive_bayes import GaussianNB

    return GaussianNB()


EstimatorBuilder = Callable[[Mapping[str, Any], int], Any]

CLASSIFIER_FAMILIES: dict[str, EstimatorBuilder] = {
    "knn": _build_knn,
    "tree": _build_tree,
    "discriminant": _build_discriminant,
    "ensemble": _build_ensemble,
    "naive_bayes": _build_naive_bayes,
}


def register_family(name: str, builder: EstimatorBuilder) -> None:
    """Add or replace a classifier family in the registry."""
    CLASSIFIER_FAMILIES[name] = builder


def build_estimator(spec: ClassifierSpec, seed: int = 42) -> Any:
    """Resolve a spec into an unfitted estimator."""
    try:
        builder = CLASSIFIER_FAMILIES[spec.family]
    except KeyError:
        raise ValueError(
            f"Unknown classifier family '{spec.family}'. "
            f"Registered: {sorted(CLASSIFIER_FAMILIES)}."
        ) from None
    return builder(spec.params, seed)


# ---------------------------------------------------------------------------
# Fitting with degenerate fallback
# ---------------------------------------------------------------------------

_DISCRIMINANT_FALLBACKS = {"quadratic": "diaglinear"}


def fallback_spec(spec: ClassifierSpec) -> Optional[ClassifierSpec]:
    """Return the simplified variant to try when ``spec`` fails, if any."""
    if spec.family != "discriminant":
        return None
    fallback_type = _DISCRIMINANT_FALLBACKS.get(spec.params.get("discrim_type"))
    if fallback_type is None:
        return None
    return replace(
        spec,
        name=f"{spec.name} ({fallback_type} fallback)",
        params={**spec.params, "discrim_type": fallback_type},
    )


def _fit_once(spec: ClassifierSpec, X: np.ndarray, y: np.ndarray, seed: int) -> TrainedModel:
    start_time = time.time()
    estimator = build_estimator(spec, seed)
    estimator.fit(X, y)
    return TrainedModel(
        name=spec.name,
        spec=spec,
        estimator=estimator,
        train_time_s=time.time() - start_time,
    )


def fit_classifier(
    spec: ClassifierSpec,
    X: np.ndarray,
    y: np.ndarray,
    seed: int = 42,
) -> TrainedModel:
    """Fit one roster variant.

    Parameters
    ----------
    spec : ClassifierSpec
    X : numpy.ndarray, shape (N, n_features)
    y : numpy.ndarray, shape (N,)
    seed : random state for stochastic estimators.

    Returns
    -------
    TrainedModel
        Only returned once the estimator has fit successfully.

    Raises
    ------
    TrainingFailureError
        If the variant (and its fallback, where one exists) fails to fit.
    """
    try:
        return _fit_once(spec, X, y, seed)
    except Exception as exc:
        cause = exc
        fallback = fallback_spec(spec)
        if fallback is None:
            raise TrainingFailureError(
                spec.name, f"{type(cause).__name__}: {cause}"
            ) from cause

    logger.warning(
        "%s failed (%s: %s); retrying as %s.",
        spec.name, type(cause).__name__, cause, fallback.name,
    )
    try:
        model = _fit_once(fallback, X, y, seed)
    except Exception as exc:
        raise TrainingFailureError(
            spec.name,
            f"{type(cause).__name__}: {cause}; fallback "
            f"{type(exc).__name__}: {exc}",
        ) from exc
    model.fallback_from = spec.name
    return model


# ---------------------------------------------------------------------------
# Default rosters
# ---------------------------------------------------------------------------

FREQUENCY_ROSTER: tuple[ClassifierSpec, ...] = (
    ClassifierSpec("RF-Frequency", "ensemble", {"method": "bag", "n_cycles": 50}),
    ClassifierSpec("KNN-Frequency", "knn", {"n_neighbors": 3, "standardize": True}),
    ClassifierSpec("Tree-Frequency", "tree"),
)

RAW_ROSTER: tuple[ClassifierSpec, ...] = (
    ClassifierSpec("Naive Bayes", "naive_bayes"),
    ClassifierSpec("Decision Tree", "tree", {"max_splits": 50}),
    ClassifierSpec("Linear Discriminant", "discriminant", {"discrim_type": "linear"}),
    ClassifierSpec("KNN", "knn", {"n_neighbors": 5, "standardize": True}),
    ClassifierSpec("Random Forest", "ensemble", {"method": "bag", "n_cycles": 50}),
    ClassifierSpec("AdaBoost", "ensemble", {"method": "adaboost", "n_cycles": 50}),
    ClassifierSpec("Quadratic Discriminant", "discriminant", {"discrim_type": "quadratic"}),
)
