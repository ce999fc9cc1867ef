"""RegressionEngine — standard curve fitting and inversion.

Fits linear, log-linear and four-parameter logistic (4PL) models to
(concentration, response) pairs from standards. Every model exposes
``forward`` (concentration -> response) and ``inverse`` (response ->
concentration). Inverses never raise: responses outside the fitted curve
come back as NaN or inf, which callers treat as "outside curve range".
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from bioassay.constants import AssayConstants
from bioassay.errors import InputValidationError


class RegressionKind(str, Enum):
    LINEAR = "linear"
    LOG = "log"
    FOUR_PL = "4pl"

    @classmethod
    def parse(cls, kind) -> "RegressionKind":
        try:
            return cls(str(getattr(kind, "value", kind)).strip().lower())
        except ValueError:
            raise InputValidationError(
                f"Unknown regression type '{kind}'. Expected one of: "
                f"{', '.join(k.value for k in cls)}"
            ) from None


PARAMETER_NAMES = {
    RegressionKind.LINEAR: ("m", "b"),
    RegressionKind.LOG: ("m", "b"),
    RegressionKind.FOUR_PL: ("A", "B", "C", "D"),
}


# ==================== MODEL EQUATIONS ====================
def linear(x, m, b):
    return m * x + b


def linear_inverse(y, m, b):
    return (y - b) / m


def log_linear(x, m, b):
    return m * np.log10(x) + b


def log_linear_inverse(y, m, b):
    return 10 ** ((y - b) / m)


def four_pl(x, A, B, C, D):
    """A: response at x=0, B: Hill slope, C: inflection point, D: response at x=inf."""
    return D + (A - D) / (1 + (x / C) ** B)


def four_pl_inverse(y, A, B, C, D):
    return C * (((A - D) / (y - D)) - 1) ** (1 / B)


_EQUATIONS = {
    RegressionKind.LINEAR: (linear, linear_inverse),
    RegressionKind.LOG: (log_linear, log_linear_inverse),
    RegressionKind.FOUR_PL: (four_pl, four_pl_inverse),
}


def _evaluate(fn: Callable, value, params: Sequence[float]):
    arr = np.asarray(value, dtype=float)
    params = [np.float64(p) for p in params]
    with np.errstate(all="ignore"):
        out = fn(arr, *params)
    if arr.ndim == 0:
        return float(out)
    return np.asarray(out, dtype=float)


@dataclass
class RegressionModel:
    kind: RegressionKind
    parameters: Dict[str, float]
    r_squared: float = np.nan
    fit_points: List[Tuple[float, float]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return all(np.isfinite(v) for v in self.parameters.values())

    def forward(self, x):
        """Predicted response for concentration ``x`` (scalar or array)."""
        return _evaluate(_EQUATIONS[self.kind][0], x, list(self.parameters.values()))

    def inverse(self, y):
        """Interpolated concentration for response ``y``; may be NaN/inf."""
        return _evaluate(_EQUATIONS[self.kind][1], y, list(self.parameters.values()))

    def curve(
        self,
        x_min: Optional[float] = None,
        x_max: Optional[float] = None,
        n_points: int = AssayConstants.CURVE_POINTS,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Evenly spaced points along the fitted curve for plotting."""
        xs = [x for x, _ in self.fit_points]
        if x_min is None:
            x_min = min(xs) if xs else np.nan
        if x_max is None:
            x_max = max(xs) if xs else np.nan
        if not (np.isfinite(x_min) and np.isfinite(x_max)):
            return np.array([]), np.array([])
        curve_x = np.linspace(x_min, x_max, n_points + 1)
        return curve_x, self.forward(curve_x)


# ==================== OPTIMIZER ====================
def sum_of_squares(y, y_pred) -> float:
    return float(np.sum((np.asarray(y) - np.asarray(y_pred)) ** 2))


def pattern_search(
    model: Callable,
    initial: Sequence[float],
    x,
    y,
    max_iter: int = AssayConstants.FOUR_PL_MAX_ITER,
    step: Optional[Sequence[float]] = None,
    objective: Callable = sum_of_squares,
) -> List[float]:
    """Coordinate-wise compass search minimizing ``objective(y, model(x, p))``.

    Each iteration tries one step per parameter. An improving step is kept
    and that parameter's step grows by 1.2; otherwise the step is reversed
    and halved. Initial steps are 1/100 of each starting value (1 for zeros).

    This is a local heuristic with no convergence guarantee: it can stall in
    a local minimum or oscillate. Results depend on the starting values.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    best = [float(p) for p in initial]
    if step is None:
        step = [p / 100 if p / 100 != 0 else 1.0 for p in best]
    step = [float(s) for s in step]

    def cost(params):
        with np.errstate(all="ignore"):
            return objective(y, model(x, params))

    best_cost = cost(best)
    for _ in range(max_iter):
        for j in range(len(best)):
            trial = list(best)
            trial[j] += step[j]
            trial_cost = cost(trial)
            if trial_cost < best_cost:
                step[j] *= AssayConstants.FOUR_PL_STEP_GROWTH
                best, best_cost = trial, trial_cost
            else:
                step[j] *= AssayConstants.FOUR_PL_STEP_REVERSAL
    return best


def _four_pl_model(x, params):
    return four_pl(x, *params)


# ==================== ENGINE ====================
class RegressionEngine:
    @staticmethod
    def r_squared(xs, ys, predict: Callable) -> float:
        """Coefficient of determination of ``predict`` over the given pairs."""
        ys = np.asarray(ys, dtype=float)
        if ys.size == 0:
            return np.nan
        with np.errstate(all="ignore"):
            residual = np.sum((ys - predict(np.asarray(xs, dtype=float))) ** 2)
            total = np.sum((ys - ys.mean()) ** 2)
            if total == 0:
                return np.nan
            return float(1 - residual / total)

    @staticmethod
    def _split(pairs) -> Tuple[np.ndarray, np.ndarray]:
        pairs = [(float(x), float(y)) for x, y in pairs]
        xs = np.array([p[0] for p in pairs], dtype=float)
        ys = np.array([p[1] for p in pairs], dtype=float)
        return xs, ys

    @staticmethod
    def _degenerate(kind: RegressionKind, pairs, reason: str) -> RegressionModel:
        return RegressionModel(
            kind=kind,
            parameters={name: np.nan for name in PARAMETER_NAMES[kind]},
            r_squared=np.nan,
            fit_points=list(pairs),
            warnings=[reason],
        )

    @staticmethod
    def _ols_problem(xs: np.ndarray, ys: np.ndarray) -> Optional[str]:
        if len(xs) < AssayConstants.MIN_STANDARDS_FOR_FIT:
            return (
                f"At least {AssayConstants.MIN_STANDARDS_FOR_FIT} standards are "
                f"needed for a fit (got {len(xs)})"
            )
        if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
            return "Standards contain non-numeric concentrations or responses"
        if np.ptp(xs) == 0:
            return "All standards have the same concentration"
        return None

    @staticmethod
    def fit_linear(pairs) -> RegressionModel:
        """Ordinary least squares on (x, y)."""
        pairs = list(pairs)
        xs, ys = RegressionEngine._split(pairs)
        problem = RegressionEngine._ols_problem(xs, ys)
        if problem:
            return RegressionEngine._degenerate(RegressionKind.LINEAR, pairs, problem)

        result = stats.linregress(xs, ys)
        m, b = float(result.slope), float(result.intercept)
        return RegressionModel(
            kind=RegressionKind.LINEAR,
            parameters={"m": m, "b": b},
            r_squared=RegressionEngine.r_squared(xs, ys, lambda x: linear(x, m, b)),
            fit_points=pairs,
        )

    @staticmethod
    def fit_log(pairs) -> RegressionModel:
        """Least squares on (log10 x, y); standards at x = 0 are left out."""
        pairs = [(x, y) for x, y in pairs if float(x) != 0]
        xs, ys = RegressionEngine._split(pairs)
        with np.errstate(all="ignore"):
            log_xs = np.log10(xs)
        problem = RegressionEngine._ols_problem(log_xs, ys)
        if problem:
            return RegressionEngine._degenerate(RegressionKind.LOG, pairs, problem)

        result = stats.linregress(log_xs, ys)
        m, b = float(result.slope), float(result.intercept)
        return RegressionModel(
            kind=RegressionKind.LOG,
            parameters={"m": m, "b": b},
            r_squared=RegressionEngine.r_squared(log_xs, ys, lambda x: linear(x, m, b)),
            fit_points=pairs,
        )

    @staticmethod
    def fit_four_pl(pairs, max_iter: int = AssayConstants.FOUR_PL_MAX_ITER) -> RegressionModel:
        """Four-parameter logistic fit by compass search. No R² is defined."""
        pairs = list(pairs)
        xs, ys = RegressionEngine._split(pairs)
        if len(xs) < AssayConstants.MIN_STANDARDS_FOR_FIT:
            return RegressionEngine._degenerate(
                RegressionKind.FOUR_PL,
                pairs,
                f"At least {AssayConstants.MIN_STANDARDS_FOR_FIT} standards are "
                f"needed for a fit (got {len(xs)})",
            )
        if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
            return RegressionEngine._degenerate(
                RegressionKind.FOUR_PL,
                pairs,
                "Standards contain non-numeric concentrations or responses",
            )

        seed = [xs.min(), 0.0, xs.mean(), ys.max()]
        A, B, C, D = pattern_search(_four_pl_model, seed, xs, ys, max_iter=max_iter)
        return RegressionModel(
            kind=RegressionKind.FOUR_PL,
            parameters={"A": A, "B": B, "C": C, "D": D},
            r_squared=np.nan,
            fit_points=pairs,
        )

    @staticmethod
    def fit(pairs, kind) -> RegressionModel:
        kind = RegressionKind.parse(kind)
        if kind is RegressionKind.LOG:
            return RegressionEngine.fit_log(pairs)
        if kind is RegressionKind.LINEAR:
            return RegressionEngine.fit_linear(pairs)
        return RegressionEngine.fit_four_pl(pairs)
