"""
Regression models relating trip distance to environmental variables
====================================================================

1. Ordinary least squares over several predictor subsets, with
   variance‑inflation factors for multicollinearity.
2. A random‑forest regressor on an 80/20 train/test split with a fixed seed,
   reporting RMSE, R² and permutation importance.
3. Diagnostic plots: residuals vs fitted, QQ, predicted vs actual, importance.

Rows with a missing target or predictor are dropped per model.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import variance_inflation_factor
from sklearn.ensemble import RandomForestRegressor
from sklearn.inspection import permutation_importance
from sklearn.metrics import mean_squared_error, r2_score
from sklearn.model_selection import train_test_split


@dataclass
class OLSReport:
    """Fit summary of one OLS model."""
    target: str
    predictors: List[str]
    n_obs: int
    r2: float
    adj_r2: float
    params: pd.Series
    pvalues: pd.Series
    vif: pd.Series
    fitted: pd.Series = field(repr=False)
    residuals: pd.Series = field(repr=False)
    summary_text: str = field(default="", repr=False)

    def to_row(self) -> Dict[str, object]:
        return {
            "model": "ols",
            "target": self.target,
            "predictors": "+".join(self.predictors),
            "n_obs": self.n_obs,
            "r2": self.r2,
            "adj_r2": self.adj_r2,
            "max_vif": float(self.vif.max()) if len(self.vif) else np.nan,
        }


@dataclass
class ForestReport:
    """Held‑out evaluation of the random forest."""
    target: str
    features: List[str]
    n_train: int
    n_test: int
    rmse: float
    r2: float
    impurity_importance: pd.Series
    permutation_importance: pd.Series
    y_test: pd.Series = field(repr=False)
    y_pred: pd.Series = field(repr=False)

    def to_row(self) -> Dict[str, object]:
        return {
            "model": "random_forest",
            "target": self.target,
            "predictors": "+".join(self.features),
            "n_obs": self.n_train + self.n_test,
            "r2": self.r2,
            "rmse": self.rmse,
        }


def _model_frame(df: pd.DataFrame, target: str, predictors: List[str]) -> pd.DataFrame:
    missing = [c for c in [target] + predictors if c not in df.columns]
    if missing:
        raise ValueError(f"Model columns not found: {missing}")
    return df[[target] + predictors].apply(pd.to_numeric, errors="coerce").dropna()


def compute_vif(X: pd.DataFrame) -> pd.Series:
    """Variance‑inflation factor per column of ``X`` (constant excluded)."""
    if X.shape[1] < 2:
        # a single predictor cannot be collinear with anything
        return pd.Series(1.0, index=X.columns, name="vif")
    exog = sm.add_constant(X, has_constant="add")
    values = [variance_inflation_factor(exog.values, i) for i in range(1, exog.shape[1])]
    return pd.Series(values, index=X.columns, name="vif")


def fit_ols(df: pd.DataFrame, target: str, predictors: List[str]) -> OLSReport:
    data = _model_frame(df, target, predictors)
    if len(data) <= len(predictors) + 1:
        raise ValueError(
            f"Not enough complete rows ({len(data)}) to fit {target} ~ {' + '.join(predictors)}"
        )

    X = sm.add_constant(data[predictors], has_constant="add")
    model = sm.OLS(data[target], X).fit()

    return OLSReport(
        target=target,
        predictors=list(predictors),
        n_obs=int(model.nobs),
        r2=float(model.rsquared),
        adj_r2=float(model.rsquared_adj),
        params=model.params,
        pvalues=model.pvalues,
        vif=compute_vif(data[predictors]),
        fitted=model.fittedvalues,
        residuals=model.resid,
        summary_text=str(model.summary()),
    )


def fit_ols_subsets(df: pd.DataFrame, target: str, subsets: List[List[str]]) -> List[OLSReport]:
    """Fit one OLS per predictor subset; subsets that cannot be fitted are skipped."""
    reports = []
    for predictors in subsets:
        try:
            report = fit_ols(df, target, predictors)
        except ValueError as e:
            print(f"⚠️ Skipping OLS {target} ~ {' + '.join(predictors)}: {e}")
            continue
        print(f"   OLS {target} ~ {' + '.join(predictors)}: "
              f"R²={report.r2:.4f}, adj R²={report.adj_r2:.4f}, n={report.n_obs}")
        reports.append(report)
    return reports


def fit_random_forest(
    df: pd.DataFrame,
    target: str,
    features: List[str],
    test_size: float = 0.2,
    random_state: int = 42,
    n_estimators: int = 200,
    n_repeats: int = 10,
) -> ForestReport:
    data = _model_frame(df, target, features)
    if len(data) < 5:
        raise ValueError(f"Not enough complete rows ({len(data)}) for a random forest")

    X_tr, X_te, y_tr, y_te = train_test_split(
        data[features], data[target], test_size=test_size, random_state=random_state
    )

    model = RandomForestRegressor(n_estimators=n_estimators, random_state=random_state)
    model.fit(X_tr, y_tr)
    y_pred = pd.Series(model.predict(X_te), index=y_te.index)

    rmse = float(np.sqrt(mean_squared_error(y_te, y_pred)))
    r2 = float(r2_score(y_te, y_pred)) if len(y_te) > 1 else np.nan

    perm = permutation_importance(model, X_te, y_te, n_repeats=n_repeats, random_state=random_state)

    print(f"   RandomForest {target}: RMSE={rmse:.4f}, R²={r2:.4f}, "
          f"train={len(X_tr)}, test={len(X_te)}")

    return ForestReport(
        target=target,
        features=list(features),
        n_train=len(X_tr),
        n_test=len(X_te),
        rmse=rmse,
        r2=r2,
        impurity_importance=pd.Series(model.feature_importances_, index=features).sort_values(ascending=False),
        permutation_importance=pd.Series(perm.importances_mean, index=features).sort_values(ascending=False),
        y_test=y_te,
        y_pred=y_pred,
    )


# ────────────────────────────────────────────────────────────────────────────
# Diagnostics plots
# ────────────────────────────────────────────────────────────────────────────

def plot_ols_diagnostics(report: OLSReport, save_path: Optional[Path] = None):
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(15, 6))

    ax1.scatter(report.fitted, report.residuals, alpha=0.5)
    ax1.axhline(0, color="red", linestyle="--")
    ax1.set_xlabel("Fitted values")
    ax1.set_ylabel("Residuals")
    ax1.set_title(f"Residuals vs Fitted ({' + '.join(report.predictors)})")
    ax1.grid(True, alpha=0.3)

    sm.qqplot(report.residuals, line="s", ax=ax2)
    ax2.set_title("Normal QQ Plot of Residuals")

    return _save(fig, save_path)


def plot_forest_diagnostics(report: ForestReport, save_path: Optional[Path] = None):
    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(15, 6))

    ax1.scatter(report.y_test, report.y_pred, alpha=0.6)
    lo = float(min(report.y_test.min(), report.y_pred.min()))
    hi = float(max(report.y_test.max(), report.y_pred.max()))
    ax1.plot([lo, hi], [lo, hi], color="red", linestyle="--")
    ax1.set_xlabel(f"Actual {report.target}")
    ax1.set_ylabel(f"Predicted {report.target}")
    ax1.set_title(f"Random Forest: Actual vs Predicted (R²={report.r2:.3f})")
    ax1.grid(True, alpha=0.3)

    importance = pd.DataFrame({
        "permutation": report.permutation_importance,
        "impurity": report.impurity_importance,
    }).reset_index(names="feature").melt(id_vars="feature", var_name="kind", value_name="importance")
    sns.barplot(data=importance, x="importance", y="feature", hue="kind", ax=ax2)
    ax2.set_title("Feature Importance")
    ax2.grid(True, alpha=0.3)

    return _save(fig, save_path)


def _save(fig, save_path):
    fig.tight_layout()
    if save_path is None:
        plt.show()
        return None
    save_path = Path(save_path)
    save_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(save_path, dpi=120)
    plt.close(fig)
    return save_path


def metrics_table(ols_reports: List[OLSReport], forest: Optional[ForestReport] = None) -> pd.DataFrame:
    rows = [r.to_row() for r in ols_reports]
    if forest is not None:
        rows.append(forest.to_row())
    return pd.DataFrame(rows)


def vif_table(ols_reports: List[OLSReport]) -> pd.DataFrame:
    rows = []
    for r in ols_reports:
        for predictor, value in r.vif.items():
            rows.append({"predictors": "+".join(r.predictors), "predictor": predictor, "vif": value})
    return pd.DataFrame(rows, columns=["predictors", "predictor", "vif"])


__all__ = [
    "OLSReport",
    "ForestReport",
    "compute_vif",
    "fit_ols",
    "fit_ols_subsets",
    "fit_random_forest",
    "plot_ols_diagnostics",
    "plot_forest_diagnostics",
    "metrics_table",
    "vif_table",
]
