"""
Multilevel Models
=================

Linear mixed models (statsmodels MixedLM, ML estimation) with the summary
quantities used in the teaching transcripts:

- variance components (random-effect covariance + residual variance)
- adjusted ICC
- Nakagawa marginal / conditional R^2
- AIC / BIC / deviance counting every variance parameter
- likelihood-ratio tests and an anova-style comparison table
- a side-by-side model table (single-row "est (se)")

Usage:
    m0 = fit_mixed(schools, "normexam ~ 1", group="school", name="M0")
    m1 = fit_mixed(schools, "normexam ~ standlrt", group="school", name="M1")
    print(icc(m0), r2_nakagawa(m1))
    print(compare_models([m0, m1]))

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import warnings

import numpy as np
import pandas as pd
from scipy import stats
import statsmodels.formula.api as smf
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from survey_methods.basic_analysis.utils import significance_stars

FIT_METHODS = ("lbfgs", "powell")


# =============================================================================
# FITTING
# =============================================================================

@dataclass
class MixedFit:
    """A fitted mixed model plus fitting notes."""

    name: str
    formula: str
    group: str
    re_formula: Optional[str]
    result: Any
    method: str
    warning_msgs: List[str] = field(default_factory=list)
    reml: bool = False
    data: Optional[pd.DataFrame] = field(default=None, repr=False)

    @property
    def n_obs(self) -> int:
        return int(self.result.nobs)

    @property
    def n_groups(self) -> int:
        return len(self.result.model.group_labels)

    @property
    def llf(self) -> float:
        return float(self.result.llf)

    @property
    def converged(self) -> bool:
        return bool(getattr(self.result, "converged", False)) and not self.warning_msgs

    @property
    def n_params(self) -> int:
        """Fixed effects + unique random-effect (co)variances + residual variance."""
        k_fe = len(self.result.fe_params)
        k_re = self.result.cov_re.shape[0]
        return k_fe + k_re * (k_re + 1) // 2 + 1

    @property
    def deviance(self) -> float:
        return -2.0 * self.llf

    @property
    def aic(self) -> float:
        return self.deviance + 2 * self.n_params

    @property
    def bic(self) -> float:
        return self.deviance + self.n_params * np.log(self.n_obs)


def _fit_mixedlm_with_warnings(
    formula: str,
    df: pd.DataFrame,
    group: str,
    re_formula: Optional[str],
    reml: bool,
    method: str,
) -> tuple:
    warning_msgs: List[str] = []
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConvergenceWarning)
        model = smf.mixedlm(formula, data=df, groups=df[group], re_formula=re_formula)
        result = model.fit(reml=reml, method=method, maxiter=500)
    for warn in caught:
        if issubclass(warn.category, ConvergenceWarning):
            warning_msgs.append(str(warn.message))
    return result, warning_msgs


def _model_columns(data: pd.DataFrame, formula: str, group: str, re_formula: Optional[str]) -> List[str]:
    text = formula + " " + (re_formula or "")
    return [c for c in data.columns if c == group or c in text.replace("~", " ").replace("+", " ").split()]


def fit_mixed(
    data: pd.DataFrame,
    formula: str,
    group: str,
    re_formula: Optional[str] = None,
    reml: bool = False,
    name: Optional[str] = None,
    methods: Sequence[str] = FIT_METHODS,
) -> MixedFit:
    """
    Fit a linear mixed model with a random intercept (and optional slopes).

    Parameters
    ----------
    data : pd.DataFrame
        Long-format data.
    formula : str
        Fixed-effects formula, e.g. ``"normexam ~ standlrt"``.
    group : str
        Level-2 grouping column.
    re_formula : str, optional
        Random-effects formula, e.g. ``"~standlrt"``. Default: intercept only.
    reml : bool
        REML estimation. Defaults to ML so likelihood-ratio tests are valid.
    name : str, optional
        Label used in tables.
    methods : sequence of str
        Optimizers tried in order. The first fit that converges without
        warnings and with a finite log-likelihood is returned; when every
        optimizer warns, the first warned fit with a finite log-likelihood
        is returned with its warnings.

    Raises
    ------
    KeyError
        If the grouping column is missing.
    RuntimeError
        If every optimizer fails.
    """
    if group not in data.columns:
        raise KeyError(f"Grouping column '{group}' not found")
    df = data.dropna(subset=_model_columns(data, formula, group, re_formula)).reset_index(drop=True)

    errors = []
    warned: List[MixedFit] = []
    for method in methods:
        try:
            result, warning_msgs = _fit_mixedlm_with_warnings(formula, df, group, re_formula, reml, method)
        except (np.linalg.LinAlgError, ValueError) as exc:
            errors.append(f"{method}: {exc}")
            continue
        fit = MixedFit(
            name=name or formula,
            formula=formula,
            group=group,
            re_formula=re_formula,
            result=result,
            method=method,
            warning_msgs=warning_msgs,
            reml=reml,
            data=df,
        )
        if fit.converged and np.isfinite(fit.llf):
            return fit
        if not np.isfinite(fit.llf):
            errors.append(f"{method}: log-likelihood is not finite")
        warned.append(fit)

    finite = [fit for fit in warned if np.isfinite(fit.llf)]
    if finite:
        return finite[0]
    raise RuntimeError(f"Mixed model '{name or formula}' could not be fitted: {'; '.join(errors)}")


def fit_ols(formula: str, data: pd.DataFrame) -> Any:
    """Single-level OLS regression (ignores the grouping)."""
    return smf.ols(formula, data=data).fit()


# =============================================================================
# VARIANCE DECOMPOSITION
# =============================================================================

def variance_components(fit: MixedFit) -> pd.DataFrame:
    """
    Random-effect variances, SDs and correlations plus the residual.

    Returns
    -------
    pd.DataFrame
        Columns: component, variance, sd, corr (correlation with the intercept).
    """
    cov_re = fit.result.cov_re
    names = list(cov_re.index)
    rows = []
    for i, term in enumerate(names):
        var = float(cov_re.iloc[i, i])
        corr = np.nan
        if i > 0:
            denom = np.sqrt(cov_re.iloc[0, 0] * cov_re.iloc[i, i])
            corr = float(cov_re.iloc[0, i] / denom) if denom > 0 else np.nan
        term = "(Intercept)" if term in ("Group", "Intercept") else term
        rows.append({
            'component': f"{fit.group}: {term}",
            'variance': var,
            'sd': np.sqrt(max(var, 0.0)),
            'corr': corr,
        })
    scale = float(fit.result.scale)
    rows.append({'component': "Residual", 'variance': scale, 'sd': np.sqrt(scale), 'corr': np.nan})
    return pd.DataFrame(rows)


def _variance_parts(fit: MixedFit) -> Dict[str, float]:
    result = fit.result
    fixed = np.asarray(result.model.exog) @ np.asarray(result.fe_params)
    var_fixed = float(np.var(fixed, ddof=1)) if fixed.size > 1 else 0.0

    z = np.asarray(result.model.exog_re)
    sigma = np.asarray(result.cov_re)
    # mean of diag(Z Sigma Z') over observations
    var_random = float(np.mean(np.einsum("ij,jk,ik->i", z, sigma, z)))

    return {
        'fixed': var_fixed,
        'random': var_random,
        'residual': float(result.scale),
    }


def icc(fit: MixedFit) -> float:
    """
    Adjusted intraclass correlation: random variance / (random + residual).

    For a random-intercept model this is tau_00 / (tau_00 + sigma^2).
    """
    parts = _variance_parts(fit)
    total = parts['random'] + parts['residual']
    return parts['random'] / total if total > 0 else np.nan


def r2_nakagawa(fit: MixedFit) -> Dict[str, float]:
    """
    Nakagawa et al. (2017) R^2 for linear mixed models.

    Marginal R^2 uses the fixed effects only; conditional R^2 adds the
    random effects.
    """
    parts = _variance_parts(fit)
    total = parts['fixed'] + parts['random'] + parts['residual']
    if total <= 0:
        return {'marginal': np.nan, 'conditional': np.nan}
    return {
        'marginal': parts['fixed'] / total,
        'conditional': (parts['fixed'] + parts['random']) / total,
    }


def information_criteria(fit: MixedFit) -> Dict[str, float]:
    return {
        'npar': fit.n_params,
        'AIC': fit.aic,
        'BIC': fit.bic,
        'logLik': fit.llf,
        'deviance': fit.deviance,
    }


# =============================================================================
# MODEL COMPARISON
# =============================================================================

def likelihood_ratio_test(restricted: MixedFit, full: MixedFit) -> Dict[str, float]:
    """
    Likelihood-ratio test of nested ML fits.

    Raises
    ------
    ValueError
        If the "full" model does not have more parameters, or if either fit
        used REML.
    """
    if restricted.reml or full.reml:
        raise ValueError("Likelihood-ratio tests need ML fits (reml=False)")
    if restricted.n_obs != full.n_obs:
        raise ValueError(f"Models use different data ({restricted.n_obs} vs {full.n_obs} observations)")
    df = full.n_params - restricted.n_params
    if df <= 0:
        raise ValueError(
            f"'{full.name}' ({full.n_params} parameters) must have more parameters "
            f"than '{restricted.name}' ({restricted.n_params})"
        )
    chisq = max(2.0 * (full.llf - restricted.llf), 0.0)
    return {
        'chisq': chisq,
        'df': df,
        'p': float(stats.chi2.sf(chisq, df)),
    }


def compare_models(fits: Sequence[MixedFit]) -> pd.DataFrame:
    """
    Anova-style table: each model tested against the previous one.

    Models are ordered by number of parameters.
    """
    ordered = sorted(fits, key=lambda f: f.n_params)
    rows = []
    for i, fit in enumerate(ordered):
        row = {'model': fit.name, **information_criteria(fit), 'Chisq': np.nan, 'Df': np.nan, 'Pr(>Chisq)': np.nan}
        if i > 0:
            test = likelihood_ratio_test(ordered[i - 1], fit)
            row.update({'Chisq': test['chisq'], 'Df': test['df'], 'Pr(>Chisq)': test['p']})
        rows.append(row)
    return pd.DataFrame(rows).set_index('model')


# =============================================================================
# TABLES
# =============================================================================

def _is_mixed(model: Any) -> bool:
    return isinstance(model, MixedFit)


def model_table(models: Mapping[str, Union[MixedFit, Any]], digits: int = 2) -> str:
    """
    Side-by-side table of OLS and mixed models, one "est (se)" per cell.

    Parameters
    ----------
    models : mapping of label -> MixedFit or OLS results
    digits : int
    """
    labels = list(models)
    coef_rows: Dict[str, Dict[str, str]] = {}
    stat_rows: Dict[str, Dict[str, str]] = {}

    def put(rows, key, label, value):
        rows.setdefault(key, {})[label] = value

    for label, model in models.items():
        res = model.result if _is_mixed(model) else model
        params = res.fe_params if _is_mixed(model) else res.params
        for term in params.index:
            est, se, p = params[term], res.bse[term], res.pvalues[term]
            put(coef_rows, term, label, f"{est:.{digits}f} ({se:.{digits}f}){significance_stars(p)}")

        if _is_mixed(model):
            put(stat_rows, "AIC", label, f"{model.aic:.{digits}f}")
            put(stat_rows, "BIC", label, f"{model.bic:.{digits}f}")
            put(stat_rows, "Log Likelihood", label, f"{model.llf:.{digits}f}")
            put(stat_rows, "Num. obs.", label, f"{model.n_obs}")
            put(stat_rows, f"Num. groups: {model.group}", label, f"{model.n_groups}")
            for _, comp in variance_components(model).iterrows():
                put(stat_rows, f"Var: {comp['component']}", label, f"{comp['variance']:.{digits}f}")
                if pd.notna(comp['corr']):
                    put(stat_rows, f"Cor: {comp['component']}", label, f"{comp['corr']:.{digits}f}")
        else:
            put(stat_rows, "R^2", label, f"{res.rsquared:.{digits}f}")
            put(stat_rows, "Adj. R^2", label, f"{res.rsquared_adj:.{digits}f}")
            put(stat_rows, "Num. obs.", label, f"{int(res.nobs)}")

    all_rows = list(coef_rows.items()) + list(stat_rows.items())
    name_width = max([len(name) for name, _ in all_rows] + [0])
    widths = {
        label: max([len(label)] + [len(cells.get(label, "")) for _, cells in all_rows])
        for label in labels
    }

    def line(name: str, cells: Mapping[str, str]) -> str:
        parts = [name.ljust(name_width)] + [cells.get(label, "").ljust(widths[label]) for label in labels]
        return "  ".join(parts).rstrip()

    total = name_width + sum(widths.values()) + 2 * len(labels)
    out = ["=" * total, line("", {label: label for label in labels}), "-" * total]
    out += [line(name, cells) for name, cells in coef_rows.items()]
    out.append("-" * total)
    out += [line(name, cells) for name, cells in stat_rows.items()]
    out.append("=" * total)
    out.append("*** p < 0.001; ** p < 0.01; * p < 0.05")
    return "\n".join(out)
