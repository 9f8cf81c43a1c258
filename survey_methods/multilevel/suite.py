"""
Multilevel Regression Suite
===========================

Two multilevel teaching examples with transcripts and plot PDFs.

Analyses:
1. Schools (Goldstein, 1995): normexam ~ standlrt, students in schools
   - M0: random ANOVA (ICC, R^2)
   - M1: random intercept
   - M2: random intercept and slope
   - LR tests M0 vs M1 vs M2, combined model table, plots
2. Retail (hypothetical): loyalty ~ satisfaction, customers in stores
   - Single-level OLS vs multilevel models
   - ICC from random ANOVAs, Nakagawa R^2, combined table, plots

Usage:
    python -m survey_methods.multilevel --dataset all

Output:
    data/outputs/multilevel/
    - MultilevelSchools.txt, MultilevelSchoolsPlots.pdf
    - MultilevelRetail.txt, MultilevelRetailPlots.pdf

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

import sys
if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding='utf-8')

from contextlib import ExitStack, redirect_stdout
from datetime import datetime
import io
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from survey_methods.basic_analysis import (
    Transcript,
    describe,
    format_pvalue,
    print_frame,
    print_section_header,
    print_subsection_header,
)
from survey_methods.preprocessing.constants import (
    DEFAULT_SEED,
    RETAIL_PLOTS,
    RETAIL_TRANSCRIPT,
    SCHOOLS_PLOTS,
    SCHOOLS_TRANSCRIPT,
    get_output_dir,
)

from .data import load_or_simulate
from .models import (
    MixedFit,
    compare_models,
    fit_mixed,
    fit_ols,
    icc,
    model_table,
    r2_nakagawa,
    variance_components,
)
from .plots import fitted_lines_plot, group_panels_plot, save_plots

AVAILABLE_DATASETS = {
    "schools": "Goldstein school data: random ANOVA, random intercept, random slope",
    "retail": "Hypothetical retail data: single-level vs multilevel",
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _output_context(stack: ExitStack, path: Path, verbose: bool, transcript: bool) -> None:
    if transcript:
        stack.enter_context(Transcript(path, echo=verbose))
    elif not verbose:
        stack.enter_context(redirect_stdout(io.StringIO()))


def _timestamp() -> str:
    return datetime.now().strftime("%a %b %d %H:%M:%S %Y")


def _print_fit_notes(fit: MixedFit) -> None:
    if fit.method != "lbfgs":
        print(f"  [INFO] {fit.name}: fitted with {fit.method} optimizer")
    for msg in fit.warning_msgs:
        print(f"  [WARN] {fit.name}: {msg}")


def _print_r2(fit: MixedFit) -> None:
    r2 = r2_nakagawa(fit)
    print(f"  R2 for Mixed Models ({fit.name})")
    print(f"    Conditional R2: {r2['conditional']:.3f}")
    print(f"       Marginal R2: {r2['marginal']:.3f}")


def _print_icc(fit: MixedFit) -> None:
    print(f"  Intraclass Correlation Coefficient ({fit.name})")
    print(f"    Adjusted ICC: {icc(fit):.3f}")


def _print_data(df: pd.DataFrame, n_head: int) -> None:
    print("\n# Show some data.")
    print_frame(describe(df), digits=3)
    print(f"\n# First {n_head} lines of data set")
    print_frame(df.head(n_head), digits=3)


def _print_comparison(table: pd.DataFrame) -> None:
    shown = table.copy()
    shown['Pr(>Chisq)'] = shown['Pr(>Chisq)'].map(lambda p: "" if pd.isna(p) else format_pvalue(p))
    print_frame(shown, digits=2)


# =============================================================================
# SCHOOLS
# =============================================================================

def run_schools(
    path: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
    seed: Optional[int] = DEFAULT_SEED,
    verbose: bool = True,
    transcript: bool = True,
    plots: bool = True,
) -> Dict[str, object]:
    """
    Random ANOVA, random-intercept and random-slope models on the school data.

    Returns
    -------
    dict with keys 'data', 'source', 'models', 'comparison', 'plots'
    """
    output_dir = Path(output_dir) if output_dir is not None else get_output_dir('multilevel')
    output_dir.mkdir(parents=True, exist_ok=True)

    with ExitStack() as stack:
        _output_context(stack, output_dir / SCHOOLS_TRANSCRIPT, verbose, transcript)

        print_section_header("MULTILEVEL REGRESSION: GOLDSTEIN (1995) SCHOOL DATA")
        print(_timestamp())

        print_subsection_header("Data Exploration")
        schools, source = load_or_simulate("schools", path=path, seed=seed)
        _print_data(schools[["school", "student", "normexam", "standlrt"]], n_head=6)

        print_subsection_header("M0: Random Anova Model, with intercept random across schools")
        m0 = fit_mixed(schools, "normexam ~ 1", group="school", name="M0: Random Anova")
        _print_fit_notes(m0)
        _print_icc(m0)
        _print_r2(m0)

        print_subsection_header("M1: Multilevel Regression Model, with random intercept")
        m1 = fit_mixed(schools, "normexam ~ 1 + standlrt", group="school", name="M1: Random Interc")
        _print_fit_notes(m1)
        _print_r2(m1)

        print_subsection_header("M2: Multilevel Regression Model, with random intercept and slope")
        m2 = fit_mixed(
            schools, "normexam ~ 1 + standlrt", group="school", re_formula="~standlrt",
            name="M2: Random Interc and Slopes",
        )
        _print_fit_notes(m2)
        _print_r2(m2)

        models = {m.name: m for m in (m0, m1, m2)}

        print_subsection_header("Combine model summaries in a single table")
        print(model_table(models, digits=2))

        print_subsection_header("Likelihood Ratio (LR) test for model comparison")
        comparison = compare_models([m0, m1, m2])
        _print_comparison(comparison)

        best = comparison['AIC'].idxmin()
        print(f"\n  [INFO] Lowest AIC: {best}; lowest BIC: {comparison['BIC'].idxmin()}")
        for name, row in comparison.iloc[1:].iterrows():
            verdict = "significant" if row['Pr(>Chisq)'] < 0.05 else "not significant"
            print(f"  [INFO] {name}: LR chi2({int(row['Df'])}) = {row['Chisq']:.2f}, "
                  f"p {format_pvalue(row['Pr(>Chisq)'])} ({verdict})")

        print("\n  Random-effect variance components (M2):")
        print_frame(variance_components(m2), digits=3)

        plot_path = None
        if plots:
            print_subsection_header("PLOTTING")
            figures = [
                fitted_lines_plot(
                    m1.data, m1.result.fittedvalues, "standlrt", "school",
                    title="M1: Random Intercepts",
                    xlabel="Standardized learning test", ylabel="Estimated normed exam score",
                ),
                fitted_lines_plot(
                    m2.data, m2.result.fittedvalues, "standlrt", "school",
                    title="M2: Random Intercepts and Slopes",
                    xlabel="Standardized learning test", ylabel="Estimated normed exam score",
                ),
                group_panels_plot(
                    schools, "standlrt", "normexam", "school",
                    title="Separate regression line for each school",
                    xlabel="Standardized learning test", ylabel="Observed normed exam score",
                ),
            ]
            plot_path = save_plots(figures, output_dir / SCHOOLS_PLOTS)
            print(f"  [OK] {len(figures)} plots saved to {plot_path.name}")

        print_subsection_header("FINALIZING")
        print(_timestamp())

    return {
        'data': schools,
        'source': source,
        'models': models,
        'comparison': comparison,
        'plots': plot_path,
    }


# =============================================================================
# RETAIL
# =============================================================================

def run_retail(
    path: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
    seed: Optional[int] = DEFAULT_SEED,
    verbose: bool = True,
    transcript: bool = True,
    plots: bool = True,
) -> Dict[str, object]:
    """
    Single-level OLS vs multilevel models on the retail data.

    Returns
    -------
    dict with keys 'data', 'source', 'ols', 'models', 'icc', 'r2', 'plots'
    """
    output_dir = Path(output_dir) if output_dir is not None else get_output_dir('multilevel')
    output_dir.mkdir(parents=True, exist_ok=True)

    with ExitStack() as stack:
        _output_context(stack, output_dir / RETAIL_TRANSCRIPT, verbose, transcript)

        print_section_header("MULTILEVEL REGRESSION: HYPOTHETICAL RETAIL DATA")
        print(_timestamp())

        retail, source = load_or_simulate("retail", path=path, seed=seed)
        _print_data(retail, n_head=10)

        print_subsection_header("Option 1: Single-level regression model (ignore multilevel)")
        ols = {
            'loyalty_1': fit_ols("loyalty_1 ~ 1 + satisfac_1", retail),
            'loyalty_2': fit_ols("loyalty_2 ~ 1 + satisfac_1", retail),
        }
        for outcome, model in ols.items():
            print(model_table({f"Option 1: {outcome.capitalize()}": model}, digits=3))

        print_subsection_header("Option 4: Multilevel regression model")
        iccs = {}
        for outcome in ("loyalty_1", "loyalty_2"):
            print(f"\n# Multilevel Model on {outcome}: Random ANOVA (no predictors) to determine ICC.")
            null = fit_mixed(retail, f"{outcome} ~ 1", group="store", name=f"Random ANOVA {outcome}")
            _print_fit_notes(null)
            iccs[outcome] = icc(null)
            _print_icc(null)

        print("\n# Multilevel Model: Random-Intercept")
        m4a = fit_mixed(retail, "loyalty_1 ~ 1 + satisfac_1", group="store", name="Multi-loyalty_1")
        _print_fit_notes(m4a)
        _print_r2(m4a)

        print("\n# Multilevel Model: Random-Slope")
        m4b = fit_mixed(
            retail, "loyalty_2 ~ 1 + satisfac_1", group="store", re_formula="~satisfac_1",
            name="Multi-loyalty_2",
        )
        _print_fit_notes(m4b)
        _print_r2(m4b)

        if m4a.warning_msgs or m4b.warning_msgs:
            print("\n  [INFO] Convergence warnings are expected here: the example has few data")
            print("         (3 stores) and an almost perfect structure. With real data they")
            print("         call for remedial action.")

        print_subsection_header("Combine model summaries in a single table")
        print(model_table({
            "Single-loyalty_1": ols['loyalty_1'],
            "Multi-loyalty_1": m4a,
            "Single-loyalty_2": ols['loyalty_2'],
            "Multi-loyalty_2": m4b,
        }, digits=2))

        plot_path = None
        if plots:
            print_subsection_header("PLOTTING")
            figures = [
                fitted_lines_plot(
                    m4a.data, m4a.result.fittedvalues, "satisfac_1", "store",
                    title="Random intercepts: loyalty_1",
                    xlabel="Satisfaction", ylabel="Estimated Loyalty_1", points=True,
                ),
                fitted_lines_plot(
                    m4b.data, m4b.result.fittedvalues, "satisfac_1", "store",
                    title="Random intercepts and slopes: loyalty_2",
                    xlabel="Satisfaction", ylabel="Estimated Loyalty_2", points=True,
                ),
            ]
            plot_path = save_plots(figures, output_dir / RETAIL_PLOTS)
            print(f"  [OK] {len(figures)} plots saved to {plot_path.name}")

        print_subsection_header("FINALIZING")
        print(_timestamp())

    return {
        'data': retail,
        'source': source,
        'ols': ols,
        'models': {m4a.name: m4a, m4b.name: m4b},
        'icc': iccs,
        'r2': {m4a.name: r2_nakagawa(m4a), m4b.name: r2_nakagawa(m4b)},
        'plots': plot_path,
    }


# =============================================================================
# MAIN RUNNER
# =============================================================================

def list_datasets() -> None:
    """Print available datasets."""
    print("\nAvailable multilevel datasets:")
    for key, desc in AVAILABLE_DATASETS.items():
        print(f"  {key:<8} - {desc}")


def run(
    dataset: str = "all",
    output_dir: Optional[Union[str, Path]] = None,
    schools_path: Optional[Union[str, Path]] = None,
    retail_path: Optional[Union[str, Path]] = None,
    seed: Optional[int] = DEFAULT_SEED,
    verbose: bool = True,
    plots: bool = True,
) -> Dict[str, Dict[str, object]]:
    """Run one or both multilevel examples."""
    if dataset != "all" and dataset not in AVAILABLE_DATASETS:
        raise ValueError(f"Unknown dataset '{dataset}'. Options: {['all'] + list(AVAILABLE_DATASETS)}")

    runners = {
        'schools': (run_schools, schools_path),
        'retail': (run_retail, retail_path),
    }
    results = {}
    for name, (runner, path) in runners.items():
        if dataset not in ("all", name):
            continue
        try:
            results[name] = runner(path, output_dir, seed=seed, verbose=verbose, plots=plots)
        except (RuntimeError, KeyError) as exc:
            print(f"\n[ERROR] {name}: {exc}")
            results[name] = {'error': str(exc)}
    return results


if __name__ == "__main__":
    run()
