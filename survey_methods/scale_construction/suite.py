"""
Scale Construction Suite
========================

Walks the five teaching datasets through generation, discretization,
reliability diagnosis, item selection, composite construction and (data5)
the criterion comparison, printing a readable transcript.

Analyses:
1. Scale construction by simple averaging
   - data1: class example (continuous, alpha = .75)
   - data2: reversed item (reverse-code x1)
   - data3: bad item (drop x1)
   - data4: redundant items (short-form projection)
2. Unweighted vs weighted averaging
   - data5: factor-score composite, regression of y on both scales

Usage:
    python -m survey_methods.scale_construction
    python -m survey_methods.scale_construction --variant data5 --save-data

Output:
    data/outputs/scale_construction/
    - ScaleConstruction.txt       (transcript)
    - scale_summary.csv
    - data1.csv ... data5.csv     (with --save-data)

Author: Research Team
Date: 2025-12
"""

from __future__ import annotations

import sys
if sys.platform.startswith("win") and hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding='utf-8')

from contextlib import ExitStack, redirect_stdout
from dataclasses import dataclass, field
from datetime import datetime
import io
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union
import warnings

import pandas as pd

from survey_methods.basic_analysis import (
    Transcript,
    describe,
    print_frame,
    print_section_header,
    print_subsection_header,
    rounded_correlation,
)
from survey_methods.preprocessing.constants import DEFAULT_N, DEFAULT_SEED, SCALE_TRANSCRIPT, get_output_dir
from survey_methods.preprocessing.errors import SurveyMethodsError
from survey_methods.preprocessing.likert import LIKERT_5, DiscretizationRule
from survey_methods.validity_reliability import (
    ReliabilityReport,
    print_reliability_report,
    spearman_brown,
)

from .comparison import composite_correlation, format_model_table
from .pipeline import ScalePipeline
from .variants import VARIANTS, DatasetVariant


@dataclass
class VariantResult:
    """Outcome of one variant run."""

    name: str
    pipeline: Optional[ScalePipeline] = None
    error: Optional[str] = None
    reports: List[ReliabilityReport] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> Dict[str, object]:
        row: Dict[str, object] = {'variant': self.name, 'status': 'ok' if self.ok else 'error'}
        if not self.ok:
            row['error'] = self.error
            return row
        first, last = self.reports[0], self.reports[-1]
        pipe = self.pipeline
        row.update({
            'n_obs': first.n_obs,
            'n_items': first.n_items,
            'alpha_all_items': first.alpha,
            'raw_alpha_all_items': first.raw_alpha,
            'scale_items': ", ".join(last.items),
            'alpha_scale': last.alpha,
            'reversed': ", ".join(pipe.selection.reverse),
            'dropped': ", ".join(pipe.selection.dropped(first.items)),
            'composites': ", ".join(pipe.composites),
            'stage': pipe.stage.value,
        })
        return row


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _diagnose(pipe: ScalePipeline, items: Iterable[str], reverse_detect: bool = False) -> ReliabilityReport:
    """Run a diagnosis and print any warning as a transcript line."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        report = pipe.diagnose(items=list(items), reverse_detect=reverse_detect)
    for w in caught:
        print(f"  [WARN] {w.message}")
    print_reliability_report(report)
    return report


def _composite_name(variant: DatasetVariant, mode: str) -> str:
    stem = f"scale{variant.name[len('data'):]}" if variant.name.startswith("data") else f"{variant.name}_scale"
    if len(variant.composite_modes) == 1:
        return stem
    return stem + ("u" if mode == "unweighted" else "w")


def _print_short_form(report: ReliabilityReport) -> None:
    """Spearman-Brown projection of the scale shortened by one and two items."""
    k = report.n_items
    print("\n  Short-form projection (Spearman-Brown):")
    for keep in range(k - 1, 1, -1):
        projected = spearman_brown(report.alpha, keep / k)
        print(f"    {keep} items: projected alpha = {projected:.2f}")
    worst = report.alpha_if_dropped.min()
    print(f"  Lowest alpha after dropping any single item: {worst:.2f}")


# =============================================================================
# VARIANT RUNNER
# =============================================================================

def run_variant(
    variant: DatasetVariant,
    n: int = DEFAULT_N,
    seed: Optional[int] = DEFAULT_SEED,
    rule: DiscretizationRule = LIKERT_5,
) -> VariantResult:
    """
    Walk one variant through every pipeline step, printing as it goes.

    Errors propagate to the caller; ``run`` catches them per variant.
    """
    print_subsection_header(variant.title)
    result = VariantResult(name=variant.name)
    pipe = variant.pipeline(n=n, seed=seed, rule=rule)
    result.pipeline = pipe

    pipe.generate()
    if variant.discretize:
        pipe.discretize()
    digits = 2 if variant.discretize else 1

    if variant.discretize:
        print("\n# Descriptives")
        print_frame(describe(pipe.data), digits=2)
    print(f"\n# Correlation matrix (n = {pipe.n}), rounded to {digits} digit(s)")
    print_frame(rounded_correlation(pipe.data), digits=digits)

    print(f"\n# Cronbach's alpha for {variant.name}: {', '.join(variant.scale_items)}")
    result.reports.append(_diagnose(pipe, variant.scale_items))

    selection = variant.selection
    if selection.reverse:
        print("\n# Again, with automatic detection of negatively keyed items")
        detected = _diagnose(pipe, variant.scale_items, reverse_detect=True)
        result.reports.append(detected)
        flagged = ", ".join(detected.reversed_items) or "none"
        print(f"  [INFO] Flagged as reversed: {flagged}")

    best = result.reports[0].best_item_to_drop()
    if best is not None and not selection.reverse:
        print(f"  [INFO] Dropping {best} raises alpha to {result.reports[0].alpha_if_dropped[best]:.2f}")

    scale_items = pipe.select_items(selection)
    dropped = selection.dropped(variant.scale_items)
    if selection.reverse:
        print(f"\n[OK] Reverse-coded {', '.join(selection.reverse)} "
              f"({rule.scale_max + rule.scale_min} - item) as "
              f"{', '.join(i + selection.suffix for i in selection.reverse)}")
    if dropped:
        print(f"\n[OK] Dropped {', '.join(dropped)}")

    if selection.reverse or dropped:
        print(f"\n# Re-estimate Cronbach's alpha on the scale items: {', '.join(scale_items)}")
        result.reports.append(_diagnose(pipe, scale_items))

    if not selection.reverse and not dropped and variant.criterion is None and len(scale_items) > 3:
        _print_short_form(result.reports[-1])

    names = []
    for mode in variant.composite_modes:
        name = _composite_name(variant, mode)
        pipe.build_composite(mode, name=name)
        names.append(name)
        print(f"\n[OK] Built {mode} composite '{name}' from {', '.join(scale_items)}")
        if mode == "weighted":
            fa = pipe.factor_models[name]
            print("\n# Factor loadings (single factor, ML, regression scores)")
            print_frame(fa.loadings.assign(uniqueness=fa.uniquenesses), digits=3)
            print(f"  SS loadings: {fa.ss_loadings.iloc[0]:.3f}   "
                  f"Proportion Var: {fa.proportion_variance.iloc[0]:.3f}")
            print(f"  [INFO] Largest loading: {fa.dominant_item}")

    print(f"\n# Descriptives of {variant.name} with the scale")
    print_frame(describe(pipe.data), digits=2)

    if variant.criterion is not None:
        if len(names) > 1:
            print("\n# Correlation between the composites")
            print_frame(composite_correlation(pipe.data, names), digits=3)
        labels = {
            name: f"Model {i}: {mode.capitalize()} Scale"
            for i, (name, mode) in enumerate(zip(names, variant.composite_modes), start=1)
        }
        print(f"\n# Regression of {variant.criterion} on each composite")
        table = pipe.compare(variant.criterion, labels=labels)
        print(format_model_table(table))

    if variant.conclusion:
        print("\n# Conclusion:")
        for line in variant.conclusion.splitlines():
            print(f"# {line}")

    return result


# =============================================================================
# MAIN RUNNER
# =============================================================================

AVAILABLE_VARIANTS = {name: v.title for name, v in VARIANTS.items()}


def list_variants() -> None:
    """Print available dataset variants."""
    print("\nAvailable dataset variants:")
    for key, desc in AVAILABLE_VARIANTS.items():
        print(f"  {key:<8} - {desc}")


def run(
    variants: Optional[Iterable[str]] = None,
    n: int = DEFAULT_N,
    seed: Optional[int] = DEFAULT_SEED,
    output_dir: Optional[Union[str, Path]] = None,
    save_data: bool = False,
    verbose: bool = True,
    transcript: bool = True,
    rule: DiscretizationRule = LIKERT_5,
) -> Dict[str, VariantResult]:
    """
    Run the scale-construction examples.

    Parameters
    ----------
    variants : iterable of str, optional
        Variant names (default: all, in order).
    n : int
        Respondents per variant.
    seed : int
        Base seed; variant i uses seed + i.
    output_dir : path, optional
        Where the transcript and CSVs go (default: data/outputs/scale_construction).
    save_data : bool
        Write each variant's final item matrix to CSV.
    verbose : bool
        Echo the transcript to the console.
    transcript : bool
        Write ScaleConstruction.txt.

    Returns
    -------
    dict of name -> VariantResult
        A failing variant is reported with its error; the others still run.
    """
    names = list(VARIANTS) if variants is None else list(variants)
    unknown = [name for name in names if name not in VARIANTS]
    if unknown:
        raise ValueError(f"Unknown variant(s) {unknown}. Options: {list(VARIANTS)}")

    output_dir = Path(output_dir) if output_dir is not None else get_output_dir('scales')
    output_dir.mkdir(parents=True, exist_ok=True)

    results: Dict[str, VariantResult] = {}
    with ExitStack() as stack:
        if transcript:
            stack.enter_context(Transcript(output_dir / SCALE_TRANSCRIPT, echo=verbose))
        elif not verbose:
            stack.enter_context(redirect_stdout(io.StringIO()))

        print_section_header("SCALE CONSTRUCTION")
        print(datetime.now().strftime("%a %b %d %H:%M:%S %Y"))
        print(f"N = {n} per dataset, base seed = {seed}, "
              f"Likert breaks = {list(rule.breaks)} (right-closed: {rule.right})")

        part = None
        for name in names:
            weighted = "weighted" in VARIANTS[name].composite_modes
            if weighted != part:
                part = weighted
                print_section_header(
                    "Scale Construction by Unweighted and Weighted Averaging" if weighted
                    else "Scale Construction by Simple Averaging"
                )
            try:
                result = run_variant(VARIANTS[name], n=n, seed=seed, rule=rule)
            except (SurveyMethodsError, KeyError, ValueError) as exc:
                print(f"\n[ERROR] {name}: {exc}")
                result = VariantResult(name=name, error=str(exc))
            results[name] = result

            if save_data and result.ok:
                path = output_dir / f"{name}.csv"
                result.pipeline.data.to_csv(path, index=False, encoding='utf-8-sig')
                print(f"\n[OK] Saved {path.name}")

        summary = pd.DataFrame([r.summary() for r in results.values()])
        summary.to_csv(output_dir / "scale_summary.csv", index=False, encoding='utf-8-sig')

        n_failed = sum(not r.ok for r in results.values())
        print_section_header("DONE")
        print(f"Variants run: {len(results)}  failed: {n_failed}")
        print(f"Results saved to: {output_dir}")

    return results


if __name__ == "__main__":
    run()
