"""
Scale-Construction Pipeline
===========================

One dataset variant walked through the scale-construction steps in order:

    GENERATED -> DISCRETIZED -> DIAGNOSED -> ITEMS_SELECTED -> COMPOSITED -> COMPARED

- Discretization may be skipped (continuous items go straight to diagnosis).
- Diagnosis may be repeated while DIAGNOSED or ITEMS_SELECTED, e.g. to
  check alpha again after reverse-coding; the stage does not move.
- Several composites may be built while COMPOSITED.
- COMPARED is terminal.

Any other call raises PipelineStateError. The item-selection decision is an
explicit input (ItemSelection); the pipeline never infers it from the
reliability report.

Usage:
    pipe = ScalePipeline(spec, n=500, seed=12345, name='data2')
    pipe.generate()
    pipe.discretize()
    report = pipe.diagnose(reverse_detect=True)
    pipe.select_items(ItemSelection(keep=('x1', 'x2', 'x3', 'x4'), reverse=('x1',)))
    pipe.build_composite('unweighted', name='scale2')
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import pandas as pd

from survey_methods.preprocessing.constants import DEFAULT_N, DEFAULT_SEED
from survey_methods.preprocessing.errors import PipelineStateError
from survey_methods.preprocessing.generation import CovarianceSpec, generate
from survey_methods.preprocessing.likert import LIKERT_5, DiscretizationRule, discretize, reverse_code
from survey_methods.validity_reliability import ReliabilityReport, compute_alpha

from .comparison import compare_composites, fit_criterion_models
from .composites import COMPOSITE_MODES, FactorComposite, unweighted_composite, weighted_composite


class PipelineStage(str, Enum):
    """Stages of one dataset variant."""

    GENERATED = "generated"
    DISCRETIZED = "discretized"
    DIAGNOSED = "diagnosed"
    ITEMS_SELECTED = "items_selected"
    COMPOSITED = "composited"
    COMPARED = "compared"


@dataclass(frozen=True)
class ItemSelection:
    """
    Caller's decision on which items form the scale.

    Attributes
    ----------
    keep : tuple of str
        Items in the scale (original names). Items not listed are dropped.
    reverse : tuple of str
        Subset of ``keep`` to reverse-code. Each is appended as a new column
        ``<item><suffix>`` and the scale uses that column.
    suffix : str
        Suffix for reverse-coded columns.
    """

    keep: Tuple[str, ...]
    reverse: Tuple[str, ...] = ()
    suffix: str = "r"

    def __post_init__(self):
        keep = tuple(self.keep)
        reverse = tuple(self.reverse)
        if not keep:
            raise ValueError("ItemSelection needs at least one item")
        if len(set(keep)) != len(keep):
            raise ValueError(f"Duplicate items in selection: {keep}")
        stray = [item for item in reverse if item not in keep]
        if stray:
            raise ValueError(f"Reversed items must also be kept: {stray}")
        if not self.suffix:
            raise ValueError("Reverse-coding suffix must be non-empty")
        object.__setattr__(self, "keep", keep)
        object.__setattr__(self, "reverse", reverse)

    @property
    def scale_items(self) -> List[str]:
        """Columns the composite is built from."""
        return [f"{item}{self.suffix}" if item in self.reverse else item for item in self.keep]

    def dropped(self, available: Iterable[str]) -> List[str]:
        """Available items left out of the scale."""
        return [item for item in available if item not in self.keep]


class ScalePipeline:
    """
    Owns the item matrix of one dataset variant and enforces step order.

    Parameters
    ----------
    spec : CovarianceSpec
        Target moments for the generator.
    n : int
        Respondents.
    seed : int
        Generator seed.
    rule : DiscretizationRule
        Likert cut points.
    name : str
        Variant name used in messages.
    """

    def __init__(
        self,
        spec: CovarianceSpec,
        n: int = DEFAULT_N,
        seed: Optional[int] = DEFAULT_SEED,
        rule: DiscretizationRule = LIKERT_5,
        name: str = "data",
    ):
        self.spec = spec
        self.n = n
        self.seed = seed
        self.rule = rule
        self.name = name

        self.stage: Optional[PipelineStage] = None
        self.history: List[Tuple[Optional[PipelineStage], PipelineStage, str]] = []
        self.reports: List[ReliabilityReport] = []
        self.selection: Optional[ItemSelection] = None
        self.composites: Dict[str, str] = {}
        self.factor_models: Dict[str, FactorComposite] = {}
        self.models: Dict[str, object] = {}
        self.comparison: Optional[pd.DataFrame] = None
        self._data: Optional[pd.DataFrame] = None
        self._discretized_columns: Set[str] = set()

    # -------------------------------------------------------------------------
    # state handling
    # -------------------------------------------------------------------------

    def _require(self, action: str, allowed: Sequence[Optional[PipelineStage]]) -> None:
        if self.stage not in allowed:
            current = self.stage.value if self.stage is not None else "new"
            expected = ", ".join(s.value if s is not None else "new" for s in allowed)
            raise PipelineStateError(
                f"{self.name}: cannot {action} at stage '{current}' (allowed: {expected})"
            )

    def _advance(self, to: PipelineStage, action: str) -> None:
        self.history.append((self.stage, to, action))
        self.stage = to

    @property
    def data(self) -> pd.DataFrame:
        """Copy of the current item matrix."""
        if self._data is None:
            raise PipelineStateError(f"{self.name}: no data generated yet")
        return self._data.copy()

    @property
    def items(self) -> List[str]:
        """Item columns of the generated matrix."""
        return list(self.spec.names)

    @property
    def last_report(self) -> Optional[ReliabilityReport]:
        return self.reports[-1] if self.reports else None

    # -------------------------------------------------------------------------
    # steps
    # -------------------------------------------------------------------------

    def generate(self) -> pd.DataFrame:
        """Draw the continuous item matrix with exact sample moments."""
        self._require("generate", [None])
        self._data = generate(self.spec, self.n, seed=self.seed)
        self._advance(PipelineStage.GENERATED, "generate")
        return self.data

    def discretize(self, columns: Optional[Iterable[str]] = None) -> pd.DataFrame:
        """Bin the (listed) continuous columns onto the Likert scale."""
        self._require("discretize", [PipelineStage.GENERATED])
        columns = list(self._data.columns) if columns is None else list(columns)
        self._data = discretize(self._data, self.rule, columns=columns)
        self._discretized_columns = set(columns)
        self._advance(PipelineStage.DISCRETIZED, "discretize")
        return self.data

    def diagnose(self, items: Optional[Sequence[str]] = None, reverse_detect: bool = False) -> ReliabilityReport:
        """
        Compute alpha and item diagnostics.

        Defaults to the selected scale items once a selection exists,
        otherwise to every generated item.
        """
        self._require("diagnose", [
            PipelineStage.GENERATED,
            PipelineStage.DISCRETIZED,
            PipelineStage.DIAGNOSED,
            PipelineStage.ITEMS_SELECTED,
        ])
        if items is None:
            items = self.selection.scale_items if self.selection is not None else self.items
        report = compute_alpha(
            self._data,
            items=items,
            reverse_detect=reverse_detect,
            scale_min=self.rule.scale_min,
            scale_max=self.rule.scale_max,
        )
        self.reports.append(report)
        if self.stage in (PipelineStage.GENERATED, PipelineStage.DISCRETIZED):
            self._advance(PipelineStage.DIAGNOSED, "diagnose")
        return report

    def select_items(self, selection: ItemSelection) -> List[str]:
        """
        Apply the caller's keep/reverse decision.

        Reverse-coded items are appended as new columns. Discretized items
        use the Likert bounds; continuous items are mirrored within their
        observed range.
        """
        self._require("select items", [PipelineStage.DIAGNOSED])
        missing = [item for item in selection.keep if item not in self._data.columns]
        if missing:
            raise KeyError(f"{self.name}: items not found: {missing}")

        for item in selection.reverse:
            values = self._data[item]
            if item in self._discretized_columns:
                reversed_values = reverse_code(values, self.rule.scale_min, self.rule.scale_max)
            else:
                reversed_values = reverse_code(values, values.min(), values.max())
            self._data[f"{item}{selection.suffix}"] = reversed_values

        self.selection = selection
        self._advance(PipelineStage.ITEMS_SELECTED, "select items")
        return selection.scale_items

    def build_composite(self, mode: str = "unweighted", name: Optional[str] = None) -> pd.Series:
        """Append an unweighted or factor-weighted composite column."""
        self._require("build a composite", [PipelineStage.ITEMS_SELECTED, PipelineStage.COMPOSITED])
        if mode not in COMPOSITE_MODES:
            raise ValueError(f"Unknown composite mode: {mode}. Valid modes: {COMPOSITE_MODES}")
        name = name or ("scale" if mode == "unweighted" else "scale_w")
        if name in self._data.columns:
            raise ValueError(f"{self.name}: column '{name}' already exists")

        items = self.selection.scale_items
        if mode == "unweighted":
            scores = unweighted_composite(self._data, items, name=name)
        else:
            fa = weighted_composite(self._data, items, name=name)
            self.factor_models[name] = fa
            scores = fa.scores

        self._data[name] = scores
        self.composites[name] = mode
        if self.stage is PipelineStage.ITEMS_SELECTED:
            self._advance(PipelineStage.COMPOSITED, "build composite")
        return scores.copy()

    def compare(self, criterion: str, labels: Optional[Dict[str, str]] = None) -> pd.DataFrame:
        """
        Regress the criterion on every composite built so far.

        Parameters
        ----------
        criterion : str
            Outcome column (must not be a scale item).
        labels : dict of composite -> display label, optional
        """
        self._require("compare", [PipelineStage.COMPOSITED])
        if criterion not in self._data.columns:
            raise KeyError(f"{self.name}: criterion '{criterion}' not found")
        if criterion in self.selection.scale_items:
            raise ValueError(f"{self.name}: criterion '{criterion}' is one of the scale items")

        labels = labels or {}
        mapping = {labels.get(col, col): col for col in self.composites}
        self.models = fit_criterion_models(self._data, criterion, mapping)
        self.comparison = compare_composites(self._data, criterion, mapping)
        self._advance(PipelineStage.COMPARED, "compare")
        return self.comparison
