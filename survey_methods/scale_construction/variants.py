"""
Dataset Variants
================

The five teaching datasets. Each pairs a target correlation matrix with the
item decision a researcher would take after reading its reliability report:

    data1  clean 3-item scale, continuous, r = .50 (alpha = .75)
    data2  x1 negatively keyed                 -> reverse-code x1
    data3  x1 unrelated to the other items     -> drop x1
    data4  redundant items, r = .80            -> keep all (short-form candidate)
    data5  unequal loadings + criterion y      -> unweighted vs weighted scale

Each variant draws from its own seed (base seed + position), so variants
never share random state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from survey_methods.preprocessing.constants import DEFAULT_N, DEFAULT_SEED
from survey_methods.preprocessing.generation import CovarianceSpec
from survey_methods.preprocessing.likert import LIKERT_5, DiscretizationRule

from .pipeline import ItemSelection, ScalePipeline


@dataclass(frozen=True)
class DatasetVariant:
    """Configuration of one teaching dataset."""

    name: str
    title: str
    spec: CovarianceSpec
    discretize: bool
    scale_items: Tuple[str, ...]
    selection: ItemSelection
    criterion: Optional[str] = None
    composite_modes: Tuple[str, ...] = ("unweighted",)
    conclusion: str = ""

    def pipeline(
        self,
        n: int = DEFAULT_N,
        seed: Optional[int] = DEFAULT_SEED,
        rule: DiscretizationRule = LIKERT_5,
    ) -> ScalePipeline:
        """New pipeline for this variant, seeded with ``variant_seed``."""
        return ScalePipeline(self.spec, n=n, seed=variant_seed(self.name, seed), rule=rule, name=self.name)


# =============================================================================
# CORRELATION MATRICES
# =============================================================================

_DATA2 = np.array([
    [1.00, -0.50, -0.50, -0.50],    # x1 is negatively keyed
    [-0.50, 1.00, 0.50, 0.50],
    [-0.50, 0.50, 1.00, 0.50],
    [-0.50, 0.50, 0.50, 1.00],
])

_DATA3 = np.array([
    [1.00, 0.00, 0.00, 0.00],       # x1 is a bad item
    [0.00, 1.00, 0.50, 0.50],
    [0.00, 0.50, 1.00, 0.50],
    [0.00, 0.50, 0.50, 1.00],
])

_DATA5 = np.array([
    [1.00, 0.50, 0.50, 0.50, 0.50, 0.70],   # x1 carries the most true score
    [0.50, 1.00, 0.10, 0.20, 0.30, 0.30],
    [0.50, 0.10, 1.00, 0.30, 0.40, 0.20],
    [0.50, 0.20, 0.30, 1.00, 0.10, 0.10],
    [0.50, 0.30, 0.40, 0.10, 1.00, 0.10],
    [0.70, 0.30, 0.20, 0.10, 0.10, 1.00],   # y: external criterion
])

_FOUR = ("x1", "x2", "x3", "x4")
_FIVE = ("x1", "x2", "x3", "x4", "x5")


VARIANTS: Dict[str, DatasetVariant] = {
    "data1": DatasetVariant(
        name="data1",
        title="Example 1: Class example, using data1",
        spec=CovarianceSpec.equicorrelated(3, 0.5),
        discretize=False,
        scale_items=("x1", "x2", "x3"),
        selection=ItemSelection(keep=("x1", "x2", "x3")),
        conclusion=(
            "Three items with r = .50 give standardized alpha = 3 x .5 / (1 + 2 x .5) = .75.\n"
            "All items are kept and averaged."
        ),
    ),
    "data2": DatasetVariant(
        name="data2",
        title="Example 2: x1 = Reversed item, using data2",
        spec=CovarianceSpec(_DATA2),
        discretize=True,
        scale_items=_FOUR,
        selection=ItemSelection(keep=_FOUR, reverse=("x1",)),
        conclusion=(
            "x1 is a good item, but negatively keyed.\n"
            "Action:\n"
            "1. Reverse code x1 (6 - x1) before making a scale.\n"
            "2. Document and report that x1 was reverse coded."
        ),
    ),
    "data3": DatasetVariant(
        name="data3",
        title="Example 3: x1 = Bad loading item, using data3",
        spec=CovarianceSpec(_DATA3),
        discretize=True,
        scale_items=_FOUR,
        selection=ItemSelection(keep=("x2", "x3", "x4")),
        conclusion=(
            "x1 is a bad item. It strongly reduces the reliability of the scale.\n"
            "Action:\n"
            "1. Drop x1 before making a scale.\n"
            "2. Document and report that x1 was dropped and why (was it hard to comprehend?)."
        ),
    ),
    "data4": DatasetVariant(
        name="data4",
        title="Example 4: Items correlate highly, items could be dropped, using data4",
        spec=CovarianceSpec.equicorrelated(4, 0.8),
        discretize=True,
        scale_items=_FOUR,
        selection=ItemSelection(keep=_FOUR),
        conclusion=(
            "Alpha is very high and dropping an item barely lowers it.\n"
            "Action:\n"
            "1. If the survey has already been conducted: fine.\n"
            "2. If this was a pilot and a short-form measure is needed, consider a\n"
            "   three-item (or even two-item) scale.\n"
            "3. Always report which items were dropped, why, and with which effect(s)."
        ),
    ),
    "data5": DatasetVariant(
        name="data5",
        title="Example 5: Unweighted and weighted scales, using data5",
        spec=CovarianceSpec(_DATA5, names=_FIVE + ("y",)),
        discretize=True,
        scale_items=_FIVE,
        selection=ItemSelection(keep=_FIVE),
        criterion="y",
        composite_modes=("unweighted", "weighted"),
        conclusion=(
            "1. When items load unequally on their construct, weighted and unweighted\n"
            "   scales do not correlate perfectly.\n"
            "2. Their relation with an external criterion such as y may then differ.\n"
            "Action:\n"
            "1. Published, validated scale with high alpha: use the unweighted scale.\n"
            "2. New or ad hoc scale, modest alpha, unequal loadings: consider a weighted scale.\n"
            "3. In all cases, report which analyses were done and why this scale was used."
        ),
    ),
}


def variant_seed(name: str, seed: Optional[int] = DEFAULT_SEED) -> Optional[int]:
    """Seed for one variant: base seed plus its position in VARIANTS."""
    if name not in VARIANTS:
        raise KeyError(f"Unknown variant: {name}. Valid variants: {list(VARIANTS)}")
    if seed is None:
        return None
    return seed + list(VARIANTS).index(name)


def get_variant(name: str) -> DatasetVariant:
    """Look up a variant by name."""
    if name not in VARIANTS:
        raise KeyError(f"Unknown variant: {name}. Valid variants: {list(VARIANTS)}")
    return VARIANTS[name]
