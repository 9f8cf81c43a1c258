"""
Shared constants for data generation and scale construction.

Paths, seeds, and the Likert cut points are defined once here so every
runner and every dataset variant uses the same settings.
"""

from pathlib import Path

# Directory paths
BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"
RAW_DIR = DATA_DIR / "raw"
ANALYSIS_OUTPUT_DIR = DATA_DIR / "outputs"

SCALE_OUTPUT_DIR = ANALYSIS_OUTPUT_DIR / "scale_construction"
MULTILEVEL_OUTPUT_DIR = ANALYSIS_OUTPUT_DIR / "multilevel"

# Stata files used by the multilevel demonstrations
SCHOOLS_DATA_PATH = RAW_DIR / "schools.dta"
RETAIL_DATA_PATH = RAW_DIR / "retail.dta"

# Data generation
DEFAULT_SEED = 12345          # replicates across platforms
DEFAULT_N = 500               # respondents per dataset variant
PSD_TOLERANCE = 1e-6          # relative eigenvalue tolerance for PSD check
SYMMETRY_TOLERANCE = 1e-10

# Likert discretization (right-closed intervals, outer bounds are +/- inf)
LIKERT_BREAKS = (-1.5, -0.5, 0.5, 1.5)
LIKERT_LABELS = (1, 2, 3, 4, 5)
SCALE_MIN = 1
SCALE_MAX = 5

# Reliability interpretation (lower bounds)
ALPHA_THRESHOLDS = {
    "Excellent": 0.9,
    "Good": 0.8,
    "Acceptable": 0.7,
    "Questionable": 0.6,
    "Poor": 0.5,
}

# Transcript file names
SCALE_TRANSCRIPT = "ScaleConstruction.txt"
SCHOOLS_TRANSCRIPT = "MultilevelSchools.txt"
SCHOOLS_PLOTS = "MultilevelSchoolsPlots.pdf"
RETAIL_TRANSCRIPT = "MultilevelRetail.txt"
RETAIL_PLOTS = "MultilevelRetailPlots.pdf"


def get_output_dir(kind: str) -> Path:
    """Return the output directory for 'scales' or 'multilevel' runs.

    Args:
        kind: 'scales' or 'multilevel'

    Returns:
        Path to the directory (created if needed)
    """
    dirs = {
        'scales': SCALE_OUTPUT_DIR,
        'multilevel': MULTILEVEL_OUTPUT_DIR,
    }
    if kind not in dirs:
        raise ValueError(f"Unknown output kind: {kind}. Valid kinds: {set(dirs)}")
    output_dir = dirs[kind]
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir
