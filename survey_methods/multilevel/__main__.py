"""
CLI entry point for `python -m survey_methods.multilevel`.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from survey_methods.preprocessing.constants import DEFAULT_SEED

from . import list_datasets, run


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Multilevel Regression Examples")
    parser.add_argument("--dataset", "-d", type=str, default="all",
                        choices=["all", "schools", "retail"], help="Example to run.")
    parser.add_argument("--schools-path", type=str, default=None, help="Path to schools.dta.")
    parser.add_argument("--retail-path", type=str, default=None, help="Path to retail.dta.")
    parser.add_argument("--output-dir", "-o", type=str, default=None, help="Output directory.")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Seed for simulated stand-in data.")
    parser.add_argument("--no-plots", action="store_true", help="Skip the PDF plots.")
    parser.add_argument("--quiet", "-q", action="store_true", help="Write the transcript files only.")
    parser.add_argument("--list", action="store_true", help="List available datasets and exit.")

    args = parser.parse_args(argv)

    if args.list:
        list_datasets()
        return 0

    results = run(
        dataset=args.dataset,
        output_dir=args.output_dir,
        schools_path=args.schools_path,
        retail_path=args.retail_path,
        seed=args.seed,
        verbose=not args.quiet,
        plots=not args.no_plots,
    )
    return 1 if any("error" in r for r in results.values()) else 0


if __name__ == "__main__":
    sys.exit(main())
