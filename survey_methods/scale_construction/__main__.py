"""
CLI entry point for `python -m survey_methods.scale_construction`.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from survey_methods.preprocessing.constants import DEFAULT_N, DEFAULT_SEED

from . import AVAILABLE_VARIANTS, list_variants, run


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Scale Construction Examples (data1-data5)")
    parser.add_argument("--variant", "-v", action="append", default=None,
                        help="Variant to run (repeatable). Default: all.")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Base random seed.")
    parser.add_argument("--n", type=int, default=DEFAULT_N, help="Respondents per dataset.")
    parser.add_argument("--output-dir", "-o", type=str, default=None, help="Output directory.")
    parser.add_argument("--save-data", action="store_true", help="Write each dataset to CSV.")
    parser.add_argument("--quiet", "-q", action="store_true", help="Write the transcript file only.")
    parser.add_argument("--list", action="store_true", help="List available variants and exit.")

    args = parser.parse_args(argv)

    if args.list:
        list_variants()
        return 0

    for name in args.variant or []:
        if name not in AVAILABLE_VARIANTS:
            parser.error(f"Unknown variant '{name}'. Use --list to inspect options.")

    results = run(
        variants=args.variant,
        n=args.n,
        seed=args.seed,
        output_dir=args.output_dir,
        save_data=args.save_data,
        verbose=not args.quiet,
    )
    return 1 if any(not r.ok for r in results.values()) else 0


if __name__ == "__main__":
    sys.exit(main())
