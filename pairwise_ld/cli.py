"""
Command line interface to compute an LD matrix between rsids.

Example::

    pairwise-ld rs429358 rs7412 rs769449 --population CEU --population GBR

"""

import argparse
import asyncio
import sys
import time

import httpx

from . import vcf
from .errors import LDError
from .matrix import format_delimited, get_export_tables, write_delimited
from .pipeline import get_linkage_disequilibrium
from .sources import (DEFAULT_PANEL, EXAMPLE_SNPS, GENOME_BUILDS,
                      load_population_panel)
from .vcf import STRATEGIES


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Pairwise linkage disequilibrium (D' and r²) between "
                    "variants."
    )

    parser.add_argument("rsids", type=str, nargs="*")
    parser.add_argument(
        "--population", "-p", type=str, action="append", required=True,
        dest="populations",
        help="Population or super population code (can be repeated)."
    )
    parser.add_argument(
        "--genome-build", "-g", type=str, default="GRCh37",
        choices=list(GENOME_BUILDS)
    )
    parser.add_argument("--panel", type=str, default=DEFAULT_PANEL)
    parser.add_argument(
        "--strategy", type=str, default="sequential", choices=STRATEGIES
    )
    parser.add_argument("--max-concurrency", type=int, default=8)
    parser.add_argument("--output-prefix", "-o", type=str, default=None)
    parser.add_argument(
        "--example", action="store_true",
        help="Use a few variants from the APOE region."
    )
    parser.add_argument("--quiet", "-q", action="store_true")

    args = parser.parse_args(argv)

    if args.example:
        args.rsids = EXAMPLE_SNPS

    if not args.rsids:
        parser.error("at least one rsid is required (or use --example)")

    return args


def main(argv=None):
    args = parse_args(argv)
    vcf.set_verbose(not args.quiet)

    t0 = time.time()
    try:
        panel = load_population_panel(args.panel)
        matrix = asyncio.run(get_linkage_disequilibrium(
            args.rsids,
            args.populations,
            genome_build=args.genome_build,
            panel=panel,
            strategy=args.strategy,
            max_concurrency=args.max_concurrency,
            progress=not args.quiet,
        ))

    except (LDError, ValueError, httpx.HTTPError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    d_prime, r_squared = get_export_tables(matrix)

    print("D'")
    print(format_delimited(d_prime, "\t").replace("\r\n", "\n"))
    print()
    print("r²")
    print(format_delimited(r_squared, "\t").replace("\r\n", "\n"))

    if args.output_prefix is not None:
        write_delimited(d_prime, f"{args.output_prefix}_dprime.txt")
        write_delimited(r_squared, f"{args.output_prefix}_rsquared.txt")

    if vcf.VERBOSE:
        print(f"Elapsed time: {time.time() - t0:.2f} s")

    return 0


if __name__ == "__main__":
    sys.exit(main())
