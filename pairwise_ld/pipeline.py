"""
End to end computation of an LD matrix from a list of rsids.
"""

from typing import List, Mapping, Optional, Sequence
import asyncio
import threading
import time

from . import vcf
from .coordinates import CoordinateResolver, VariantQuery
from .haplotypes import extract_haplotypes, merge_population_samples
from .ld import UNDEFINED_LD_VALUE, compute_pairwise_ld
from .matrix import LDMatrix, as_matrix
from .sources import get_genome_build, load_population_panel
from .vcf import (GenotypeRecord, GenotypeSource, TabixGenotypeSource,
                  VariantLocator)


async def open_genotype_source(url: str) -> TabixGenotypeSource:
    """Opens a tabix-indexed VCF without blocking the event loop.

    If the caller is cancelled while the header is being read, the source is
    closed as soon as it is opened.

    """
    lock = threading.Lock()
    state = {"cancelled": False, "source": None}

    def _open():
        source = TabixGenotypeSource(url)
        with lock:
            if state["cancelled"]:
                source.close()
                return None

            state["source"] = source

        return source

    try:
        return await asyncio.to_thread(_open)

    except asyncio.CancelledError:
        with lock:
            state["cancelled"] = True
            if state["source"] is not None:
                state["source"].close()
        raise


async def resolve_variants(
    queries: Sequence[VariantQuery],
    source: GenotypeSource,
    assembly: str,
    strategy: str = "sequential",
    max_concurrency: int = 8,
) -> List[GenotypeRecord]:
    """Genotype records for the queries, sorted by position."""
    locator = VariantLocator(
        source, assembly, strategy=strategy, max_concurrency=max_concurrency
    )
    return await locator.locate_records(queries)


async def get_linkage_disequilibrium(
    rsids: Sequence[str],
    populations: Sequence[str],
    genome_build: str = "GRCh37",
    panel: Optional[Mapping[str, Sequence[str]]] = None,
    strategy: str = "sequential",
    max_concurrency: int = 8,
    resolver: Optional[CoordinateResolver] = None,
    source: Optional[GenotypeSource] = None,
    undefined: float = UNDEFINED_LD_VALUE,
    progress: bool = False,
) -> LDMatrix:
    """Pairwise D' and r² between the rsids in the selected populations.

    The genotype source is opened from the genome build's URL unless one is
    provided. Any error aborts the computation.

    """
    t0 = time.time()
    build = get_genome_build(genome_build)

    if resolver is None:
        resolver = CoordinateResolver()

    queries = await resolver.resolve(rsids)
    vcf.validate_snps(queries)

    if panel is None:
        panel = await asyncio.to_thread(load_population_panel)

    samples = merge_population_samples(populations, panel)

    chromosome = queries[0].chromosome
    owns_source = source is None
    if owns_source:
        source = await open_genotype_source(build.url(chromosome))

    try:
        variants = await resolve_variants(
            queries, source, build.assembly,
            strategy=strategy, max_concurrency=max_concurrency
        )
    finally:
        if owns_source:
            source.close()

    extract_haplotypes(variants, samples)
    results = compute_pairwise_ld(
        variants, undefined=undefined, progress=progress
    )

    if vcf.VERBOSE:
        print(
            f"Computed LD for {len(results)} pairs of {len(variants)} "
            f"variants in {len(samples)} samples ({time.time() - t0:.2f}s)"
        )

    return as_matrix(results)
