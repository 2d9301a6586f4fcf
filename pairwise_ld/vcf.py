"""
Access to tabix-indexed VCF files and lookup of the records matching
variant queries.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import asyncio
import concurrent.futures
import threading
import time

import cyvcf2

from .coordinates import VariantQuery
from .errors import MissingVariantError, ValidationError


VERBOSE = True

# Number of bases searched on either side of the query position.
SEARCH_WINDOW = 10

STRATEGIES = ("sequential", "concurrent")


def set_verbose(b: bool):
    global VERBOSE
    VERBOSE = b


@dataclass
class GenotypeRecord:
    id: Optional[str]
    chromosome: str
    position: int
    ref: str
    alts: Tuple[str, ...]
    genotypes_by_sample: Dict[str, str] = field(default_factory=dict)

    # Filled in by haplotypes.extract_haplotypes.
    haplotypes_by_sample: Dict[str, Tuple[str, str]] = field(
        default_factory=dict
    )

    @property
    def alt(self) -> str:
        return self.alts[0]

    @property
    def is_biallelic(self) -> bool:
        return len(self.alts) == 1

    def __repr__(self):
        return (
            f"<GenotypeRecord {self.id} - {self.chromosome}:{self.position} "
            f"{self.ref}>{','.join(self.alts)}>"
        )


def _format_gt(gt) -> str:
    """Formats a cyvcf2 genotype (e.g. [0, 1, True]) as a VCF GT string."""
    *alleles, phased = gt
    sep = "|" if phased else "/"
    return sep.join("." if a < 0 else str(a) for a in alleles)


def record_from_variant(v, samples: Sequence[str]) -> GenotypeRecord:
    """Converts a cyvcf2.Variant to a GenotypeRecord."""
    # Only the first identifier is kept for records like 'rs1;rs2'.
    variant_id = v.ID.split(";")[0] if v.ID else None

    return GenotypeRecord(
        id=variant_id,
        chromosome=v.CHROM,
        position=v.POS,
        ref=v.REF,
        alts=tuple(v.ALT),
        genotypes_by_sample={
            sample: _format_gt(gt) for sample, gt in zip(samples, v.genotypes)
        }
    )


class GenotypeSource(object):
    """Positionally queryable source of genotype records."""
    def get_samples(self) -> List[str]:
        raise NotImplementedError()

    def query(self, chrom: str, start: int, end: int) -> List[GenotypeRecord]:
        raise NotImplementedError()

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class TabixGenotypeSource(GenotypeSource):
    """Genotypes from a bgzipped and tabix-indexed VCF.

    The filename can be a local path or a http(s) URL, in which case htslib
    only fetches the blocks required by each region query. The header is
    parsed once on initialization and shared by all subsequent queries.

    """
    def __init__(self, filename: str):
        self.filename = filename

        if VERBOSE:
            print(f"Loading VCF header: {filename}")

        self._vcf = cyvcf2.VCF(filename, lazy=True)
        self.samples = self._vcf.samples

        # An htslib iterator is not safe to use from multiple threads.
        self._lock = threading.Lock()
        self._seqnames: Optional[set] = None

    def get_samples(self):
        return self.samples

    def _contig_name(self, chrom: str) -> str:
        # Handle both the '1' and 'chr1' naming conventions.
        if self._seqnames is None:
            self._seqnames = set(self._vcf.seqnames)

        seqnames = self._seqnames
        if not seqnames or chrom in seqnames:
            return chrom

        if chrom.startswith("chr") and chrom[3:] in seqnames:
            return chrom[3:]

        if f"chr{chrom}" in seqnames:
            return f"chr{chrom}"

        return chrom

    def query(self, chrom, start, end):
        with self._lock:
            region = f"{self._contig_name(chrom)}:{max(start, 1)}-{end}"
            return [
                record_from_variant(v, self.samples)
                for v in self._vcf(region)
            ]

    def close(self):
        # Wait for a region read in progress.
        with self._lock:
            self._vcf.close()


@dataclass(frozen=True)
class LocateResult:
    """Outcome of the lookup of a single query.

    ``record`` is None when no acceptable record was found in the window.

    """
    query: VariantQuery
    assembly: str
    record: Optional[GenotypeRecord] = None
    window: int = SEARCH_WINDOW

    @property
    def found(self) -> bool:
        return self.record is not None

    def unwrap(self) -> GenotypeRecord:
        if self.record is None:
            raise MissingVariantError(self.query, self.assembly, self.window)

        return self.record


def validate_snps(queries: Sequence[VariantQuery]):
    chromosomes = {query.chromosome for query in queries}

    if len(chromosomes) > 1:
        raise ValidationError(
            "All variants must be on the same chromosome, found multiple "
            f"chromosomes: {', '.join(sorted(chromosomes))}."
        )

    if len(queries) < 2:
        raise ValidationError(
            "insufficient input: at least two variants are required."
        )


def is_match(record: GenotypeRecord, query: VariantQuery, position: int):
    """Same id or exact position, and a single alternate allele."""
    return (
        (record.id == query.id or record.position == position) and
        record.is_biallelic
    )


def sort_by_position(records: Iterable[GenotypeRecord]) -> List[GenotypeRecord]:
    return sorted(records, key=lambda record: record.position)


class VariantLocator(object):
    """Finds the genotype records matching variant queries.

    The same source is shared by all the lookups. With the "concurrent"
    strategy, at most ``max_concurrency`` lookups are in flight at a time.

    """
    def __init__(
        self,
        source: GenotypeSource,
        assembly: str,
        strategy: str = "sequential",
        max_concurrency: int = 8,
        window: int = SEARCH_WINDOW,
    ):
        if strategy not in STRATEGIES:
            raise ValueError(strategy)

        if max_concurrency < 1:
            raise ValueError(
                f"max_concurrency must be positive (got {max_concurrency})."
            )

        self.source = source
        self.assembly = assembly
        self.strategy = strategy
        self.max_concurrency = max_concurrency
        self.window = window

    def find_variant(self, query: VariantQuery) -> LocateResult:
        position = query.position(self.assembly)

        candidates = self.source.query(
            query.chromosome, position - self.window, position + self.window
        )

        for record in candidates:
            if is_match(record, query, position):
                if not record.id:
                    record.id = query.id

                return LocateResult(query, self.assembly, record, self.window)

        return LocateResult(query, self.assembly, None, self.window)

    async def locate(
        self,
        query: VariantQuery,
        executor: Optional[concurrent.futures.Executor] = None
    ) -> LocateResult:
        if executor is None:
            return await asyncio.to_thread(self.find_variant, query)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(executor, self.find_variant, query)

    async def locate_all(
        self,
        queries: Sequence[VariantQuery]
    ) -> List[LocateResult]:
        """Looks up all the queries.

        The results are in the order of the queries. Any error cancels the
        lookups that are still pending. When this returns or raises, no
        region read is running anymore and the source can be closed.

        """
        t0 = time.time()

        n_workers = 1 if self.strategy == "sequential" else self.max_concurrency
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=n_workers
        )

        try:
            if self.strategy == "sequential":
                results = []
                for query in queries:
                    results.append(await self.locate(query, executor))

            else:
                tasks = [
                    asyncio.ensure_future(self.locate(query, executor))
                    for query in queries
                ]
                try:
                    results = await asyncio.gather(*tasks)

                except BaseException:
                    for task in tasks:
                        task.cancel()

                    await asyncio.gather(*tasks, return_exceptions=True)
                    raise

        finally:
            # Reads in progress can't be interrupted, wait for them.
            executor.shutdown(wait=True, cancel_futures=True)

        if VERBOSE:
            n_found = sum(result.found for result in results)
            print(
                f"Located {n_found}/{len(queries)} variants "
                f"({self.strategy}, {time.time() - t0:.2f}s)"
            )

        return list(results)

    async def locate_records(
        self,
        queries: Sequence[VariantQuery]
    ) -> List[GenotypeRecord]:
        """Records for all the queries, sorted by position.

        Raises MissingVariantError for the first query (in input order) that
        could not be found.

        """
        results = await self.locate_all(queries)
        return sort_by_position(result.unwrap() for result in results)
