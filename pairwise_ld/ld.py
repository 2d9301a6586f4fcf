"""
Pairwise linkage disequilibrium (D' and r²) from phased haplotypes.

For two biallelic sites, every chromosome copy carries one of four compound
haplotypes. Their counts are assigned to the slots p1, p2, q1 and q2 by
sorting the compound haplotypes lexicographically, e.g. for sites A/G and
C/T::

    p1 = AC    p2 = AT    q1 = GC    q2 = GT

D and its normalizations are invariant to scaling, so counts are used
directly instead of frequencies.

"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import itertools
import math

from tqdm import tqdm

from .vcf import GenotypeRecord


# Value reported when a statistic is undefined (fewer than four compound
# haplotypes, or a null denominator).
UNDEFINED_LD_VALUE = 1.0

CompoundHaplotype = Tuple[str, str]


@dataclass(frozen=True)
class LDResult:
    variant_a: str
    variant_b: str
    d_prime: float
    r_squared: float


def compound_haplotypes(
    haplotypes_a: Mapping[str, Tuple[str, str]],
    haplotypes_b: Mapping[str, Tuple[str, str]]
) -> List[CompoundHaplotype]:
    """Alleles carried by each chromosome copy at both sites.

    Only the samples with haplotypes at both sites contribute, two compound
    haplotypes each.

    """
    out = []
    for sample, (a1, a2) in haplotypes_a.items():
        if sample not in haplotypes_b:
            continue

        b1, b2 = haplotypes_b[sample]
        out.append((a1, b1))
        out.append((a2, b2))

    return out


def count_compound_haplotypes(
    haplotypes: Iterable[CompoundHaplotype]
) -> Dict[CompoundHaplotype, int]:
    """Counts of each compound haplotype in lexicographic order."""
    # Keys are allele tuples, ("A", "G") < ("AC", "A") while "ACA" < "AG".
    counts: Dict[CompoundHaplotype, int] = {}
    for haplotype in haplotypes:
        counts[haplotype] = counts.get(haplotype, 0) + 1

    return {k: counts[k] for k in sorted(counts)}


def haplotype_slots(
    counts: Dict[CompoundHaplotype, int]
) -> Tuple[Optional[int], ...]:
    """The (p1, p2, q1, q2) slots, None for the slots without a haplotype."""
    values: List[Optional[int]] = [counts[k] for k in sorted(counts)][:4]
    values.extend([None] * (4 - len(values)))
    return tuple(values)


def calculate_ld(
    p1: Optional[int],
    p2: Optional[int],
    q1: Optional[int],
    q2: Optional[int],
    undefined: float = UNDEFINED_LD_VALUE
) -> Tuple[float, float]:
    """Returns (d_prime, r_squared) from the compound haplotype counts.

    Undefined statistics are replaced by ``undefined``.

    """
    if p1 is None or p2 is None or q1 is None or q2 is None:
        return (undefined, undefined)

    d = p1 * q2 - p2 * q1

    ms = (p1 + q1) * (p2 + q2) * (p1 + p2) * (q1 + q2)
    r_squared = d ** 2 / ms if ms else math.nan

    if d < 0:
        d_max = min((p1 + q1) * (p1 + p2), (p2 + q2) * (q1 + q2))
    else:
        d_max = min((p1 + q1) * (q1 + q2), (p1 + p2) * (p2 + q2))

    d_prime = abs(d / d_max) if d_max else math.nan

    return (
        undefined if math.isnan(d_prime) else d_prime,
        undefined if math.isnan(r_squared) else r_squared,
    )


def ld_between(
    variant_a: GenotypeRecord,
    variant_b: GenotypeRecord,
    undefined: float = UNDEFINED_LD_VALUE
) -> LDResult:
    counts = count_compound_haplotypes(compound_haplotypes(
        variant_a.haplotypes_by_sample, variant_b.haplotypes_by_sample
    ))

    d_prime, r_squared = calculate_ld(
        *haplotype_slots(counts), undefined=undefined
    )

    return LDResult(variant_a.id, variant_b.id, d_prime, r_squared)


def compute_pairwise_ld(
    variants: Sequence[GenotypeRecord],
    undefined: float = UNDEFINED_LD_VALUE,
    progress: bool = False
) -> List[LDResult]:
    """LD for every pair (i, j) with i <= j, including the diagonal."""
    n = len(variants)
    pairs = itertools.combinations_with_replacement(range(n), 2)

    if progress:
        pairs = tqdm(pairs, total=n * (n + 1) // 2)

    return [
        ld_between(variants[i], variants[j], undefined=undefined)
        for i, j in pairs
    ]
