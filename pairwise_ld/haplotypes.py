"""
Decoding of phased genotype calls into haplotypes.
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import GenotypeDecodeError, ValidationError
from .vcf import GenotypeRecord


# Allele indices (0 = reference, 1 = alternate) for the phased biallelic
# calls.
_PHASED_CALLS = {
    "0|0": (0, 0),
    "0|1": (0, 1),
    "1|0": (1, 0),
    "1|1": (1, 1),
}


def decode_phased_call(
    call: str,
    ref: str,
    alt: str,
    variant_id: Optional[str] = None,
    sample: Optional[str] = None
) -> Tuple[str, str]:
    """Returns the alleles on both chromosome copies for a phased call."""
    try:
        a, b = _PHASED_CALLS[call]
    except KeyError:
        raise GenotypeDecodeError(variant_id, sample, call)

    alleles = (ref, alt)
    return (alleles[a], alleles[b])


def merge_population_samples(
    populations: Sequence[str],
    panel: Mapping[str, Sequence[str]]
) -> List[str]:
    """Union of the samples from the populations, in first seen order."""
    if not populations:
        raise ValidationError("No populations selected.")

    samples: Dict[str, None] = {}
    for population in populations:
        if population not in panel:
            raise ValueError(f"Unknown population '{population}'.")

        for sample in panel[population]:
            samples.setdefault(sample, None)

    return list(samples)


def extract_haplotypes(
    variants: Iterable[GenotypeRecord],
    samples: Sequence[str]
) -> None:
    """Attaches the haplotypes of the selected samples to each variant.

    Samples without a call at a variant are skipped. The haplotypes are
    stored in the order of ``samples`` for every variant.

    """
    for variant in variants:
        ref = variant.ref
        alt = variant.alt
        haplotypes = {}

        for sample in samples:
            call = variant.genotypes_by_sample.get(sample)
            if not call:
                continue

            haplotypes[sample] = decode_phased_call(
                call, ref, alt, variant_id=variant.id, sample=sample
            )

        variant.haplotypes_by_sample = haplotypes
