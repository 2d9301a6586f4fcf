"""
Reference genotype panels and population membership.

The default genotypes are the phased 1000 Genomes Project VCFs, one file per
chromosome, for both supported genome builds.

"""

from dataclasses import dataclass
from typing import Dict, List
import collections

import pandas as pd


_KG_FTP = "http://ftp.1000genomes.ebi.ac.uk/vol1/ftp"


@dataclass(frozen=True)
class GenomeBuild:
    assembly: str
    url_template: str

    def url(self, chromosome: str) -> str:
        chromosome = str(chromosome)
        if chromosome.startswith("chr"):
            chromosome = chromosome[3:]

        return self.url_template.format(chromosome=chromosome)


GENOME_BUILDS = {
    "GRCh37": GenomeBuild(
        "grch37",
        _KG_FTP + "/release/20130502/ALL.chr{chromosome}.phase3_shapeit2_"
        "mvncall_integrated_v5b.20130502.genotypes.vcf.gz"
    ),
    "GRCh38": GenomeBuild(
        "grch38",
        _KG_FTP + "/data_collections/1000G_2504_high_coverage/working/"
        "20201028_3202_phased/CCDG_14151_B01_GRM_WGS_2020-08-05_"
        "chr{chromosome}.filtered.shapeit2-duohmm-phased.vcf.gz"
    ),
}

# Samples, populations and super populations of the phase 3 release.
DEFAULT_PANEL = (
    _KG_FTP + "/release/20130502/integrated_call_samples_v3.20130502.ALL.panel"
)

# APOE region (chr19).
EXAMPLE_SNPS = ["rs429358", "rs7412", "rs769449", "rs440446", "rs405509"]


def get_genome_build(name: str) -> GenomeBuild:
    try:
        return GENOME_BUILDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown genome build '{name}' (expected one of: "
            f"{', '.join(GENOME_BUILDS)})."
        )


def load_population_panel(
    filename: str = DEFAULT_PANEL
) -> Dict[str, List[str]]:
    """Reads a sample panel into a mapping of population code to samples.

    The file has (at least) the 'sample', 'pop' and 'super_pop' columns.
    Both the population and the super population codes are keys of the
    returned mapping.

    """
    df = pd.read_csv(filename, sep=r"\s+", dtype=str)

    missing_cols = {"sample", "pop", "super_pop"} - set(df.columns)
    if missing_cols:
        raise ValueError(f"Missing expected column(s): '{missing_cols}'.")

    panel = collections.defaultdict(list)
    columns = df[["sample", "pop", "super_pop"]]
    for sample, pop, super_pop in columns.itertuples(index=False):
        panel[pop].append(sample)
        panel[super_pop].append(sample)

    return dict(panel)
