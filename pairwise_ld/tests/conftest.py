import os
import dataclasses
import time

import httpx
import pysam
import pytest

from .. import vcf
from ..coordinates import CoordinateResolver
from ..sources import load_population_panel
from ..vcf import GenotypeRecord, GenotypeSource


TEST_DATA = os.path.join(os.path.dirname(__file__), "test_data")

SAMPLES = ["S1", "S2", "S3", "S4"]


def get_test_filename(name):
    return os.path.join(TEST_DATA, name)


def make_record(id, position, calls, ref="A", alt="G", chromosome="1",
                samples=SAMPLES, alts=None):
    return GenotypeRecord(
        id=id,
        chromosome=chromosome,
        position=position,
        ref=ref,
        alts=alts if alts is not None else (alt, ),
        genotypes_by_sample=dict(zip(samples, calls)),
    )


class InMemoryGenotypeSource(GenotypeSource):
    """Genotype source backed by a list of records.

    ``delay`` maps the start of a queried region to a number of seconds to
    wait before answering, to simulate remote reads.

    """
    def __init__(self, records, samples=SAMPLES, delay=None):
        self.records = records
        self.samples = samples
        self.delay = delay
        self.regions = []
        self.closed = False

    def get_samples(self):
        return self.samples

    def query(self, chrom, start, end):
        self.regions.append((chrom, start, end))
        if self.delay is not None:
            time.sleep(self.delay(start))

        # Return copies, as if the lines were parsed again.
        return [
            dataclasses.replace(
                r, genotypes_by_sample=dict(r.genotypes_by_sample)
            )
            for r in self.records
            if r.chromosome == chrom and start <= r.position <= end
        ]

    def close(self):
        self.closed = True


def esummary_response(records):
    """Builds an esummary payload from {uid: (chr, grch37, grch38)}."""
    result = {"uids": list(records)}
    for uid, (chrom, pos37, pos38) in records.items():
        result[uid] = {
            "uid": uid,
            "chr": chrom,
            "chrpos_prev_assm": f"{chrom}:{pos37}",
            "chrpos": f"{chrom}:{pos38}",
        }

    return {"header": {"type": "esummary"}, "result": result}


def mock_resolver(payload, status_code=200, requests=None):
    def handler(request):
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, json=payload)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CoordinateResolver(client=client)


@pytest.fixture(autouse=True)
def quiet():
    vcf.set_verbose(False)
    yield
    vcf.set_verbose(True)


@pytest.fixture
def panel():
    return load_population_panel(get_test_filename("panel.txt"))


@pytest.fixture
def example_records():
    # Calls at (variant1, variant2) for S1..S4:
    #   (0|0, 0|1), (0|1, 1|1), (1|0, 0|0), (1|1, 1|0)
    return [
        make_record("rs1", 1000, ["0|0", "0|1", "1|0", "1|1"],
                    ref="A", alt="G"),
        make_record("rs2", 1500, ["0|1", "1|1", "0|0", "1|0"],
                    ref="C", alt="T"),
    ]


def _tabix_indexed(tmp_path, contig):
    with open(get_test_filename("small.vcf")) as f:
        lines = f.read().splitlines(keepends=True)

    filename = tmp_path / f"small_{contig}.vcf"
    with open(filename, "w") as f:
        for line in lines:
            if line.startswith("##contig=<ID=1,"):
                line = line.replace("ID=1,", f"ID={contig},")
            elif line.startswith("1\t"):
                line = contig + line[1:]
            f.write(line)

    # Compresses with bgzip and writes the .tbi index next to it.
    return pysam.tabix_index(str(filename), preset="vcf")


@pytest.fixture
def indexed_vcf(tmp_path):
    return _tabix_indexed(tmp_path, "1")


@pytest.fixture
def indexed_chr_vcf(tmp_path):
    return _tabix_indexed(tmp_path, "chr1")
