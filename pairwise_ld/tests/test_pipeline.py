import asyncio
import threading
import time

import pytest

from .. import pipeline
from ..errors import (GenotypeDecodeError, MissingVariantError,
                      ValidationError)
from ..pipeline import get_linkage_disequilibrium
from .conftest import (InMemoryGenotypeSource, esummary_response, make_record,
                       mock_resolver)


PANEL = {"EUR": ["S1", "S2"], "AFR": ["S3", "S4"], "CEU": ["S1"]}


def _run(resolver, source, populations=("EUR", "AFR"), **kwargs):
    return asyncio.run(get_linkage_disequilibrium(
        ["rs2", "rs1", "rs3"], list(populations), "GRCh37",
        panel=PANEL, resolver=resolver, source=source, **kwargs
    ))


def _records():
    return [
        make_record("rs1", 1000, ["0|0", "1|1", "0|1", "0|1"],
                    ref="A", alt="G"),
        make_record(None, 1500, ["0|0", "1|1", "1|0", "0|1"],
                    ref="C", alt="T"),
        make_record("rs3", 2000, ["0|1", "1|1", "1|0", "0|0"],
                    ref="G", alt="A"),
    ]


def _resolver():
    # Returned in a different order than the genomic positions.
    return mock_resolver(esummary_response({
        "3": ("1", 2000, 3000),
        "2": ("1", 1500, 2500),
        "1": ("1", 1000, 2000),
    }))


@pytest.mark.parametrize("strategy", ["sequential", "concurrent"])
def test_get_linkage_disequilibrium(strategy):
    source = InMemoryGenotypeSource(_records())

    matrix = _run(_resolver(), source, strategy=strategy, max_concurrency=2)

    assert matrix.ids == ["rs1", "rs2", "rs3"]
    assert matrix.get("rs1", "rs2").d_prime == pytest.approx(0.5)
    assert matrix.get("rs2", "rs1").r_squared == pytest.approx(0.25)

    for a in matrix.ids:
        assert matrix.get(a, a).d_prime == 1.0
        assert matrix.get(a, a).r_squared == 1.0

    # The provided source is left open.
    assert not source.closed


def test_strategies_agree():
    sequential = _run(_resolver(), InMemoryGenotypeSource(_records()),
                      strategy="sequential")
    concurrent = _run(_resolver(), InMemoryGenotypeSource(_records()),
                      strategy="concurrent")

    assert sequential.ids == concurrent.ids
    for a in sequential.ids:
        for b in sequential.ids:
            assert sequential.get(a, b) == concurrent.get(a, b)


def test_population_subset():
    # Only S1 is in CEU, with a single sample there are at most two
    # compound haplotypes.
    matrix = _run(_resolver(), InMemoryGenotypeSource(_records()),
                  populations=["CEU"])

    assert matrix.get("rs1", "rs2").d_prime == 1.0
    assert matrix.get("rs1", "rs2").r_squared == 1.0


def test_undefined_value():
    matrix = _run(_resolver(), InMemoryGenotypeSource(_records()),
                  populations=["CEU"], undefined=-1.0)

    assert matrix.get("rs1", "rs2").d_prime == -1.0


def test_multiple_chromosomes():
    resolver = mock_resolver(esummary_response({
        "1": ("1", 1000, 2000),
        "2": ("2", 1500, 2500),
    }))

    with pytest.raises(ValidationError):
        _run(resolver, InMemoryGenotypeSource(_records()))


def test_single_variant():
    resolver = mock_resolver(esummary_response({"1": ("1", 1000, 2000)}))

    with pytest.raises(ValidationError):
        _run(resolver, InMemoryGenotypeSource(_records()))


def test_missing_variant():
    source = InMemoryGenotypeSource(_records()[:2])

    with pytest.raises(MissingVariantError) as exc_info:
        _run(_resolver(), source)

    assert exc_info.value.query.id == "rs3"


def test_decode_error():
    records = _records()
    records[2].genotypes_by_sample["S4"] = "0/0"

    with pytest.raises(GenotypeDecodeError):
        _run(_resolver(), InMemoryGenotypeSource(records))


def test_unknown_genome_build():
    with pytest.raises(ValueError):
        asyncio.run(get_linkage_disequilibrium(
            ["rs1", "rs2"], ["EUR"], "hg18", panel=PANEL,
            resolver=_resolver(), source=InMemoryGenotypeSource(_records())
        ))


def test_cancellation():
    source = InMemoryGenotypeSource(_records(), delay=lambda start: 0.05)

    async def run():
        task = asyncio.ensure_future(get_linkage_disequilibrium(
            ["rs1", "rs2", "rs3"], ["EUR"], "GRCh37", panel=PANEL,
            resolver=_resolver(), source=source, strategy="concurrent"
        ))
        await asyncio.sleep(0.01)
        task.cancel()
        return await task

    with pytest.raises(asyncio.CancelledError):
        asyncio.run(run())


class OwnedSource(InMemoryGenotypeSource):
    """Source opened by the pipeline, records closes during a region read."""
    def __init__(self, *args, fail_start=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_start = fail_start
        self.in_flight = 0
        self.closed_during_query = False
        self._lock = threading.Lock()

    def query(self, chrom, start, end):
        if start == self.fail_start:
            raise OSError("Could not read region")

        with self._lock:
            self.in_flight += 1

        try:
            return super().query(chrom, start, end)
        finally:
            with self._lock:
                self.in_flight -= 1

    def close(self):
        with self._lock:
            if self.in_flight:
                self.closed_during_query = True
        super().close()


def _use_owned_source(monkeypatch, **kwargs):
    opened = []

    def factory(url):
        source = OwnedSource(_records(), delay=lambda start: 0.2, **kwargs)
        opened.append(source)
        return source

    monkeypatch.setattr(pipeline, "TabixGenotypeSource", factory)
    return opened


def _run_owned(cancel_after=None):
    async def run():
        task = asyncio.ensure_future(get_linkage_disequilibrium(
            ["rs1", "rs2", "rs3"], ["EUR"], "GRCh37", panel=PANEL,
            resolver=_resolver(), strategy="concurrent"
        ))
        if cancel_after is not None:
            await asyncio.sleep(cancel_after)
            task.cancel()
        return await task

    return asyncio.run(run())


def test_owned_source_closed_after_reads_on_cancel(monkeypatch):
    opened = _use_owned_source(monkeypatch)

    with pytest.raises(asyncio.CancelledError):
        _run_owned(cancel_after=0.05)

    (source, ) = opened
    assert source.closed
    assert not source.closed_during_query
    assert source.in_flight == 0


def test_owned_source_closed_after_reads_on_error(monkeypatch):
    # The rs2 window fails right away while the other reads are slow.
    opened = _use_owned_source(monkeypatch, fail_start=1490)

    with pytest.raises(OSError):
        _run_owned()

    (source, ) = opened
    assert source.closed
    assert not source.closed_during_query


def test_owned_source_closed_when_cancelled_while_opening(monkeypatch):
    opened = []

    class SlowOpeningSource(InMemoryGenotypeSource):
        def __init__(self, url):
            time.sleep(0.2)
            super().__init__(_records())
            opened.append(self)

    monkeypatch.setattr(pipeline, "TabixGenotypeSource", SlowOpeningSource)

    with pytest.raises(asyncio.CancelledError):
        _run_owned(cancel_after=0.05)

    # asyncio.run waits for the opening thread before returning.
    (source, ) = opened
    assert source.closed
