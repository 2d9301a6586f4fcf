"""
Resolution of dbSNP identifiers to genomic coordinates.

The lookup uses the NCBI E-utilities esummary endpoint which reports the
position of a refSNP on the current assembly (GRCh38) and on the previous
one (GRCh37).

"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import httpx

from .errors import CoordinateLookupError


NCBI_ESUMMARY_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esummary.fcgi"
LEGACY_ASSEMBLY = "grch37"
CURRENT_ASSEMBLY = "grch38"

_RSID_PREFIX = re.compile(r"^rs")
_NUMERIC_ID = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class VariantQuery:
    id: str
    chromosome: str
    position_by_assembly: Mapping[str, int] = field(default_factory=dict)

    def position(self, assembly: str) -> int:
        try:
            return self.position_by_assembly[assembly]
        except KeyError:
            raise ValueError(
                f"No '{assembly}' position for variant '{self.id}'."
            )

    def __repr__(self):
        positions = ", ".join(
            f"{k}={v}" for k, v in self.position_by_assembly.items()
        )
        return f"<VariantQuery {self.id} - chr{self.chromosome} ({positions})>"


def normalize_rsids(rsids: Iterable[str]) -> List[str]:
    """Strip the 'rs' prefix and drop anything that isn't numeric."""
    ids = []
    for rsid in rsids:
        rsid = _RSID_PREFIX.sub("", rsid.strip())
        if _NUMERIC_ID.fullmatch(rsid):
            ids.append(rsid)

    return ids


def _parse_chrpos(summary: dict, key: str, uid: str) -> int:
    value = summary.get(key)
    if not value or ":" not in value:
        raise CoordinateLookupError(
            f"Missing '{key}' in the dbSNP record for rs{uid}."
        )

    try:
        return int(value.split(":")[1])
    except ValueError:
        raise CoordinateLookupError(
            f"Malformed '{key}' ('{value}') in the dbSNP record for rs{uid}."
        )


def parse_esummary(data: dict) -> List[VariantQuery]:
    """Maps an esummary JSON response to variant queries.

    The order is the one of the 'uids' array returned by the service.

    """
    try:
        result = data["result"]
        uids = result["uids"]
    except (KeyError, TypeError):
        raise CoordinateLookupError(
            "Unexpected response from the dbSNP service (no 'result.uids')."
        )

    queries = []
    for uid in uids:
        summary = result.get(uid)
        if not summary:
            raise CoordinateLookupError(f"No dbSNP record returned for rs{uid}.")

        chromosome = summary.get("chr")
        if not chromosome:
            raise CoordinateLookupError(
                f"Missing 'chr' in the dbSNP record for rs{uid}."
            )

        queries.append(VariantQuery(
            id=f"rs{uid}",
            chromosome=str(chromosome),
            position_by_assembly={
                LEGACY_ASSEMBLY: _parse_chrpos(
                    summary, "chrpos_prev_assm", uid
                ),
                CURRENT_ASSEMBLY: _parse_chrpos(summary, "chrpos", uid),
            }
        ))

    return queries


class CoordinateResolver(object):
    """Batch lookup of rsids against dbSNP.

    An existing ``httpx.AsyncClient`` can be provided, otherwise one is
    created for each call to ``resolve``.

    """
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        url: str = NCBI_ESUMMARY_URL,
        timeout: float = 30.0,
    ):
        self.client = client
        self.url = url
        self.timeout = timeout

    async def _post(self, client: httpx.AsyncClient, ids: List[str]) -> Dict:
        try:
            response = await client.post(
                self.url,
                data={"db": "snp", "retmode": "json", "id": ",".join(ids)},
            )
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            raise CoordinateLookupError(
                f"dbSNP lookup failed with status {e.response.status_code}."
            ) from e

        except ValueError as e:
            raise CoordinateLookupError(
                "Could not decode the dbSNP response."
            ) from e

    async def resolve(self, rsids: Iterable[str]) -> List[VariantQuery]:
        ids = normalize_rsids(rsids)
        if not ids:
            return []

        if self.client is not None:
            data = await self._post(self.client, ids)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                data = await self._post(client, ids)

        return parse_esummary(data)
