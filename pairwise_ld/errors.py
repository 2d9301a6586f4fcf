"""
Exceptions raised while computing pairwise linkage disequilibrium.

Any of these aborts the whole request, no partial matrix is returned.
"""


class LDError(Exception):
    pass


class ValidationError(LDError):
    """The set of requested variants can't be analysed together."""


class CoordinateLookupError(LDError, LookupError):
    """An identifier could not be resolved to genomic coordinates."""


class MissingVariantError(LDError):
    def __init__(self, query, assembly, window):
        self.query = query
        self.assembly = assembly
        self.window = window
        super().__init__(
            f"No biallelic variant matching '{query.id}' found within "
            f"{window} bp of {query.chromosome}:{query.position(assembly)} "
            f"({assembly})."
        )


class GenotypeDecodeError(LDError):
    def __init__(self, variant_id, sample, call):
        self.variant_id = variant_id
        self.sample = sample
        self.call = call
        super().__init__(
            f"Unexpected genotype '{call}' for sample '{sample}' at "
            f"variant '{variant_id}'."
        )
