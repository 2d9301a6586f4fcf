# flake8: noqa
from .errors import (LDError, ValidationError, CoordinateLookupError,
                     MissingVariantError, GenotypeDecodeError)
from .coordinates import VariantQuery, CoordinateResolver
from .vcf import GenotypeRecord, TabixGenotypeSource, VariantLocator, set_verbose
from .ld import LDResult, calculate_ld, compute_pairwise_ld
from .matrix import LDMatrix, as_matrix, get_export_tables
from .pipeline import get_linkage_disequilibrium
