"""Model domains: tiled real-world terrain and synthetic test cases."""

from hydrodem.domain.base import (
    MODEL_FILENAMES,
    DataSource,
    Domain,
    DomainBase,
    DomainRequest,
    DomainResult,
    DomainType,
    RasterKind,
)
from hydrodem.domain.registry import create_domain, parse_domain_type
from hydrodem.domain.synthetic import SyntheticDomain
from hydrodem.domain.testcases import available_test_cases, get_test_case
from hydrodem.domain.tiled import TiledDomain

__all__ = [
    "DataSource",
    "Domain",
    "DomainBase",
    "DomainRequest",
    "DomainResult",
    "DomainType",
    "MODEL_FILENAMES",
    "RasterKind",
    "SyntheticDomain",
    "TiledDomain",
    "available_test_cases",
    "create_domain",
    "get_test_case",
    "parse_domain_type",
]
