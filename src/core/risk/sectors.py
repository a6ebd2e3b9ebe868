from decimal import Decimal
from typing import Mapping, Optional, Protocol

from src.core.models import SectorExposure

UNCLASSIFIED_SECTOR = "UNCLASSIFIED"

# Approximation reported when no classifier is wired in.
FIXED_SECTOR_BREAKDOWN: tuple[SectorExposure, ...] = (
    SectorExposure(sector="TECHNOLOGY", percentage=Decimal("40"), risk="MEDIUM"),
    SectorExposure(sector="FINANCE", percentage=Decimal("30"), risk="LOW"),
)


class SectorClassifier(Protocol):
    def classify(self, symbol: str) -> Optional[str]: ...


class MappingSectorClassifier(SectorClassifier):
    def __init__(self, mapping: Mapping[str, str]) -> None:
        self._mapping = {symbol.upper(): sector for symbol, sector in mapping.items()}

    def classify(self, symbol: str) -> Optional[str]:
        return self._mapping.get(symbol.upper())
