"""
Concentration analytics: per-position share, diversification score, sector exposure.
"""

from collections import defaultdict
from decimal import Decimal
from typing import List, Optional, Sequence

from src.core.models import (
    ConcentrationRisk,
    Position,
    RiskLevel,
    RiskWarning,
    RuleSet,
    SectorExposure,
    TopPosition,
)
from src.core.risk.sectors import FIXED_SECTOR_BREAKDOWN, UNCLASSIFIED_SECTOR, SectorClassifier

_HUNDRED = Decimal("100")
_MEDIUM_TIER_FACTOR = Decimal("0.8")
TOP_POSITION_LIMIT = 5
MAX_DIVERSIFICATION_SCORE = 10


def share_of(value: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return Decimal("0")
    return value / total * _HUNDRED


def tier_for_share(share: Decimal, limit: Decimal) -> RiskLevel:
    if share > limit:
        return "HIGH"
    if share > limit * _MEDIUM_TIER_FACTOR:
        return "MEDIUM"
    return "LOW"


def diversification_score(positions: Sequence[Position]) -> int:
    """Distinct-symbol count capped at 10, floored at 1. A proxy, not a statistical measure."""
    distinct = len({pos.symbol for pos in positions})
    return max(1, min(MAX_DIVERSIFICATION_SCORE, distinct))


def _sector_exposure(
    positions: Sequence[Position],
    total_value: Decimal,
    rule_set: RuleSet,
    classifier: Optional[SectorClassifier],
) -> List[SectorExposure]:
    if total_value <= 0:
        return []
    if classifier is None:
        return [exposure.model_copy() for exposure in FIXED_SECTOR_BREAKDOWN]

    values: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for pos in positions:
        sector = classifier.classify(pos.symbol) or UNCLASSIFIED_SECTOR
        values[sector] += pos.value

    exposures = [
        SectorExposure(
            sector=sector,
            percentage=share_of(value, total_value),
            risk=tier_for_share(share_of(value, total_value), rule_set.max_sector_concentration),
        )
        for sector, value in values.items()
    ]
    return sorted(exposures, key=lambda item: (-item.percentage, item.sector))


def analyze_concentration_risk(
    positions: Sequence[Position],
    rule_set: RuleSet,
    classifier: Optional[SectorClassifier] = None,
) -> ConcentrationRisk:
    total_value = sum((pos.value for pos in positions), Decimal("0"))

    ranked = [
        TopPosition(
            symbol=pos.symbol,
            name=pos.name,
            percentage=share_of(pos.value, total_value),
            risk=tier_for_share(share_of(pos.value, total_value), rule_set.max_position_size),
        )
        for pos in positions
    ]
    # stable sort keeps input order for ties
    ranked.sort(key=lambda item: item.percentage, reverse=True)

    return ConcentrationRisk(
        top_positions=ranked[:TOP_POSITION_LIMIT],
        sector_concentration=_sector_exposure(positions, total_value, rule_set, classifier),
        diversification_score=diversification_score(positions),
    )


def concentration_warnings(
    risk: ConcentrationRisk, *, sectors_classified: bool = False
) -> List[RiskWarning]:
    warnings: List[RiskWarning] = []
    for pos in risk.top_positions:
        if pos.risk != "HIGH":
            continue
        warnings.append(
            RiskWarning(
                id=f"concentration-{pos.symbol}",
                type="HIGH",
                category="CONCENTRATION",
                title="Position concentration risk",
                message=f"{pos.symbol} makes up {pos.percentage:.1f}% of the portfolio.",
                recommendation="Reduce the position or spread into other symbols.",
                can_proceed=True,
            )
        )

    if sectors_classified:
        for sector in risk.sector_concentration:
            if sector.risk != "HIGH":
                continue
            warnings.append(
                RiskWarning(
                    id=f"sector-concentration-{sector.sector}",
                    type="HIGH",
                    category="CONCENTRATION",
                    title="Sector concentration risk",
                    message=(
                        f"Sector {sector.sector} makes up {sector.percentage:.1f}% "
                        "of the portfolio."
                    ),
                    recommendation="Diversify across sectors.",
                    can_proceed=True,
                )
            )
    return warnings
