"""
Report aggregation for inspection anomalies.

Reports are pure reductions over an anomaly list: counters by severity and
category, summed loss estimates, and a list of maintenance recommendations
triggered by fixed thresholds. Nothing here is random, so the same anomalies
always produce the same report.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..models import (
    AnalysisResult,
    Anomaly,
    AnomalyCategory,
    AnomalyType,
    BlockAnalysisResult,
    InspectionSummary,
    Severity,
    SiteAnalysisReport,
    SiteSummary,
    SolarBlock,
    SolarSite,
    TemperatureStats,
    ThermalAnomaly,
)

logger = logging.getLogger(__name__)

NORMAL_PANEL_TEMPERATURE_C = 35.0
LOSS_PER_PANEL_KW = 0.3
CATEGORY_LOSS_MULTIPLIERS = {
    AnomalyCategory.HOTSPOT: 3.0,
    AnomalyCategory.BYPASS_DIODE: 2.5,
    AnomalyCategory.VEGETATION: 1.5,
    AnomalyCategory.SOILING: 1.0,
}

# Site thresholds
HOTSPOT_URGENT_THRESHOLD = 10
BYPASS_DIODE_WARNING_THRESHOLD = 5
SITE_LOSS_WARNING_KW = 100.0
MIN_SURVEY_COVERAGE = 0.8

# Small-array thresholds
ARRAY_LOSS_WARNING_W = 1000


def calculate_summary(anomalies: Sequence[Anomaly]) -> InspectionSummary:
    """
    Aggregate small-site anomalies into summary counters.

    Args:
        anomalies: Anomalies of one inspection

    Returns:
        InspectionSummary whose per-type counts add up to the total
    """
    severities = Counter(a.severity for a in anomalies)
    types = Counter(a.anomaly_type for a in anomalies)
    power_loss = sum(a.power_loss_watts or 0 for a in anomalies)

    actions = []
    if severities[Severity.CRITICAL] > 0:
        actions.append(
            f"Urgent: {severities[Severity.CRITICAL]} critical anomalies detected. "
            "Inspect and replace the affected panels."
        )
    if types[AnomalyType.BYPASS_DIODE] > 0:
        actions.append("Warning: bypass diode activation detected. Inspect the string wiring.")
    if types[AnomalyType.VEGETATION] > 0:
        actions.append("Notice: vegetation shading detected. Schedule weeding.")
    if types[AnomalyType.SOILING] > 0:
        actions.append("Info: panel soiling detected. Schedule cleaning.")
    if power_loss > ARRAY_LOSS_WARNING_W:
        actions.append(f"Notice: estimated power loss has reached {power_loss} W.")

    return InspectionSummary(
        total_anomalies=len(anomalies),
        critical_count=severities[Severity.CRITICAL],
        moderate_count=severities[Severity.MODERATE],
        minor_count=severities[Severity.MINOR],
        by_type={anomaly_type.value: types[anomaly_type] for anomaly_type in AnomalyType},
        estimated_power_loss=power_loss,
        affected_panels=len({a.panel_id for a in anomalies}),
        recommended_actions=actions,
    )


def build_analysis_result(inspection_id: str, anomalies: Sequence[Anomaly]) -> AnalysisResult:
    return AnalysisResult(
        inspection_id=inspection_id,
        anomalies=list(anomalies),
        summary=calculate_summary(anomalies),
    )


def estimate_power_loss_kw(anomalies: Sequence[ThermalAnomaly]) -> float:
    """
    Estimate the power lost to a set of thermal anomalies.

    Each affected panel costs a fixed base loss scaled by its category multiplier.
    """
    return sum(
        len(a.panel_ids) * LOSS_PER_PANEL_KW * CATEGORY_LOSS_MULTIPLIERS[a.category]
        for a in anomalies
    )


def analyze_block(
    block_id: str,
    anomalies: Sequence[ThermalAnomaly],
    analyzed_at: Optional[datetime] = None,
) -> BlockAnalysisResult:
    """
    Summarize the anomalies found in a single block.

    Args:
        block_id: Block being summarized
        anomalies: Anomalies located in that block
        analyzed_at: Analysis timestamp (now if None)

    Returns:
        BlockAnalysisResult with temperature statistics and loss estimate
    """
    if anomalies:
        temperatures = np.array([a.temperature_c for a in anomalies])
        stats = TemperatureStats(
            min=float(min(temperatures.min(), NORMAL_PANEL_TEMPERATURE_C)),
            max=float(temperatures.max()),
            avg=float(temperatures.mean()),
        )
    else:
        stats = TemperatureStats(
            min=NORMAL_PANEL_TEMPERATURE_C,
            max=NORMAL_PANEL_TEMPERATURE_C,
            avg=NORMAL_PANEL_TEMPERATURE_C,
        )

    return BlockAnalysisResult(
        block_id=block_id,
        analyzed_at=analyzed_at or datetime.now(),
        anomalies=list(anomalies),
        temperature=stats,
        affected_panels=sum(len(a.panel_ids) for a in anomalies),
        estimated_power_loss_kw=estimate_power_loss_kw(anomalies),
    )


def _site_recommendations(
    categories: Counter, total_loss_kw: float, analyzed_blocks: int, total_blocks: int
) -> List[str]:
    actions = []
    if categories[AnomalyCategory.HOTSPOT] > HOTSPOT_URGENT_THRESHOLD:
        actions.append(
            "Urgent: a large number of hotspots were detected. Panel replacement may be required."
        )
    if categories[AnomalyCategory.BYPASS_DIODE] > BYPASS_DIODE_WARNING_THRESHOLD:
        actions.append(
            "Warning: multiple bypass diode activations were detected. "
            "An electrical inspection is recommended."
        )
    if categories[AnomalyCategory.VEGETATION] > 0:
        actions.append("Notice: vegetation shading was detected. Weeding is recommended.")
    if categories[AnomalyCategory.SOILING] > 0:
        actions.append("Info: panel soiling was detected. Plan a cleaning round.")
    if total_loss_kw > SITE_LOSS_WARNING_KW:
        actions.append(f"Notice: estimated power loss has reached {total_loss_kw:.1f} kW.")
    if analyzed_blocks < total_blocks * MIN_SURVEY_COVERAGE:
        actions.append(
            "Info: some blocks have not been surveyed. "
            "Additional flights are recommended for a complete diagnosis."
        )
    return actions


def build_site_report(
    site: SolarSite,
    anomalies: Sequence[ThermalAnomaly],
    blocks: Optional[Sequence[SolarBlock]] = None,
    inspection_date: Optional[datetime] = None,
) -> SiteAnalysisReport:
    """
    Aggregate mega-solar anomalies into a site-wide report.

    Args:
        site: Inspected site
        anomalies: Anomalies found on the site
        blocks: Laid-out blocks; the full site grid is assumed surveyed if None
        inspection_date: Report timestamp (now if None)

    Returns:
        SiteAnalysisReport with per-block results and a site summary
    """
    inspection_date = inspection_date or datetime.now()

    if blocks is None:
        total_blocks = site.total_blocks
        analyzed_blocks = site.total_blocks
    else:
        total_blocks = len(blocks)
        analyzed_blocks = sum(1 for b in blocks if b.has_imagery)

    by_block: Dict[str, List[ThermalAnomaly]] = {}
    for anomaly in anomalies:
        by_block.setdefault(anomaly.block_id, []).append(anomaly)

    block_results = [
        analyze_block(block_id, block_anomalies, analyzed_at=inspection_date)
        for block_id, block_anomalies in by_block.items()
    ]

    severities = Counter(a.severity for a in anomalies)
    categories = Counter(a.category for a in anomalies)
    total_loss_kw = sum(result.estimated_power_loss_kw for result in block_results)

    summary = SiteSummary(
        total_anomalies=len(anomalies),
        critical_count=severities[Severity.CRITICAL],
        moderate_count=severities[Severity.MODERATE],
        by_category={category.value: categories[category] for category in AnomalyCategory},
        affected_blocks=len(block_results),
        affected_panels=sum(result.affected_panels for result in block_results),
        estimated_total_loss_kw=total_loss_kw,
        recommended_actions=_site_recommendations(
            categories, total_loss_kw, analyzed_blocks, total_blocks
        ),
    )

    logger.debug(
        f"Built report for site {site.id}: {summary.total_anomalies} anomalies "
        f"in {summary.affected_blocks} blocks, {total_loss_kw:.1f} kW estimated loss"
    )

    return SiteAnalysisReport(
        site_id=site.id,
        inspection_date=inspection_date,
        analyzed_blocks=analyzed_blocks,
        total_blocks=total_blocks,
        block_results=block_results,
        summary=summary,
    )
