"""Completeness and confidence scoring for extracted bill items."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..normalization.dates import is_valid_period_date
from .items import COST_FIELDS, ITEM_FIELDS, USAGE_FIELDS, ExtractedItem, is_present

DEFAULT_AUTO_APPROVE_THRESHOLD = 7

# Points per signal; the maximum total is 10.
POINTS_METER = 2
POINTS_ADDRESS = 1
POINTS_PERIOD = 2
POINTS_USAGE = 2
POINTS_COST = 2
POINTS_DEMAND = 1


@dataclass
class ConfidenceResult:
    score: int
    auto_approved: bool
    reasons: list[str] = field(default_factory=list)


def completeness_score(item: ExtractedItem) -> int:
    """Number of non-empty bill fields, used to rank merge precedence."""
    return sum(1 for name in ITEM_FIELDS if is_present(getattr(item, name)))


def _has_valid_period(item: ExtractedItem) -> bool:
    return is_valid_period_date(item.period_start) and is_valid_period_date(item.period_end)


def _has_usage(item: ExtractedItem) -> bool:
    return any(getattr(item, name) is not None for name in USAGE_FIELDS)


def _has_cost(item: ExtractedItem) -> bool:
    return any(getattr(item, name) is not None for name in COST_FIELDS)


def confidence_score(item: ExtractedItem) -> int:
    """0-10 estimate of whether *item* is safe to ingest without review."""
    score = 0
    if is_present(item.meter_no):
        score += POINTS_METER
    if is_present(item.service_address):
        score += POINTS_ADDRESS
    if _has_valid_period(item):
        score += POINTS_PERIOD
    if _has_usage(item):
        score += POINTS_USAGE
    if _has_cost(item):
        score += POINTS_COST
    if item.demand_cost is not None:
        score += POINTS_DEMAND
    return score


def evaluate_confidence(
    item: ExtractedItem,
    threshold: int = DEFAULT_AUTO_APPROVE_THRESHOLD,
) -> ConfidenceResult:
    """Score *item* and decide auto-approval.

    Auto-approval needs the score at or above *threshold* and, regardless of
    score, a meter id, a valid period, a usage value and a cost.
    """
    score = confidence_score(item)
    reasons: list[str] = []
    if score < threshold:
        reasons.append(f"confidence {score} below {threshold}")
    if not is_present(item.meter_no):
        reasons.append("missing meter id")
    if not _has_valid_period(item):
        reasons.append("missing or invalid billing period")
    if not _has_usage(item):
        reasons.append("missing usage")
    if not _has_cost(item):
        reasons.append("missing cost")
    return ConfidenceResult(score=score, auto_approved=not reasons, reasons=reasons)


def is_auto_approved(item: ExtractedItem, threshold: int = DEFAULT_AUTO_APPROVE_THRESHOLD) -> bool:
    return evaluate_confidence(item, threshold).auto_approved
