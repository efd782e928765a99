"""
Metrics Calculation Utility for the N-gram Miner
Calculates CTR, CPC, conversion rate, CPA and ROAS for N-gram aggregates.

Every rate resolves to 0 when its denominator is 0 so that threshold
comparisons on sparse data never fail.
"""

from typing import TYPE_CHECKING, Dict, Iterable

if TYPE_CHECKING:
    from .models import NgramAggregate, QueryRecord


def safe_divide(numerator: float, denominator: float) -> float:
    """
    Divide two numbers, returning 0 for a zero or negative denominator.

    Args:
        numerator: Value to divide
        denominator: Value to divide by

    Returns:
        The quotient, or 0.0
    """
    if not denominator or denominator <= 0:
        return 0.0
    return numerator / denominator


def calculate_ctr(clicks: float, impressions: float) -> float:
    """
    Calculate Click-Through Rate (CTR).

    CTR = Clicks / Impressions

    Args:
        clicks: Number of clicks
        impressions: Number of impressions

    Returns:
        CTR as a fraction, or 0 if impressions is 0
    """
    return safe_divide(clicks, impressions)


def calculate_cpc(cost: float, clicks: float) -> float:
    """
    Calculate Cost Per Click (CPC).

    CPC = Cost / Clicks
    """
    return safe_divide(cost, clicks)


def calculate_conv_rate(conversions: float, clicks: float) -> float:
    """
    Calculate Conversion Rate.

    Conv Rate = Conversions / Clicks
    """
    return safe_divide(conversions, clicks)


def calculate_cpa(cost: float, conversions: float) -> float:
    """
    Calculate Cost Per Acquisition (CPA).

    CPA = Cost / Conversions
    """
    return safe_divide(cost, conversions)


def calculate_roas(conversion_value: float, cost: float) -> float:
    """
    Calculate Return on Ad Spend (ROAS).

    ROAS = Conversion Value / Cost
    """
    return safe_divide(conversion_value, cost)


def derive_metrics(aggregate: 'NgramAggregate') -> Dict[str, float]:
    """
    Calculate all derived metrics for a single N-gram aggregate.

    Args:
        aggregate: NgramAggregate with summed impressions, clicks, cost,
            conversions and conversion value

    Returns:
        Dictionary with ctr, cpc, conv_rate, cpa and roas
    """
    return {
        'ctr': calculate_ctr(aggregate.clicks, aggregate.impressions),
        'cpc': calculate_cpc(aggregate.cost, aggregate.clicks),
        'conv_rate': calculate_conv_rate(aggregate.conversions, aggregate.clicks),
        'cpa': calculate_cpa(aggregate.cost, aggregate.conversions),
        'roas': calculate_roas(aggregate.conversion_value, aggregate.cost),
    }


def get_campaign_summary(records: Iterable['QueryRecord']) -> dict:
    """
    Calculate summary metrics over a batch of query records.

    Args:
        records: Query records (one campaign or a whole account)

    Returns:
        Dictionary with totals and overall rates
    """
    total_impressions = 0
    total_clicks = 0
    total_cost = 0.0
    total_conversions = 0.0
    total_value = 0.0

    for record in records:
        total_impressions += record.impressions
        total_clicks += record.clicks
        total_cost += record.cost
        total_conversions += record.conversions
        total_value += record.conversion_value

    return {
        'total_impressions': int(total_impressions),
        'total_clicks': int(total_clicks),
        'total_cost': round(total_cost, 2),
        'total_conversions': round(total_conversions, 2),
        'total_conversion_value': round(total_value, 2),
        'overall_ctr': calculate_ctr(total_clicks, total_impressions),
        'overall_conv_rate': calculate_conv_rate(total_conversions, total_clicks),
        'overall_cpc': calculate_cpc(total_cost, total_clicks),
        'overall_cpa': calculate_cpa(total_cost, total_conversions),
        'overall_roas': calculate_roas(total_value, total_cost),
    }
