"""
Keyword Suggestions Utility for the N-gram Miner
Flags N-grams as keyword opportunities or negative keyword candidates and
ranks each list by impact.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .config import MinerConfig
from .models import Category, NgramAggregate, Recommendation


REASON_HIGH_CONV_RATE = 'High conversion rate'
REASON_HIGH_CTR = 'High CTR'
REASON_LOW_CTR = 'Low CTR'
REASON_HIGH_CPA = 'High CPA'


@dataclass
class RecommendationSet:
    keyword_opportunities: List[Recommendation] = field(default_factory=list)
    negative_candidates: List[Recommendation] = field(default_factory=list)


def passes_volume_floor(aggregate: NgramAggregate, config: MinerConfig) -> bool:
    """N-grams below the impression floor are never classified."""
    return aggregate.impressions >= config.min_impressions


def get_opportunity_reason(aggregate: NgramAggregate, config: MinerConfig) -> Optional[str]:
    """
    Determine whether an N-gram is worth adding as a keyword.

    Criteria: enough clicks, and a high CTR or a high conversion rate. The
    conversion rate wins when both qualify.

    Args:
        aggregate: N-gram aggregate
        config: Analysis thresholds

    Returns:
        The reason string, or None if the N-gram does not qualify
    """
    if aggregate.clicks < config.min_clicks:
        return None

    if aggregate.conv_rate >= config.high_conv_rate_threshold:
        return REASON_HIGH_CONV_RATE
    if aggregate.ctr >= config.high_ctr_threshold:
        return REASON_HIGH_CTR
    return None


def contains_brand_term(ngram: str, brand_terms: Iterable[str]) -> bool:
    """Case-insensitive substring match of any brand term in the N-gram."""
    ngram = ngram.lower()
    return any(term.lower() in ngram for term in brand_terms if term)


def get_negative_reason(aggregate: NgramAggregate, config: MinerConfig) -> Optional[str]:
    """
    Determine whether an N-gram should be suggested as a negative keyword.

    Criteria: low CTR, or (when a target CPA is set) a CPA above the target
    times the expensive multiplier. Low CTR wins when both qualify. N-grams
    containing a brand term are never suggested.

    Only the impression floor applies here; min_clicks gates keyword
    opportunities alone, so zero-click low-CTR N-grams still qualify.

    Args:
        aggregate: N-gram aggregate
        config: Analysis thresholds

    Returns:
        The reason string, or None if the N-gram does not qualify
    """
    if contains_brand_term(aggregate.ngram_text, config.brand_terms):
        return None

    if aggregate.ctr <= config.low_ctr_threshold:
        return REASON_LOW_CTR

    if config.target_cpa > 0 and aggregate.cpa > config.target_cpa * config.expensive_cpa_multiplier:
        return REASON_HIGH_CPA

    return None


def classify_aggregate(aggregate: NgramAggregate,
                       config: MinerConfig) -> Tuple[Optional[Recommendation], Optional[Recommendation]]:
    """
    Classify one N-gram against both categories independently.

    Returns:
        Tuple of (keyword opportunity or None, negative candidate or None)
    """
    if not passes_volume_floor(aggregate, config):
        return None, None

    opportunity = None
    reason = get_opportunity_reason(aggregate, config)
    if reason:
        opportunity = Recommendation.from_aggregate(aggregate, Category.KEYWORD_OPPORTUNITY, reason)

    negative = None
    reason = get_negative_reason(aggregate, config)
    if reason:
        negative = Recommendation.from_aggregate(aggregate, Category.NEGATIVE_CANDIDATE, reason)

    return opportunity, negative


def _iter_aggregates(ngram_results) -> Iterable[NgramAggregate]:
    if isinstance(ngram_results, Mapping):
        for key in sorted(ngram_results):
            value = ngram_results[key]
            if isinstance(value, NgramAggregate):
                yield value
            else:
                yield from value.values()
    else:
        yield from ngram_results


def rank_recommendations(recommendations: List[Recommendation], key: str,
                         limit: int) -> List[Recommendation]:
    """
    Sort recommendations by a metric, highest first, and cap the list.

    Ties are ordered by N-gram size and text so the output does not depend
    on input order.
    """
    ranked = sorted(
        recommendations,
        key=lambda r: (-getattr(r, key), r.size, r.ngram_text),
    )
    return ranked[:limit]


def classify_aggregates(ngram_results: Union[Mapping[int, Mapping[str, NgramAggregate]],
                                             Iterable[NgramAggregate]],
                        config: MinerConfig) -> RecommendationSet:
    """
    Build the keyword opportunity and negative candidate lists.

    Args:
        ngram_results: Aggregates keyed by size then N-gram text, or a flat
            iterable of aggregates
        config: Analysis thresholds

    Returns:
        RecommendationSet with opportunities sorted by conversions and
        negatives sorted by cost, each capped at max_results_per_category
    """
    keywords = []
    negatives = []

    for aggregate in _iter_aggregates(ngram_results):
        opportunity, negative = classify_aggregate(aggregate, config)
        if opportunity:
            keywords.append(opportunity)
        if negative:
            negatives.append(negative)

    limit = config.max_results_per_category
    return RecommendationSet(
        keyword_opportunities=rank_recommendations(keywords, 'conversions', limit),
        negative_candidates=rank_recommendations(negatives, 'cost', limit),
    )


def format_negative_keyword(ngram: str, match_type: str = 'EXACT') -> str:
    """
    Format an N-gram as a negative keyword in the given match type.

    Example:
        >>> format_negative_keyword('free shoes', 'PHRASE')
        '"free shoes"'
    """
    match_type = match_type.upper()
    if match_type == 'EXACT':
        return f'[{ngram}]'
    if match_type == 'PHRASE':
        return f'"{ngram}"'
    return ngram


def get_suggestion_summary(recommendations: RecommendationSet) -> Dict[str, int]:
    """
    Get a summary of the recommendations.

    Args:
        recommendations: Output of classify_aggregates

    Returns:
        Dictionary with list sizes and counts per reason
    """
    summary = {
        'keyword_count': len(recommendations.keyword_opportunities),
        'negative_count': len(recommendations.negative_candidates),
    }
    for rec in recommendations.keyword_opportunities + recommendations.negative_candidates:
        key = rec.reason.lower().replace(' ', '_') + '_count'
        summary[key] = summary.get(key, 0) + 1
    return summary
