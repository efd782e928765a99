"""
N-gram Analysis Pipeline
Runs tokenizing, N-gram aggregation, metric derivation and classification
over a batch of query records for every configured N-gram size.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .config import MinerConfig, load_config
from .exceptions import ConfigurationError
from .metrics import derive_metrics, get_campaign_summary
from .models import NgramAggregate, QueryRecord, Recommendation
from .ngram_generator import (
    aggregate_ngrams,
    aggregate_ngrams_parallel,
    aggregates_to_dataframe,
    get_ngram_summary,
)
from .suggestions import RecommendationSet, classify_aggregates, get_suggestion_summary

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    config: MinerConfig
    aggregates: Dict[int, Dict[str, NgramAggregate]] = field(default_factory=dict)
    keyword_opportunities: List[Recommendation] = field(default_factory=list)
    negative_candidates: List[Recommendation] = field(default_factory=list)
    derived_metrics: Dict[int, Dict[str, Dict[str, float]]] = field(default_factory=dict)
    record_count: int = 0
    account_summary: Dict[str, Any] = field(default_factory=dict)

    @property
    def recommendations(self) -> RecommendationSet:
        return RecommendationSet(self.keyword_opportunities, self.negative_candidates)

    def to_dataframes(self, min_impressions: Optional[int] = None) -> Dict[int, pd.DataFrame]:
        """Per-size DataFrames of aggregates with derived metrics, for export."""
        return {
            size: aggregates_to_dataframe(ngrams, min_impressions)
            for size, ngrams in self.aggregates.items()
        }

    def summary(self) -> dict:
        return {
            'record_count': self.record_count,
            **get_ngram_summary(self.aggregates),
            **get_suggestion_summary(self.recommendations),
            **self.account_summary,
        }


def resolve_config(config: Union[MinerConfig, Mapping[str, Any], None]) -> MinerConfig:
    """
    Accept a MinerConfig, a plain mapping or None (defaults).

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    if config is None:
        return MinerConfig()
    if isinstance(config, MinerConfig):
        # model_construct() skips validation
        sizes = config.ngram_sizes
        if not sizes or any(size < 1 for size in sizes):
            raise ConfigurationError(f'ngram_sizes must be non-empty and positive, got {sizes}')
        return config
    return load_config(config)


def filter_records(records: Iterable[QueryRecord], contains: str = '',
                   does_not_contain: str = '') -> List[QueryRecord]:
    """
    Keep records whose campaign name matches the include/exclude filters.

    Both filters are case-insensitive substrings; blank filters are ignored.
    """
    contains = contains.lower()
    does_not_contain = does_not_contain.lower()

    kept = []
    for record in records:
        campaign = (record.campaign or '').lower()
        if contains and contains not in campaign:
            continue
        if does_not_contain and does_not_contain in campaign:
            continue
        kept.append(record)
    return kept


def run_analysis(records: Sequence[QueryRecord],
                 config: Union[MinerConfig, Mapping[str, Any], None] = None,
                 workers: int = 1) -> AnalysisResult:
    """
    Run the complete N-gram analysis over a batch of query records.

    Args:
        records: Query records from the search query report; records outside
            the configured campaign name filters are dropped first
        config: MinerConfig, mapping of config values, or None for defaults
        workers: Number of partitions to aggregate in parallel (1 = sequential)

    Returns:
        AnalysisResult with per-size aggregates and the two ranked lists

    Raises:
        ConfigurationError: If the configuration is invalid. Raised before
            any aggregation.
    """
    config = resolve_config(config)
    records = filter_records(records, config.campaign_name_contains,
                             config.campaign_name_does_not_contain)
    logger.info(f"Analyzing {len(records)} search queries for sizes {config.ngram_sizes}")

    aggregates: Dict[int, Dict[str, NgramAggregate]] = {}
    derived: Dict[int, Dict[str, Dict[str, float]]] = {}

    for size in config.ngram_sizes:
        if workers > 1:
            ngrams = aggregate_ngrams_parallel(
                records, size, config.stop_words, config.dedupe_per_query, workers=workers
            )
        else:
            ngrams = aggregate_ngrams(records, size, config.stop_words, config.dedupe_per_query)

        aggregates[size] = ngrams
        derived[size] = {gram: derive_metrics(agg) for gram, agg in ngrams.items()}
        logger.info(f"{size}-grams: {len(ngrams)} unique combinations")

    recommendations = classify_aggregates(aggregates, config)
    logger.info(f"Keyword opportunities: {len(recommendations.keyword_opportunities)}")
    logger.info(f"Negative keyword candidates: {len(recommendations.negative_candidates)}")

    return AnalysisResult(
        config=config,
        aggregates=aggregates,
        keyword_opportunities=recommendations.keyword_opportunities,
        negative_candidates=recommendations.negative_candidates,
        derived_metrics=derived,
        record_count=len(records),
        account_summary=get_campaign_summary(records),
    )
