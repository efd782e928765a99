"""
N-gram Generator Utility for the N-gram Miner
Tokenizes search queries, extracts N-grams of any size and accumulates their
metrics across a batch of query records.
"""

import logging
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Dict, Iterable, List, Optional, Sequence, Type

import pandas as pd

from .exceptions import ConfigurationError
from .metrics import derive_metrics
from .models import NgramAggregate, QueryRecord

logger = logging.getLogger(__name__)


NGRAM_COLUMNS = [
    'ngram', 'size', 'queries', 'impressions', 'clicks', 'ctr', 'cost',
    'conversions', 'conv_rate', 'cpa', 'roas', 'conversion_value', 'cpc',
]


def _split_tokens(term: Optional[str], stop_words: Iterable[str]) -> List[str]:
    if not isinstance(term, str):
        return []
    return [word for word in term.lower().split()
            if len(word) > 1 and word not in stop_words]


def tokenize(term: str, stop_words: Iterable[str] = ()) -> List[str]:
    """
    Tokenize a search query into lower-cased words.

    Words of a single character and stop words (case-insensitive) are dropped.

    Args:
        term: Raw search query
        stop_words: Words to exclude

    Returns:
        List of words in query order
    """
    return _split_tokens(term, {word.lower() for word in stop_words})


def extract_ngrams(words: Sequence[str], size: int) -> List[str]:
    """
    Extract N-grams of the given size from a list of words.

    Repeated N-grams are kept; this is a plain sliding window.

    Args:
        words: List of words from a search query
        size: Number of words per N-gram

    Returns:
        List of space-joined N-grams, left to right
    """
    if size < 1:
        raise ConfigurationError(f'N-gram size must be positive, got {size}')

    if len(words) < size:
        return []

    return [' '.join(words[i:i + size]) for i in range(len(words) - size + 1)]


def aggregate_ngrams(records: Iterable[QueryRecord], size: int,
                     stop_words: Iterable[str] = (),
                     dedupe_per_query: bool = False) -> Dict[str, NgramAggregate]:
    """
    Accumulate query metrics for every N-gram of one size.

    Every occurrence of an N-gram adds the query's full metrics and counts as
    one query, so a query containing the same bigram twice contributes twice.
    With ``dedupe_per_query`` each distinct N-gram counts once per query.

    Args:
        records: Query records to fold
        size: N-gram size
        stop_words: Words excluded before N-grams are built
        dedupe_per_query: Attribute a query to each distinct N-gram only once

    Returns:
        Dictionary mapping N-gram text to its NgramAggregate
    """
    if size < 1:
        raise ConfigurationError(f'N-gram size must be positive, got {size}')

    stop = {word.lower() for word in stop_words}
    ngrams: Dict[str, NgramAggregate] = {}

    for record in records:
        words = _split_tokens(record.text, stop)
        grams = extract_ngrams(words, size)
        if dedupe_per_query:
            grams = list(dict.fromkeys(grams))

        for gram in grams:
            aggregate = ngrams.get(gram)
            if aggregate is None:
                aggregate = ngrams[gram] = NgramAggregate(ngram_text=gram, size=size)
            aggregate.add(record)

    return ngrams


def merge_aggregates(maps: Iterable[Dict[str, NgramAggregate]]) -> Dict[str, NgramAggregate]:
    """
    Merge partial aggregate maps by summing matching N-grams.

    The inputs are left untouched.
    """
    merged: Dict[str, NgramAggregate] = {}
    for partial in maps:
        for gram, aggregate in partial.items():
            target = merged.get(gram)
            if target is None:
                merged[gram] = NgramAggregate(ngram_text=gram, size=aggregate.size)
                target = merged[gram]
            target.merge(aggregate)
    return merged


def partition_records(records: Sequence[QueryRecord], partitions: int) -> List[List[QueryRecord]]:
    """Split records into at most ``partitions`` contiguous, non-empty chunks."""
    records = list(records)
    if not records:
        return []
    partitions = max(1, min(partitions, len(records)))
    chunk = -(-len(records) // partitions)
    return [records[i:i + chunk] for i in range(0, len(records), chunk)]


def aggregate_ngrams_parallel(records: Sequence[QueryRecord], size: int,
                              stop_words: Iterable[str] = (),
                              dedupe_per_query: bool = False,
                              workers: int = 2,
                              executor_cls: Type[Executor] = ProcessPoolExecutor
                              ) -> Dict[str, NgramAggregate]:
    """
    Aggregate N-grams over partitions of the records in an executor.

    Results are identical to ``aggregate_ngrams`` on the full sequence.

    Args:
        records: Query records to fold
        size: N-gram size
        stop_words: Words excluded before N-grams are built
        dedupe_per_query: Attribute a query to each distinct N-gram only once
        workers: Number of partitions / worker processes
        executor_cls: concurrent.futures executor class to run partitions in

    Returns:
        Dictionary mapping N-gram text to its NgramAggregate
    """
    chunks = partition_records(records, workers)
    if len(chunks) <= 1:
        return aggregate_ngrams(records, size, stop_words, dedupe_per_query)

    stop = frozenset(word.lower() for word in stop_words)
    with executor_cls(max_workers=len(chunks)) as executor:
        futures = [
            executor.submit(aggregate_ngrams, chunk, size, stop, dedupe_per_query)
            for chunk in chunks
        ]
        partials = [future.result() for future in futures]

    logger.debug(f"Merged {len(partials)} partitions for {size}-grams")
    return merge_aggregates(partials)


def aggregates_to_dataframe(ngrams: Dict[str, NgramAggregate],
                            min_impressions: Optional[int] = None) -> pd.DataFrame:
    """
    Convert one size's aggregates into a DataFrame with derived metrics.

    Args:
        ngrams: Dictionary of N-gram aggregates for a single size
        min_impressions: Drop N-grams below this many impressions

    Returns:
        DataFrame sorted by impressions, highest first
    """
    rows = []
    for aggregate in ngrams.values():
        if min_impressions is not None and aggregate.impressions < min_impressions:
            continue
        rows.append({
            'ngram': aggregate.ngram_text,
            'size': aggregate.size,
            'queries': aggregate.query_count,
            'impressions': aggregate.impressions,
            'clicks': aggregate.clicks,
            'cost': aggregate.cost,
            'conversions': aggregate.conversions,
            'conversion_value': aggregate.conversion_value,
            **derive_metrics(aggregate),
        })

    if not rows:
        return pd.DataFrame(columns=NGRAM_COLUMNS)

    df = pd.DataFrame(rows)[NGRAM_COLUMNS]
    return df.sort_values(['impressions', 'ngram'], ascending=[False, True]).reset_index(drop=True)


def get_ngram_summary(ngram_results: Dict[int, Dict[str, NgramAggregate]]) -> dict:
    """
    Get a summary of the N-gram analysis.

    Args:
        ngram_results: Aggregates keyed by N-gram size

    Returns:
        Unique N-gram counts keyed like ``'1gram_count'``
    """
    return {f'{size}gram_count': len(ngrams) for size, ngrams in ngram_results.items()}
