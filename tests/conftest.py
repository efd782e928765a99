"""
Shared fixtures for the N-gram Miner tests.
"""

import pytest

from ngram_miner.config import load_config
from ngram_miner.models import NgramAggregate, QueryRecord


def make_record(text, impressions=100, clicks=10, cost=20.0, conversions=0.0,
                conversion_value=0.0, campaign='Search - Shoes'):
    return QueryRecord(
        text=text,
        campaign=campaign,
        impressions=impressions,
        clicks=clicks,
        cost=cost,
        conversions=conversions,
        conversion_value=conversion_value,
    )


def make_aggregate(ngram='running shoes', size=2, impressions=100, clicks=10, cost=20.0,
                   conversions=0.0, conversion_value=0.0, query_count=1):
    return NgramAggregate(
        ngram_text=ngram,
        size=size,
        query_count=query_count,
        impressions=impressions,
        clicks=clicks,
        cost=cost,
        conversions=conversions,
        conversion_value=conversion_value,
    )


@pytest.fixture
def sample_records():
    """A small account: shoe queries that convert, free/cheap queries that waste spend."""
    return [
        make_record('buy running shoes', impressions=400, clicks=40, cost=60.0,
                    conversions=4.0, conversion_value=400.0),
        make_record('running shoes sale', impressions=300, clicks=24, cost=36.0,
                    conversions=2.0, conversion_value=180.0),
        make_record('free running shoes', impressions=500, clicks=2, cost=3.0),
        make_record('cheap shoes online', impressions=250, clicks=5, cost=12.5,
                    conversions=0.5, conversion_value=20.0),
        make_record('the best running shoes for men', impressions=120, clicks=6, cost=9.0,
                    conversions=1.0, conversion_value=75.0, campaign='Search - Brand'),
        make_record('   ', impressions=10, clicks=0, cost=0.0),
    ]


@pytest.fixture
def default_config():
    return load_config()


@pytest.fixture
def no_stop_words_config():
    return load_config(stop_words=[])
