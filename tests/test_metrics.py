"""
Tests for derived metric calculations.
"""

import pytest

from ngram_miner.metrics import (
    calculate_conv_rate,
    calculate_cpa,
    calculate_cpc,
    calculate_ctr,
    calculate_roas,
    derive_metrics,
    get_campaign_summary,
    safe_divide,
)

from conftest import make_aggregate, make_record


def test_rates():
    assert calculate_ctr(10, 100) == pytest.approx(0.1)
    assert calculate_cpc(20.0, 10) == pytest.approx(2.0)
    assert calculate_conv_rate(2.5, 10) == pytest.approx(0.25)
    assert calculate_cpa(20.0, 4.0) == pytest.approx(5.0)
    assert calculate_roas(60.0, 20.0) == pytest.approx(3.0)


@pytest.mark.parametrize('func,args', [
    (calculate_ctr, (10, 0)),
    (calculate_cpc, (20.0, 0)),
    (calculate_conv_rate, (3.0, 0)),
    (calculate_cpa, (20.0, 0.0)),
    (calculate_roas, (50.0, 0.0)),
])
def test_zero_denominator_is_zero(func, args):
    assert func(*args) == 0


def test_safe_divide_negative_denominator():
    assert safe_divide(5, -1) == 0


def test_clicks_above_impressions_is_tolerated():
    assert calculate_ctr(15, 10) == pytest.approx(1.5)


def test_derive_metrics():
    agg = make_aggregate(impressions=200, clicks=20, cost=50.0, conversions=2.0, conversion_value=150.0)

    metrics = derive_metrics(agg)

    assert metrics == pytest.approx({
        'ctr': 0.1,
        'cpc': 2.5,
        'conv_rate': 0.1,
        'cpa': 25.0,
        'roas': 3.0,
    })


def test_derive_metrics_all_zero():
    agg = make_aggregate(impressions=0, clicks=0, cost=0.0, conversions=0.0)

    assert derive_metrics(agg) == {'ctr': 0.0, 'cpc': 0.0, 'conv_rate': 0.0, 'cpa': 0.0, 'roas': 0.0}


def test_aggregate_properties_match_derive_metrics():
    agg = make_aggregate(impressions=80, clicks=8, cost=12.0, conversions=0.5, conversion_value=40.0)
    metrics = derive_metrics(agg)

    assert agg.ctr == metrics['ctr']
    assert agg.cpc == metrics['cpc']
    assert agg.conv_rate == metrics['conv_rate']
    assert agg.cpa == metrics['cpa']
    assert agg.roas == metrics['roas']


def test_campaign_summary():
    records = [
        make_record('running shoes', impressions=100, clicks=10, cost=20.0, conversions=1.0,
                    conversion_value=50.0),
        make_record('trail shoes', impressions=300, clicks=10, cost=30.0, conversions=1.0,
                    conversion_value=50.0),
    ]

    summary = get_campaign_summary(records)

    assert summary['total_impressions'] == 400
    assert summary['total_clicks'] == 20
    assert summary['total_cost'] == 50.0
    assert summary['overall_ctr'] == pytest.approx(0.05)
    assert summary['overall_cpa'] == pytest.approx(25.0)
    assert summary['overall_roas'] == pytest.approx(2.0)


def test_campaign_summary_empty():
    summary = get_campaign_summary([])
    assert summary['total_impressions'] == 0
    assert summary['overall_ctr'] == 0
