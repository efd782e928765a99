"""
Tests for reading search query reports.
"""

import pandas as pd
import pytest

from ngram_miner.csv_parser import (
    clean_numeric,
    dataframe_to_records,
    get_data_summary,
    parse_csv,
    standardize_columns,
    validate_csv,
)
from ngram_miner.models import QueryRecord


GOOGLE_ADS_EXPORT = '''Search terms report
"January 1, 2026 - January 31, 2026"
Search term,Campaign,Ad group,Impr.,Clicks,Cost,Conversions,Conv. value
buy running shoes,Search - Shoes,Running,"1,200",30,$45.50,2,120.00
free running shoes,Search - Shoes,Running,800,1,1.20,0,0
brand shoes,Brand - Exact,Brand,150,15,7.50,1.5,--
Total: Account,,,"2,150",46,54.20,3.5,120.00
'''

PLAIN_EXPORT = '''Query,CampaignName,Impressions,Clicks,Cost,Conversions,ConversionValue
trail shoes,Search - Trail,100,10,20,1,50
'''


@pytest.fixture
def google_ads_csv(tmp_path):
    path = tmp_path / 'search_terms.csv'
    path.write_text(GOOGLE_ADS_EXPORT, encoding='utf-8')
    return str(path)


def test_parse_google_ads_export(google_ads_csv):
    df = parse_csv(google_ads_csv)

    assert validate_csv(df) == (True, [])
    assert list(df['search_term']) == ['buy running shoes', 'free running shoes', 'brand shoes']
    assert list(df['impressions']) == [1200, 800, 150]
    assert df['cost'].tolist() == pytest.approx([45.5, 1.2, 7.5])
    assert df['conversion_value'].tolist() == pytest.approx([120.0, 0.0, 0.0])


def test_parse_plain_export(tmp_path):
    path = tmp_path / 'report.csv'
    path.write_text(PLAIN_EXPORT, encoding='utf-8')

    records = dataframe_to_records(parse_csv(str(path)))

    assert records == [QueryRecord(text='trail shoes', campaign='Search - Trail', impressions=100,
                                   clicks=10, cost=20.0, conversions=1.0, conversion_value=50.0)]


def test_parse_excel(tmp_path):
    path = tmp_path / 'report.xlsx'
    pd.DataFrame({
        'Search term': ['red shoes'],
        'Campaign': ['Search'],
        'Impr.': [40],
        'Clicks': [4],
        'Cost': [2.0],
    }).to_excel(path, index=False)

    df = parse_csv(str(path))

    assert validate_csv(df)[0]
    assert df.loc[0, 'impressions'] == 40


def test_missing_columns(tmp_path):
    path = tmp_path / 'bad.csv'
    path.write_text('Keyword,Bid\nshoes,1.00\n', encoding='utf-8')

    is_valid, missing = validate_csv(parse_csv(str(path)))

    assert not is_valid
    assert 'impressions' in missing


def test_standardize_columns_does_not_map_twice():
    df = pd.DataFrame(columns=['Conversions', 'Conv. value', 'Conv. rate'])

    renamed = standardize_columns(df)

    assert list(renamed.columns) == ['conversions', 'conversion_value', 'Conv. rate']


def test_clean_numeric():
    series = pd.Series(['1,234', '$5.50', '--', None, '7'])
    assert clean_numeric(series).tolist() == [1234, 5.5, 0, 0, 7]


def test_records_and_summary(google_ads_csv):
    df = parse_csv(google_ads_csv)

    records = dataframe_to_records(df)
    summary = get_data_summary(df)

    assert records[2] == QueryRecord(text='brand shoes', campaign='Brand - Exact', impressions=150,
                                     clicks=15, cost=7.5, conversions=1.5, conversion_value=0.0)
    assert summary['total_rows'] == 3
    assert summary['total_campaigns'] == 2
    assert summary['total_impressions'] == 2150
