"""
CSV Parser Utility for the N-gram Miner
Reads Google Ads search query reports, standardizes their columns and
converts rows into QueryRecords.
"""

import logging
import os
from io import StringIO
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .exceptions import InputFileError
from .models import QueryRecord

logger = logging.getLogger(__name__)


# Column mapping for the Search Query Performance report
COLUMN_MAPPING = {
    'search_term': ['Search term', 'Search Term', 'search term', 'Query', 'query', 'Search query',
                    'Search Query', 'SearchTerm', 'search_term'],
    'campaign': ['Campaign', 'Campaign name', 'Campaign Name', 'campaign', 'CampaignName', 'campaign_name'],
    'ad_group': ['Ad group', 'Ad Group', 'Ad group name', 'AdGroupName', 'ad_group'],
    'match_type': ['Match type', 'Match Type', 'match type'],
    'impressions': ['Impr.', 'Impressions', 'impressions', 'impr'],
    'clicks': ['Clicks', 'clicks'],
    'cost': ['Cost', 'cost', 'Spend', 'spend'],
    'conversions': ['Conversions', 'conversions', 'Conv.', 'conv'],
    'conversion_value': ['Conv. value', 'Conversion value', 'Conversion Value', 'ConversionValue',
                         'conversion_value', 'Total conv. value', 'All conv. value'],
}

# Fallback substring matches, tried only when no exact name is found
FUZZY_KEYWORDS = {
    'search_term': ['search term', 'query'],
    'impressions': ['impr'],
    'clicks': ['click'],
    'cost': ['cost', 'spend'],
    'campaign': ['campaign'],
}

REQUIRED_COLUMNS = ['search_term', 'impressions', 'clicks', 'cost']
NUMERIC_COLUMNS = ['impressions', 'clicks', 'cost', 'conversions', 'conversion_value']
HEADER_HINTS = ['Search term', 'Query', 'Campaign', 'Impr', 'Clicks']


def find_column(df: pd.DataFrame, possible_names: List[str]) -> Optional[str]:
    """Find the actual column name from a list of possible names (case-insensitive)."""
    for name in possible_names:
        if name in df.columns:
            return name

    df_columns_lower = {str(col).lower(): col for col in df.columns}
    for name in possible_names:
        if name.lower() in df_columns_lower:
            return df_columns_lower[name.lower()]

    return None


def find_column_fuzzy(df: pd.DataFrame, keywords: List[str], taken: set) -> Optional[str]:
    """Find a column not yet mapped whose name contains any keyword."""
    for col in df.columns:
        if col in taken:
            continue
        col_lower = str(col).lower()
        for keyword in keywords:
            if keyword in col_lower:
                return col
    return None


def standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Standardize column names to our internal naming convention."""
    column_renames = {}

    for standard_name, possible_names in COLUMN_MAPPING.items():
        actual_name = find_column(df, possible_names)
        if actual_name is not None and actual_name not in column_renames:
            column_renames[actual_name] = standard_name

    for standard_name, keywords in FUZZY_KEYWORDS.items():
        if standard_name in column_renames.values():
            continue
        actual_name = find_column_fuzzy(df, keywords, set(column_renames))
        if actual_name is not None:
            column_renames[actual_name] = standard_name

    return df.rename(columns=column_renames)


def detect_file_type(file_path: str) -> str:
    """Detect if file is CSV or Excel based on extension and content."""
    ext = os.path.splitext(file_path)[1].lower()

    if ext in ['.xlsx', '.xls']:
        return 'excel'
    if ext == '.csv':
        return 'csv'

    with open(file_path, 'rb') as f:
        if f.read(4) == b'PK\x03\x04':  # ZIP/XLSX signature
            return 'excel'
    return 'csv'


def _read_raw(file_path: str) -> pd.DataFrame:
    if detect_file_type(file_path) == 'excel':
        try:
            df = pd.read_excel(file_path)
            logger.debug("Read report as Excel file")
            return df
        except (ValueError, OSError) as e:
            logger.debug(f"Excel read failed: {e}")

    fallback = None
    for encoding in ['utf-8-sig', 'utf-8', 'latin-1']:
        for options in ({}, {'sep': '\t'}, {'sep': ';'}):
            try:
                df = pd.read_csv(file_path, encoding=encoding, on_bad_lines='skip', **options)
            except (UnicodeError, pd.errors.ParserError, pd.errors.EmptyDataError):
                continue
            if len(df.columns) > 1:
                logger.debug(f"Read report as CSV with {encoding} encoding {options}")
                return df
            if fallback is None:
                fallback = df

    if fallback is not None:
        return fallback

    raise InputFileError("Unable to parse file. Please ensure it's a valid CSV or Excel file.")


def _reread_from_header(file_path: str) -> Optional[pd.DataFrame]:
    """Google Ads exports put a title and date range above the header row."""
    with open(file_path, 'r', encoding='utf-8-sig', errors='ignore') as f:
        lines = f.read().splitlines()

    for i, line in enumerate(lines[:30]):
        if sum(hint in line for hint in HEADER_HINTS) >= 2:
            sep = '\t' if '\t' in line else ','
            return pd.read_csv(StringIO('\n'.join(lines[i:])), sep=sep, on_bad_lines='skip')
    return None


def clean_numeric(series: pd.Series) -> pd.Series:
    """Strip currency symbols, thousands separators and '--' placeholders."""
    cleaned = series.astype(str).str.replace(r'[$€£,\s]', '', regex=True).replace('--', '0')
    return pd.to_numeric(cleaned, errors='coerce').fillna(0)


def parse_csv(file_path: str) -> pd.DataFrame:
    """
    Parse a search query report (CSV or Excel) into a standardized DataFrame.

    Args:
        file_path: Path to the file

    Returns:
        DataFrame with standardized column names and numeric metrics

    Raises:
        InputFileError: If the file cannot be read
    """
    df = standardize_columns(_read_raw(file_path))

    if not validate_csv(df)[0] and detect_file_type(file_path) == 'csv':
        reread = _reread_from_header(file_path)
        if reread is not None:
            df = standardize_columns(reread)

    if len(df.columns) == 0:
        raise InputFileError("Could not read any data from the file. Please check the file format.")

    logger.debug(f"Standardized columns: {list(df.columns)}")

    if 'search_term' in df.columns:
        # Drop blank rows and the 'Total: ...' summary rows of Google Ads exports
        terms = df['search_term'].astype(str).str.strip()
        df = df[df['search_term'].notna() & (terms != '') & ~terms.str.startswith('Total:')]
        df = df.reset_index(drop=True)

    for col in NUMERIC_COLUMNS:
        if col in df.columns:
            df[col] = clean_numeric(df[col])

    return df


def validate_csv(df: pd.DataFrame) -> Tuple[bool, List[str]]:
    """
    Validate that the report has the required columns.

    Returns:
        Tuple of (is_valid, list of missing required columns)
    """
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    return len(missing) == 0, missing


def dataframe_to_records(df: pd.DataFrame) -> List[QueryRecord]:
    """
    Convert a standardized DataFrame into QueryRecords.

    Missing optional columns default to 0 (metrics) or '' (campaign).
    """
    records = []
    for row in df.to_dict('records'):
        campaign = row.get('campaign', '')
        records.append(QueryRecord(
            text=str(row.get('search_term', '')),
            campaign='' if pd.isna(campaign) else str(campaign),
            impressions=int(row.get('impressions', 0) or 0),
            clicks=int(row.get('clicks', 0) or 0),
            cost=float(row.get('cost', 0) or 0),
            conversions=float(row.get('conversions', 0) or 0),
            conversion_value=float(row.get('conversion_value', 0) or 0),
        ))
    return records


def get_data_summary(df: pd.DataFrame) -> Dict[str, float]:
    """
    Get a summary of the data.

    Returns:
        Dictionary with summary statistics
    """
    def total(col):
        return float(df[col].sum()) if col in df.columns else 0

    return {
        'total_rows': len(df),
        'total_campaigns': int(df['campaign'].nunique()) if 'campaign' in df.columns else 0,
        'total_search_terms': int(df['search_term'].nunique()) if 'search_term' in df.columns else 0,
        'total_impressions': total('impressions'),
        'total_clicks': total('clicks'),
        'total_cost': round(total('cost'), 2),
        'total_conversions': round(total('conversions'), 2),
        'total_conversion_value': round(total('conversion_value'), 2),
    }
