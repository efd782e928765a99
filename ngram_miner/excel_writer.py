"""
Excel Writer Utility for the N-gram Miner
Generates a multi-sheet Excel workbook with the N-gram tables per size and
the keyword opportunity / negative candidate lists.
"""

import logging
from datetime import datetime
from typing import List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .analyzer import AnalysisResult
from .models import Recommendation
from .suggestions import format_negative_keyword

logger = logging.getLogger(__name__)


# (key, header, width)
NGRAM_COLUMNS = [
    ('date', 'Date', 12),
    ('ngram', 'N-Gram', 30),
    ('queries', 'Queries', 10),
    ('impressions', 'Impressions', 13),
    ('clicks', 'Clicks', 10),
    ('ctr', 'CTR', 10),
    ('cost', 'Cost', 12),
    ('conversions', 'Conversions', 13),
    ('conv_rate', 'Conv Rate', 11),
    ('cpa', 'CPA', 10),
    ('roas', 'ROAS', 10),
]

RECOMMENDATION_COLUMNS = [
    ('date', 'Date', 12),
    ('ngram', 'N-Gram', 30),
    ('size', 'Size', 7),
    ('reason', 'Reason', 22),
    ('impressions', 'Impressions', 13),
    ('clicks', 'Clicks', 10),
    ('ctr', 'CTR', 10),
    ('cost', 'Cost', 12),
    ('conversions', 'Conversions', 13),
    ('conv_rate', 'Conv Rate', 11),
    ('cpa', 'CPA', 10),
]

NEGATIVE_KEYWORD_COLUMN = ('negative_keyword', 'Negative Keyword', 32)

PERCENT_COLUMNS = {'ctr', 'conv_rate'}
CURRENCY_COLUMNS = {'cost', 'cpa', 'cpc'}

# Colors
HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
KEYWORD_HEADER_FILL = PatternFill(start_color="70AD47", end_color="70AD47", fill_type="solid")
NEGATIVE_HEADER_FILL = PatternFill(start_color="C00000", end_color="C00000", fill_type="solid")
SIZE_HEADER_FILLS = [
    PatternFill(start_color="5B9BD5", end_color="5B9BD5", fill_type="solid"),
    PatternFill(start_color="ED7D31", end_color="ED7D31", fill_type="solid"),
    PatternFill(start_color="7030A0", end_color="7030A0", fill_type="solid"),
]

THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


def ngram_sheet_name(size: int) -> str:
    return f"{size}-Grams"


def write_header_row(ws, columns: list, header_fill: PatternFill, row: int = 1) -> None:
    """Write a bold, filled header row and freeze it."""
    for col_idx, (_, col_name, col_width) in enumerate(columns, 1):
        cell = ws.cell(row=row, column=col_idx, value=col_name)
        cell.fill = header_fill
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal='center')
        cell.border = THIN_BORDER
        ws.column_dimensions[get_column_letter(col_idx)].width = col_width
    ws.freeze_panes = ws.cell(row=row + 1, column=1)


def write_data_rows(ws, rows: List[dict], columns: list, start_row: int = 2) -> int:
    """
    Write data rows with number formats applied per column.

    Args:
        ws: Worksheet object
        rows: One dictionary per row, keyed by column key
        columns: Column configuration list
        start_row: First data row

    Returns:
        Number of rows written
    """
    current_row = start_row
    for row in rows:
        for col_idx, (col_key, _, _) in enumerate(columns, 1):
            cell = ws.cell(row=current_row, column=col_idx, value=row.get(col_key, ''))
            cell.border = THIN_BORDER
            if col_key in PERCENT_COLUMNS:
                cell.number_format = '0.00%'
            elif col_key in CURRENCY_COLUMNS:
                cell.number_format = '#,##0.00'
            elif col_key == 'roas':
                cell.number_format = '0.00'
            if col_key not in ('ngram', 'reason', 'negative_keyword'):
                cell.alignment = Alignment(horizontal='center')
        current_row += 1
    return current_row - start_row


def create_ngram_sheet(wb: Workbook, size: int, df: pd.DataFrame, date_str: str) -> None:
    """
    Create the worksheet listing every N-gram of one size.

    Args:
        wb: Workbook object
        size: N-gram size
        df: DataFrame from aggregates_to_dataframe (already filtered and sorted)
        date_str: Report date written in the first column
    """
    ws = wb.create_sheet(title=ngram_sheet_name(size))
    fill = SIZE_HEADER_FILLS[(size - 1) % len(SIZE_HEADER_FILLS)]
    write_header_row(ws, NGRAM_COLUMNS, fill)

    rows = df.to_dict('records')
    for row in rows:
        row['date'] = date_str
    write_data_rows(ws, rows, NGRAM_COLUMNS)


def create_recommendation_sheet(wb: Workbook, title: str, recommendations: List[Recommendation],
                                date_str: str, header_fill: PatternFill,
                                match_type: Optional[str] = None) -> None:
    """
    Create a worksheet for one recommendation list.

    When ``match_type`` is given, a column with the N-gram formatted as a
    negative keyword is appended.
    """
    ws = wb.create_sheet(title=title)
    columns = list(RECOMMENDATION_COLUMNS)
    if match_type:
        columns.append(NEGATIVE_KEYWORD_COLUMN)
    write_header_row(ws, columns, header_fill)

    rows = []
    for rec in recommendations:
        row = rec.to_dict()
        row['date'] = date_str
        if match_type:
            row['negative_keyword'] = format_negative_keyword(rec.ngram_text, match_type)
        rows.append(row)
    write_data_rows(ws, rows, columns)


def create_summary_sheet(wb: Workbook, result: AnalysisResult, generated_at: datetime) -> None:
    """
    Create the summary sheet with record counts and links to each sheet.

    Args:
        wb: Workbook object
        result: Analysis result
        generated_at: Timestamp shown under the title
    """
    ws = wb.active
    ws.title = "Summary"

    ws.cell(row=1, column=1, value="N-Gram Search Query Analysis")
    ws.cell(row=1, column=1).font = Font(bold=True, size=16)
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=4)
    ws.cell(row=2, column=1, value=f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}")
    ws.cell(row=2, column=1).font = Font(italic=True)

    summary_columns = [('sheet', 'Sheet', 28), ('count', 'Count', 12)]
    write_header_row(ws, summary_columns, HEADER_FILL, row=4)
    ws.freeze_panes = None

    current_row = 5
    entries = [(ngram_sheet_name(size), len(ngrams)) for size, ngrams in result.aggregates.items()]
    entries.append(("Keyword Opportunities", len(result.keyword_opportunities)))
    entries.append(("Negative Candidates", len(result.negative_candidates)))

    for sheet_name, count in entries:
        cell = ws.cell(row=current_row, column=1, value=sheet_name)
        cell.hyperlink = f"#'{sheet_name}'!A1"
        cell.font = Font(color="0563C1", underline="single")
        cell.border = THIN_BORDER
        count_cell = ws.cell(row=current_row, column=2, value=count)
        count_cell.border = THIN_BORDER
        count_cell.alignment = Alignment(horizontal='center')
        current_row += 1

    current_row += 1
    totals = result.account_summary
    for label, key in [("Search queries", None), ("Total impressions", 'total_impressions'),
                       ("Total clicks", 'total_clicks'), ("Total cost", 'total_cost'),
                       ("Total conversions", 'total_conversions')]:
        ws.cell(row=current_row, column=1, value=label).font = Font(bold=True)
        value = result.record_count if key is None else totals.get(key, 0)
        ws.cell(row=current_row, column=2, value=value)
        current_row += 1


def create_excel_output(result: AnalysisResult, output_path: str,
                        generated_at: Optional[datetime] = None) -> str:
    """
    Create the final Excel output file for an analysis run.

    N-gram sheets only list N-grams meeting the minimum impressions.

    Args:
        result: AnalysisResult from run_analysis
        output_path: Path where the Excel file should be saved
        generated_at: Report timestamp (defaults to now)

    Returns:
        Path to the created file
    """
    generated_at = generated_at or datetime.now()
    date_str = generated_at.strftime('%Y-%m-%d')
    wb = Workbook()

    create_summary_sheet(wb, result, generated_at)

    for size, df in result.to_dataframes(result.config.min_impressions).items():
        create_ngram_sheet(wb, size, df, date_str)

    create_recommendation_sheet(wb, "Keyword Opportunities", result.keyword_opportunities,
                                date_str, KEYWORD_HEADER_FILL)
    create_recommendation_sheet(wb, "Negative Candidates", result.negative_candidates,
                                date_str, NEGATIVE_HEADER_FILL,
                                match_type=result.config.negative_match_type)

    wb.save(output_path)
    logger.info(f"Wrote analysis workbook to {output_path}")

    return output_path


def generate_output_filename(prefix: str = "NGram_Analysis") -> str:
    """
    Generate a filename with timestamp.

    Args:
        prefix: Prefix for the filename

    Returns:
        Filename string
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    return f"{prefix}_{timestamp}.xlsx"
