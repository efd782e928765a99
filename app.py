"""
N-gram Miner Web Application
Flask application for mining Google Ads search query reports for keyword
opportunities and negative keyword candidates.
"""

import logging
import os
import time
import uuid
from datetime import datetime

from flask import Flask, jsonify, render_template, request, send_file
from werkzeug.utils import secure_filename

from ngram_miner.analyzer import run_analysis
from ngram_miner.config import config_from_form, load_config
from ngram_miner.csv_parser import (
    dataframe_to_records,
    get_data_summary,
    parse_csv,
    validate_csv,
)
from ngram_miner.excel_writer import create_excel_output, generate_output_filename
from ngram_miner.exceptions import ConfigurationError, InputFileError, InvalidRecordError
from ngram_miner.models import load_records

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# Configuration
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024  # 50MB max file size
app.config['UPLOAD_FOLDER'] = os.path.join(os.path.dirname(__file__), 'uploads')
app.config['OUTPUT_FOLDER'] = os.path.join(os.path.dirname(__file__), 'outputs')
app.config['ALLOWED_EXTENSIONS'] = {'csv', 'xlsx', 'xls'}
app.config['MAX_FILE_AGE'] = 3600  # seconds

os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
os.makedirs(app.config['OUTPUT_FOLDER'], exist_ok=True)


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and \
           filename.rsplit('.', 1)[1].lower() in app.config['ALLOWED_EXTENSIONS']


def process_report_file(filepath: str, config) -> dict:
    """
    Process a search query report through the entire N-gram analysis pipeline.

    Args:
        filepath: Path to the uploaded report
        config: Validated MinerConfig

    Returns:
        Dictionary with processing results and output file name
    """
    df = parse_csv(filepath)

    is_valid, missing_cols = validate_csv(df)
    if not is_valid:
        return {
            'success': False,
            'error': f"Missing required columns: {', '.join(missing_cols)}",
            'missing_columns': missing_cols
        }

    initial_summary = get_data_summary(df)

    records = dataframe_to_records(df)

    result = run_analysis(records, config)

    output_filename = generate_output_filename()
    output_path = os.path.join(app.config['OUTPUT_FOLDER'], output_filename)
    create_excel_output(result, output_path)

    return {
        'success': True,
        'output_file': output_filename,
        'summary': {
            'original_rows': initial_summary['total_rows'],
            'rows_analyzed': result.record_count,
            'total_search_terms': initial_summary['total_search_terms'],
            'total_cost': initial_summary['total_cost'],
            **result.summary(),
        },
        'keyword_opportunities': [r.to_dict() for r in result.keyword_opportunities],
        'negative_candidates': [r.to_dict() for r in result.negative_candidates],
    }


def remove_file(filepath: str) -> None:
    try:
        os.remove(filepath)
    except OSError as e:
        logger.warning(f"Could not remove {filepath}: {e}")


@app.route('/')
def index():
    """Render the main page."""
    return render_template('index.html')


@app.route('/upload', methods=['POST'])
def upload_file():
    """Handle report upload and processing."""
    if 'file' not in request.files:
        return jsonify({'success': False, 'error': 'No file uploaded'}), 400

    file = request.files['file']

    if file.filename == '':
        return jsonify({'success': False, 'error': 'No file selected'}), 400

    if not allowed_file(file.filename):
        return jsonify({'success': False, 'error': 'Invalid file type. Please upload a CSV or Excel file.'}), 400

    try:
        config = config_from_form(request.form)
    except ConfigurationError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    filename = secure_filename(file.filename)
    filepath = os.path.join(app.config['UPLOAD_FOLDER'], f"{uuid.uuid4().hex}_{filename}")
    file.save(filepath)

    try:
        result = process_report_file(filepath, config)
    except InputFileError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        logger.exception("Failed to process uploaded report")
        return jsonify({'success': False, 'error': f'Processing error: {str(e)}'}), 500
    finally:
        remove_file(filepath)

    if result['success']:
        return jsonify(result)
    return jsonify(result), 400


@app.route('/api/analyze', methods=['POST'])
def analyze_records():
    """
    Analyze query records posted as JSON.

    Body: ``{"records": [{"text": ..., "impressions": ...}, ...], "config": {...}}``
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'success': False, 'error': 'Expected a JSON object'}), 400

    rows = payload.get('records', [])
    if not isinstance(rows, list):
        return jsonify({'success': False, 'error': 'records must be a list'}), 400

    try:
        config = load_config(payload.get('config') or {})
        records = load_records(rows)
    except (ConfigurationError, InvalidRecordError) as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    result = run_analysis(records, config)

    return jsonify({
        'success': True,
        'summary': result.summary(),
        'keyword_opportunities': [r.to_dict() for r in result.keyword_opportunities],
        'negative_candidates': [r.to_dict() for r in result.negative_candidates],
    })


@app.route('/download/<filename>')
def download_file(filename):
    """Download a generated Excel file."""
    filepath = os.path.join(app.config['OUTPUT_FOLDER'], secure_filename(filename))

    if not os.path.exists(filepath):
        return jsonify({'success': False, 'error': 'File not found'}), 404

    return send_file(
        filepath,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=filename
    )


@app.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now().isoformat()
    })


def cleanup_old_files() -> None:
    """Remove old files from upload and output folders."""
    current_time = time.time()

    for folder in [app.config['UPLOAD_FOLDER'], app.config['OUTPUT_FOLDER']]:
        if not os.path.exists(folder):
            continue
        for filename in os.listdir(folder):
            filepath = os.path.join(folder, filename)
            if os.path.isfile(filepath) and current_time - os.path.getmtime(filepath) > app.config['MAX_FILE_AGE']:
                remove_file(filepath)


if __name__ == '__main__':
    cleanup_old_files()
    app.run(debug=True, host='0.0.0.0', port=5000)
