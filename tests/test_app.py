"""
Tests for the Flask endpoints.
"""

import io
import os

import pytest

import app as web


REPORT = (
    'Search term,Campaign,Impr.,Clicks,Cost,Conversions,Conv. value\n'
    'buy running shoes,Search - Shoes,400,40,60.00,4,400\n'
    'free running shoes,Search - Shoes,500,2,3.00,0,0\n'
    'brand running shoes,Brand,300,30,15.00,3,240\n'
)


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setitem(web.app.config, 'UPLOAD_FOLDER', str(tmp_path / 'uploads'))
    monkeypatch.setitem(web.app.config, 'OUTPUT_FOLDER', str(tmp_path / 'outputs'))
    os.makedirs(web.app.config['UPLOAD_FOLDER'])
    os.makedirs(web.app.config['OUTPUT_FOLDER'])
    web.app.config['TESTING'] = True
    with web.app.test_client() as client:
        yield client


def upload(client, content=REPORT, filename='report.csv', **fields):
    data = {'file': (io.BytesIO(content.encode('utf-8')), filename), **fields}
    return client.post('/upload', data=data, content_type='multipart/form-data')


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_upload_report(client):
    response = upload(client, ngram_sizes='1,2', min_impressions='100')

    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['summary']['rows_analyzed'] == 3
    assert [r['ngram'] for r in body['negative_candidates']] == ['free', 'free running']
    assert os.path.exists(os.path.join(web.app.config['OUTPUT_FOLDER'], body['output_file']))
    assert os.listdir(web.app.config['UPLOAD_FOLDER']) == []

    download = client.get(f"/download/{body['output_file']}")
    assert download.status_code == 200


def test_upload_with_campaign_filter(client):
    response = upload(client, ngram_sizes='1', campaign_name_does_not_contain='brand')

    body = response.get_json()
    assert body['summary']['rows_analyzed'] == 2
    assert body['summary']['original_rows'] == 3


def test_upload_rejects_bad_config(client):
    response = upload(client, ngram_sizes='0')

    assert response.status_code == 400
    assert 'ngram_sizes' in response.get_json()['error']


def test_upload_missing_columns(client):
    response = upload(client, content='Keyword,Bid\nshoes,1.00\n')

    assert response.status_code == 400
    assert 'impressions' in response.get_json()['missing_columns']


def test_upload_wrong_extension(client):
    response = upload(client, filename='report.txt')
    assert response.status_code == 400


def test_upload_without_file(client):
    response = client.post('/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_download_missing(client):
    assert client.get('/download/nope.xlsx').status_code == 404


def test_api_analyze(client):
    payload = {
        'records': [
            {'text': 'buy cheap shoes', 'campaign': 'Search', 'impressions': 100, 'clicks': 10,
             'cost': 20.0, 'conversions': 0, 'conversion_value': 0},
        ],
        'config': {'ngram_sizes': [1], 'stop_words': [], 'min_impressions': 50, 'min_clicks': 5},
    }

    response = client.post('/api/analyze', json=payload)

    assert response.status_code == 200
    body = response.get_json()
    assert body['summary']['1gram_count'] == 3
    assert sorted(r['ngram'] for r in body['keyword_opportunities']) == ['buy', 'cheap', 'shoes']
    assert all(r['reason'] == 'High CTR' for r in body['keyword_opportunities'])
    assert body['negative_candidates'] == []


def test_api_analyze_empty_records(client):
    response = client.post('/api/analyze', json={'records': []})

    body = response.get_json()
    assert body['success'] is True
    assert body['keyword_opportunities'] == []
    assert body['negative_candidates'] == []


@pytest.mark.parametrize('payload', [
    {'records': [], 'config': {'ngram_sizes': []}},
    {'records': [{'query': 'shoes'}]},
    ['not', 'an', 'object'],
    {'records': 'nope'},
    {'records': [5]},
    {'records': [{'text': 'red shoes', 'impressions': 'abc'}]},
    {'records': [{'text': 'red shoes', 'clicks': -1}]},
])
def test_api_analyze_bad_input(client, payload):
    response = client.post('/api/analyze', json=payload)
    assert response.status_code == 400


def test_api_analyze_bad_metric_names_the_field(client):
    response = client.post('/api/analyze', json={'records': [{'text': 'red shoes', 'impressions': 'abc'}]})

    assert response.status_code == 400
    assert 'impressions' in response.get_json()['error']


def test_api_analyze_with_campaign_filter(client):
    payload = {
        'records': [
            {'text': 'brand running shoes', 'campaign': 'Brand', 'impressions': 300, 'clicks': 30,
             'cost': 15.0, 'conversions': 3, 'conversion_value': 240},
            {'text': 'buy running shoes', 'campaign': 'Search - Shoes', 'impressions': 400,
             'clicks': 40, 'cost': 60.0, 'conversions': 4, 'conversion_value': 400},
        ],
        'config': {'ngram_sizes': [1], 'stop_words': [], 'min_impressions': 50, 'min_clicks': 5,
                   'campaign_name_does_not_contain': 'brand'},
    }

    response = client.post('/api/analyze', json=payload)

    assert response.status_code == 200
    body = response.get_json()
    assert body['summary']['record_count'] == 1
    assert body['summary']['total_impressions'] == 400
    assert 'brand' not in [r['ngram'] for r in body['keyword_opportunities']]


def test_upload_with_brand_terms(client):
    response = upload(client, ngram_sizes='1,2', min_impressions='100', brand_terms='Free')

    assert response.status_code == 200
    assert response.get_json()['negative_candidates'] == []
