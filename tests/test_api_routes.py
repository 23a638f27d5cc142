import sqlite3

import pytest

from didmove.api import app
from didmove.errors import UpstreamError


@pytest.fixture
def client(store, fake_node, no_sleep, monkeypatch):
    monkeypatch.setitem(app.config, 'STORE', store)
    monkeypatch.setitem(app.config, 'CLIENT', fake_node)
    monkeypatch.setenv('MODULE_ADDRESS', '0xc0de')
    monkeypatch.setenv('URL', 'https://api.example')
    monkeypatch.setenv('CONFIRM_INTERVAL', '0')
    return app.test_client()


def _new_account(client):
    r = client.get('/acct_gen')
    assert r.status_code == 200
    return r.get_json()['address']


@pytest.mark.parametrize('path', [
    '/did_init?addr=0xa&type=0',
    '/did_register_service?addr=0xa&description=d',
    '/record_insert?addr=0xa',
    '/balance',
    '/resources',
    '/records',
    '/acct_info',
])
def test_missing_parameters_are_plain_400(client, path):
    r = client.get(path)
    assert r.status_code == 400
    assert r.mimetype == 'text/plain'
    assert r.get_data(as_text=True) == 'Missing required parameters'


def test_acct_gen_and_info(client, store):
    addr = _new_account(client)
    assert store.get(('accounts', addr))['priv']
    r = client.get(f'/acct_info?addr={addr}')
    data = r.get_json()
    assert data['info'] == {'data_count': 0}
    assert 'priv' not in str(data)


def test_did_init_then_conflict(client, store, fake_node):
    addr = _new_account(client)
    r = client.get('/did_init', query_string={'addr': addr, 'type': '1', 'description': 'ACME'})
    assert r.status_code == 200
    assert r.get_json()['hash'] == '0xhash1'
    r = client.get('/did_init', query_string={'addr': addr, 'type': '0', 'description': 'other'})
    assert r.status_code == 400
    assert r.get_data(as_text=True) == 'DID already exists for this address'
    assert store.get(('accounts', 'did', addr))['description'] == 'ACME'
    assert fake_node.submitted[0]['transaction']['payload']['function'] == '0xc0de::did::init'


def test_did_init_unknown_account(client):
    r = client.get('/did_init', query_string={'addr': '0xmissing', 'type': '1', 'description': 'x'})
    assert r.status_code == 400
    assert r.get_data(as_text=True) == 'Account not found'


def test_did_init_upstream_failure_is_json_500(client, store, fake_node):
    addr = _new_account(client)
    fake_node.submit_error = UpstreamError('Transaction submission failed: {"message":"SEQUENCE_NUMBER_TOO_OLD"}', status_code=400)
    r = client.get('/did_init', query_string={'addr': addr, 'type': '1', 'description': 'x'})
    assert r.status_code == 500
    body = r.get_json()
    assert body['error'] == 'Failed to initialize DID'
    assert 'SEQUENCE_NUMBER_TOO_OLD' in body['details']
    assert store.get(('accounts', 'did', addr)) is None


def test_did_init_timeout_is_json_500(client, store, fake_node, monkeypatch):
    monkeypatch.setenv('CONFIRM_MAX_ATTEMPTS', '3')
    fake_node.pending_polls = 5
    addr = _new_account(client)
    r = client.get('/did_init', query_string={'addr': addr, 'type': '1', 'description': 'x'})
    assert r.status_code == 500
    assert 'timed out' in r.get_json()['details']
    assert fake_node.polls == 3
    assert store.get(('accounts', 'did', addr)) is None


def test_register_service_and_view(client):
    addr = _new_account(client)
    r = client.get('/did_register_service', query_string={'addr': addr, 'name': 'corr.ai', 'description': 'trading'})
    assert r.status_code == 200
    r = client.get('/did_register_service', query_string={'addr': addr, 'name': 'two', 'description': 'd'})
    services = client.get(f'/acct_info?addr={addr}').get_json()['services']['services']
    assert [s['name'] for s in services] == ['corr.ai', 'two']
    assert services[0]['url'] == f'https://api.example/records?addr={addr}'


def test_records_in_insertion_order(client):
    addr = _new_account(client)
    for rec in ('alpha', 'beta', 'gamma'):
        assert client.get('/record_insert', query_string={'addr': addr, 'record': rec}).status_code == 200
    r = client.get(f'/records?addr={addr}')
    assert r.get_json() == {'addr': addr, 'records': ['alpha', 'beta', 'gamma']}
    assert client.get(f'/acct_info?addr={addr}').get_json()['info'] == {'data_count': 3}


def test_balance(client):
    r = client.get('/balance?addr=0xa')
    assert r.status_code == 200
    assert r.get_json()['balance_apt'] == 5.0


def test_resources_list(client):
    r = client.get('/resources?addr=0xa')
    assert isinstance(r.get_json(), list)


def test_did_view(client, fake_node):
    fake_node.dids['0xa'] = {'type': 2, 'description': 'agent'}
    r = client.get('/did_view?addr=0xa')
    assert r.get_json()['type_label'] == 'AI Agent'


def test_network_info(client, monkeypatch):
    monkeypatch.setenv('NETWORK', 'bardock')
    assert client.get('/network_info').get_json()['network'] == 'bardock'


def test_health_and_metrics(client):
    assert client.get('/health').get_json() == {'status': 'ok'}
    r = client.get('/metrics')
    assert r.status_code == 200
    assert b'didmove_requests_total' in r.data


def test_health_closes_connection_on_failure(client, monkeypatch):
    closed = []

    class BrokenConn:
        def execute(self, sql):
            raise sqlite3.OperationalError('disk I/O error')

        def close(self):
            closed.append(True)

    class BrokenStore:
        def get_conn(self):
            return BrokenConn()

    monkeypatch.setitem(app.config, 'STORE', BrokenStore())
    r = client.get('/health')
    assert r.status_code == 500
    assert r.get_json() == {'status': 'error'}
    assert closed == [True]


def test_cors_header(client):
    r = client.get('/', headers={'Origin': 'https://dapp.example'})
    assert r.headers.get('Access-Control-Allow-Origin') in ('*', 'https://dapp.example')
