from flask import Flask, Response, current_app, request, jsonify
from flask_cors import CORS
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import logging

from . import config, services
from .chain import FullnodeClient
from .db import KVStore
from .errors import DidMoveError
from .metrics import registry, REQUEST_COUNTER
from .transactions import ConfirmationPolicy, TransactionBuilder

logger = logging.getLogger(__name__)

app = Flask(__name__)
# STORE / CLIENT may be injected; otherwise built from config on first use
app.config.setdefault('STORE', None)
app.config.setdefault('CLIENT', None)
CORS(app)


def _store() -> KVStore:
    store = current_app.config.get('STORE')
    if store is None:
        store = KVStore(config.get_db_path()).init_db()
        current_app.config['STORE'] = store
    return store


def _client():
    return current_app.config.get('CLIENT') or FullnodeClient(config.get_node_url())


def _builder() -> TransactionBuilder:
    return TransactionBuilder(_client(), ConfirmationPolicy(**config.get_confirm_settings()))


def _text(message, status):
    return Response(message, status=status, mimetype='text/plain')


def _failure(label, exc):
    """Client-side errors become plain-text 400s; everything else a JSON 500."""
    if isinstance(exc, DidMoveError) and exc.status < 500:
        return _text(exc.message, exc.status)
    if isinstance(exc, DidMoveError):
        logger.warning('%s: %s', label, exc)
    else:
        logger.exception('%s', label)
    return jsonify({'error': label, 'details': str(exc)}), 500


@app.before_request
def count_request():
    REQUEST_COUNTER.labels(route=request.endpoint or 'unknown').inc()


@app.route('/')
def index():
    return _text('Hello from didmove!', 200)


@app.route('/network_info')
def network_info():
    return {'network': config.get_network(), 'url': config.get_service_base_url(), 'node_url': config.get_node_url()}


@app.route('/acct_gen')
def acct_gen():
    try:
        return services.generate_account(_store())
    except Exception as e:
        return _failure('Failed to generate account', e)


@app.route('/acct_info')
def acct_info():
    addr = request.args.get('addr')
    try:
        return services.account_info(_store(), addr, config.get_network())
    except Exception as e:
        return _failure('Failed to fetch account info', e)


@app.route('/balance')
def balance():
    addr = request.args.get('addr')
    if not addr:
        return _text('Missing required parameters', 400)
    try:
        return _client().balance(addr)
    except Exception as e:
        return _failure('Failed to fetch balance', e)


@app.route('/resources')
def resources():
    addr = request.args.get('addr')
    if not addr:
        return _text('Missing required parameters', 400)
    try:
        return jsonify(_client().resources(addr))
    except Exception as e:
        return _failure('Failed to fetch resources', e)


@app.route('/did_init')
def did_init():
    args = request.args
    try:
        return services.init_did(
            _store(), _builder(), config.get_module_address(),
            args.get('addr'), args.get('type'), args.get('description'))
    except Exception as e:
        return _failure('Failed to initialize DID', e)


@app.route('/did_register_service')
def did_register_service():
    args = request.args
    try:
        return services.register_service(
            _store(), _builder(), config.get_module_address(), config.get_service_base_url(),
            args.get('addr'), args.get('name'), args.get('description'),
            url=args.get('url'),
            verification_url=args.get('verification_url', ''),
            spec_fields=args.get('spec_fields', ''),
            expired_at=args.get('expired_at', 0))
    except Exception as e:
        return _failure('Failed to register service', e)


@app.route('/did_view')
def did_view():
    addr = request.args.get('addr')
    try:
        return services.view_did(_client(), config.get_module_address(), addr)
    except Exception as e:
        return _failure('Failed to fetch DID', e)


@app.route('/record_insert')
def record_insert():
    args = request.args
    try:
        return services.insert_record(_store(), args.get('addr'), args.get('record'))
    except Exception as e:
        return _failure('Failed to insert record', e)


@app.route('/records')
def records():
    addr = request.args.get('addr')
    try:
        return {'addr': addr, 'records': services.list_records(_store(), addr)}
    except Exception as e:
        return _failure('Failed to list records', e)


@app.route('/health')
def health():
    # basic health: store accessible
    try:
        conn = _store().get_conn()
        try:
            conn.execute('SELECT 1').fetchone()
        finally:
            conn.close()
        return jsonify({'status': 'ok'})
    except Exception:
        logger.exception('Health check failed')
        return jsonify({'status': 'error'}), 500


@app.route('/metrics')
def metrics():
    return generate_latest(registry), 200, {'Content-Type': CONTENT_TYPE_LATEST}
