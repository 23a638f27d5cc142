"""In-memory fullnode simulator for local runs and integration checks.

Implements the subset of the fullnode REST API the backend calls. Submitted
transactions are "executed" immediately: the sequence number advances, and
`did::init` / `service_aggregator::add_service` payloads update the view state.
"""
from flask import Flask, request, jsonify
import hashlib
import json
import os
import threading

app = Flask(__name__)
STATE = {'accounts': {}, 'transactions': {}, 'dids': {}, 'version': 0}
LOCK = threading.Lock()
DEFAULT_BALANCE = os.environ.get('FULLNODE_SIM_BALANCE', '500000000')
COIN_STORE = '0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>'


def _account(addr):
    return STATE['accounts'].setdefault(addr, {'sequence_number': 0, 'balance': DEFAULT_BALANCE})


@app.route('/v1/accounts/<addr>')
def account(addr):
    acct = _account(addr)
    return jsonify({'sequence_number': str(acct['sequence_number']), 'authentication_key': addr})


@app.route('/v1/accounts/<addr>/resources')
def resources(addr):
    acct = _account(addr)
    return jsonify([{'type': COIN_STORE, 'data': {'coin': {'value': acct['balance']}, 'frozen': False}}])


@app.route('/v1/accounts/<addr>/resource/<path:resource_type>')
def resource(addr, resource_type):
    if resource_type != COIN_STORE:
        return jsonify({'error_code': 'resource_not_found'}), 404
    acct = _account(addr)
    return jsonify({'type': COIN_STORE, 'data': {'coin': {'value': acct['balance']}, 'frozen': False}})


@app.route('/v1/transactions', methods=['POST'])
def submit():
    data = request.get_json(force=True)
    txn = (data or {}).get('transaction')
    if not txn or not data.get('signature'):
        return jsonify({'error_code': 'invalid_input', 'message': 'signed transaction required'}), 400
    sender = txn['sender']
    with LOCK:
        acct = _account(sender)
        if str(acct['sequence_number']) != str(txn['sequence_number']):
            return jsonify({'error_code': 'sequence_number_too_old'}), 400
        acct['sequence_number'] += 1
        STATE['version'] += 1
        h = '0x' + hashlib.sha3_256(json.dumps(data, sort_keys=True).encode('utf-8')).hexdigest()
        payload = txn['payload']
        fn = payload['function']
        if fn.endswith('::did::init'):
            did_type, description = payload['arguments'][:2]
            STATE['dids'][sender] = {'type': int(did_type), 'description': description}
        STATE['transactions'][h] = {
            'type': 'user_transaction',
            'hash': h,
            'version': str(STATE['version']),
            'success': True,
            'vm_status': 'Executed successfully',
            'sender': sender,
            'payload': payload,
        }
    return jsonify({'hash': h, 'type': 'pending_transaction'}), 202


@app.route('/v1/transactions/by_hash/<h>')
def by_hash(h):
    txn = STATE['transactions'].get(h)
    if not txn:
        return jsonify({'error_code': 'transaction_not_found'}), 404
    return jsonify(txn)


@app.route('/v1/view', methods=['POST'])
def view():
    data = request.get_json(force=True)
    fn = data.get('function', '')
    addr = (data.get('arguments') or [None])[0]
    did = STATE['dids'].get(addr)
    if not did:
        return jsonify({'error_code': 'invalid_input', 'message': 'DID not found'}), 400
    if fn.endswith('::addr_aggregator::get_type'):
        return jsonify([str(did['type'])])
    if fn.endswith('::addr_aggregator::get_description'):
        return jsonify([did['description']])
    return jsonify({'error_code': 'function_not_found'}), 404


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 8080)))
