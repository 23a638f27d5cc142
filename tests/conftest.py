import sys
import os
import time
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from didmove.db import KVStore
from didmove.errors import UpstreamError


class FakeFullnode:
    """Stands in for FullnodeClient; records submissions and answers polls."""

    def __init__(self, pending_polls=0):
        self.sequence = 0
        self.submitted = []
        self.pending_polls = pending_polls
        self.polls = 0
        self.dids = {}
        self.submit_error = None

    def sequence_number(self, address):
        return str(self.sequence)

    def submit(self, signed_txn):
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(signed_txn)
        self.sequence += 1
        return f'0xhash{len(self.submitted)}'

    def transaction_by_hash(self, txn_hash):
        self.polls += 1
        if self.polls <= self.pending_polls:
            raise UpstreamError('Transaction not found', status_code=404, body='{"error_code":"transaction_not_found"}')
        return {'type': 'user_transaction', 'success': True, 'hash': txn_hash, 'version': str(1000 + len(self.submitted))}

    def balance(self, address):
        return {'balance_octas': '500000000', 'balance_apt': 5.0, 'frozen': False}

    def resources(self, address):
        return [{'type': '0x1::account::Account', 'data': {'sequence_number': str(self.sequence)}}]

    def view(self, function, type_args=None, args=None):
        did = self.dids[args[0]]
        if function.endswith('::get_type'):
            return [str(did['type'])]
        return [did['description']]


@pytest.fixture
def store(tmp_path):
    return KVStore(tmp_path / 'kv.db').init_db()


@pytest.fixture
def fake_node():
    return FakeFullnode()


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr(time, 'sleep', lambda s: None)
