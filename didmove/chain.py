"""Fullnode REST API wrapper.

Thin read/submit helpers over the network's HTTP interface. Non-success
responses raise `UpstreamError` with the response body attached.
"""
import logging
from typing import Any, Dict, List, Optional

from . import http_client
from .errors import UpstreamError

logger = logging.getLogger(__name__)

COIN_STORE = '0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>'
OCTAS_PER_COIN = 100_000_000


class FullnodeClient:
    def __init__(self, base_url: str, timeout: int = 15):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    # every read is a single attempt; failures go straight to the caller
    def _get_json(self, path: str, message: str) -> Any:
        resp = http_client.get(f'{self.base_url}{path}', retries=1, timeout=self.timeout)
        http_client.check(resp, message)
        return resp.json()

    def account(self, address: str, message: str = 'Failed to fetch account') -> Dict[str, str]:
        """Returns the sequence number and authentication key for an account"""
        return self._get_json(f'/accounts/{address}', message)

    def sequence_number(self, address: str) -> str:
        return str(self.account(address, 'Failed to fetch account sequence number')['sequence_number'])

    def resources(self, address: str) -> List[Dict[str, Any]]:
        return self._get_json(f'/accounts/{address}/resources', 'Failed to fetch resources')

    def resource(self, address: str, resource_type: str) -> Optional[Dict[str, Any]]:
        resp = http_client.get(f'{self.base_url}/accounts/{address}/resource/{resource_type}', retries=1, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        http_client.check(resp, f'Failed to fetch resource {resource_type}')
        return resp.json()

    def balance(self, address: str) -> Dict[str, Any]:
        """Native coin balance, in octas and in whole coins."""
        res = self.resource(address, COIN_STORE)
        if res is None:
            raise UpstreamError('Failed to fetch balance: coin store not found', status_code=404)
        data = res['data']
        octas = str(data['coin']['value'])
        return {
            'balance_octas': octas,
            'balance_apt': int(octas) / OCTAS_PER_COIN,
            'frozen': data.get('frozen', False),
        }

    def view(self, function: str, type_args: Optional[list] = None, args: Optional[list] = None) -> list:
        body = {
            'function': function,
            'type_arguments': type_args or [],
            'arguments': args or [],
        }
        resp = http_client.post_json(f'{self.base_url}/view', body, timeout=self.timeout)
        http_client.check(resp, f'View function {function} failed')
        return resp.json()

    def submit(self, signed_txn: Dict[str, Any]) -> str:
        resp = http_client.post_json(f'{self.base_url}/transactions', signed_txn, timeout=self.timeout)
        http_client.check(resp, 'Transaction submission failed')
        txn_hash = resp.json()['hash']
        logger.info('Submitted transaction %s', txn_hash)
        return txn_hash

    def transaction_by_hash(self, txn_hash: str) -> Dict[str, Any]:
        resp = http_client.get(f'{self.base_url}/transactions/by_hash/{txn_hash}', retries=1, timeout=self.timeout)
        http_client.check(resp, f'Failed to fetch transaction {txn_hash}')
        return resp.json()
