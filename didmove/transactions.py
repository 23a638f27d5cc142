"""Entry-function transaction lifecycle: build, sign, submit, wait.

The builder owns no chain state; every network call goes through a
`FullnodeClient` (or anything with the same methods).
"""
import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from . import crypto_asym
from .errors import ConfirmationTimeout, UpstreamError
from .metrics import TXN_CONFIRMED, TXN_SUBMITTED, TXN_TIMEOUTS

logger = logging.getLogger(__name__)

MAX_GAS_AMOUNT = '2000'
GAS_UNIT_PRICE = '100'
EXPIRATION_SECS = 600
ENTRY_FUNCTION_PAYLOAD = 'entry_function_payload'
ED25519_SIGNATURE = 'ed25519_signature'


class ConfirmationPolicy:
    """Bounds for the confirmation poller.

    Polling stops at whichever bound is hit first; None disables a bound,
    but at least one must be set.
    """

    def __init__(self, max_attempts: Optional[int] = None, interval: float = 1.0, timeout: Optional[float] = None):
        if max_attempts is None and timeout is None:
            raise ValueError('ConfirmationPolicy needs max_attempts or timeout')
        self.max_attempts = max_attempts
        self.interval = interval
        self.timeout = timeout

    @classmethod
    def wall_clock(cls, timeout: float = 20.0, interval: float = 1.0):
        return cls(max_attempts=None, interval=interval, timeout=timeout)

    @classmethod
    def attempts(cls, max_attempts: int = 10, interval: float = 1.0):
        return cls(max_attempts=max_attempts, interval=interval, timeout=None)

    def allows(self, attempts_made: int, elapsed: float) -> bool:
        if self.max_attempts is not None and attempts_made >= self.max_attempts:
            return False
        if self.timeout is not None and elapsed >= self.timeout:
            return False
        return True

    def __repr__(self):
        return f'ConfirmationPolicy(max_attempts={self.max_attempts}, interval={self.interval}, timeout={self.timeout})'


def serialize_transaction(raw_txn: Dict[str, Any]) -> bytes:
    """Canonical JSON bytes of a raw transaction, the message that gets signed."""
    return json.dumps(raw_txn, sort_keys=True, separators=(',', ':')).encode('utf-8')


class TransactionBuilder:
    def __init__(self, client, policy: Optional[ConfirmationPolicy] = None):
        self.client = client
        self.policy = policy or ConfirmationPolicy.wall_clock(20.0)

    def build_transaction(self, sender: str, function: str, type_args: Optional[List[str]] = None,
                          args: Optional[List[Any]] = None) -> Dict[str, Any]:
        sequence_number = self.client.sequence_number(sender)
        return {
            'sender': sender,
            'sequence_number': sequence_number,
            'max_gas_amount': MAX_GAS_AMOUNT,
            'gas_unit_price': GAS_UNIT_PRICE,
            'expiration_timestamp_secs': str(int(time.time()) + EXPIRATION_SECS),
            'payload': {
                'type': ENTRY_FUNCTION_PAYLOAD,
                'function': function,
                'type_arguments': list(type_args or []),
                'arguments': list(args or []),
            },
        }

    def sign_transaction(self, raw_txn: Dict[str, Any], private_key: str) -> Dict[str, Any]:
        message = serialize_transaction(raw_txn)
        return {
            'transaction': raw_txn,
            'signature': {
                'type': ED25519_SIGNATURE,
                'public_key': crypto_asym.public_key_hex(private_key),
                'signature': crypto_asym.sign_bytes(message, private_key),
            },
        }

    def submit_transaction(self, signed_txn: Dict[str, Any]) -> str:
        txn_hash = self.client.submit(signed_txn)
        TXN_SUBMITTED.inc()
        return txn_hash

    def wait_for_transaction(self, txn_hash: str, policy: Optional[ConfirmationPolicy] = None) -> Dict[str, Any]:
        """Poll by hash until a successful user transaction is seen. Returns that transaction.

        Fetch errors while polling mean "not confirmed yet" and are retried.
        """
        policy = policy or self.policy
        start = time.time()
        attempts = 0
        while policy.allows(attempts, time.time() - start):
            attempts += 1
            try:
                txn = self.client.transaction_by_hash(txn_hash)
            except (UpstreamError, requests.RequestException, ValueError) as e:
                logger.debug('Transaction %s not available yet (attempt %s): %s', txn_hash, attempts, e)
                txn = None
            if isinstance(txn, dict) and txn.get('type') == 'user_transaction' and txn.get('success') is True:
                TXN_CONFIRMED.inc()
                logger.info('Transaction %s confirmed at version %s after %s attempts', txn_hash, txn.get('version'), attempts)
                return txn
            if policy.max_attempts is not None and attempts >= policy.max_attempts:
                break
            time.sleep(policy.interval)
        TXN_TIMEOUTS.inc()
        logger.warning('Transaction %s not confirmed after %s attempts (%r)', txn_hash, attempts, policy)
        raise ConfirmationTimeout(f'Transaction {txn_hash} timed out')

    def execute(self, sender: str, private_key: str, function: str, type_args: Optional[List[str]] = None,
                args: Optional[List[Any]] = None, policy: Optional[ConfirmationPolicy] = None) -> Dict[str, Any]:
        """Build, sign, submit and wait. Returns the confirmed transaction."""
        raw_txn = self.build_transaction(sender, function, type_args, args)
        signed_txn = self.sign_transaction(raw_txn, private_key)
        txn_hash = self.submit_transaction(signed_txn)
        return self.wait_for_transaction(txn_hash, policy)

    def build_sign_submit_transaction(self, sender: str, private_key: str, function: str,
                                      type_args: Optional[List[str]] = None, args: Optional[List[Any]] = None,
                                      policy: Optional[ConfirmationPolicy] = None) -> str:
        raw_txn = self.build_transaction(sender, function, type_args, args)
        txn_hash = self.submit_transaction(self.sign_transaction(raw_txn, private_key))
        self.wait_for_transaction(txn_hash, policy)
        return txn_hash
