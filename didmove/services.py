"""DID bookkeeping operations.

Each operation takes the key-value store (and, for chain writes, a
`TransactionBuilder`) explicitly. Errors are raised as `DidMoveError`
subclasses and mapped to HTTP responses by the API layer.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from . import crypto_asym
from .errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ACCOUNTS = 'accounts'
DID = 'did'
SERVICES = 'services'
RECORDS = 'records'

DID_TYPES = {
    0: 'Human',
    1: 'Organization',
    2: 'AI Agent',
    3: 'Smart Contract',
}

# addr -> [lock, holders]; an entry lives only while some thread holds or waits on it
_locks: Dict[str, list] = {}
_locks_guard = threading.Lock()


@contextmanager
def address_lock(addr: str):
    """Serialize check-then-write sequences for one address within this process."""
    with _locks_guard:
        entry = _locks.setdefault(addr, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _locks[addr]


def account_key(addr):
    return (ACCOUNTS, addr)


def did_key(addr):
    return (ACCOUNTS, DID, addr)


def services_key(addr):
    return (ACCOUNTS, DID, SERVICES, addr)


def record_key(addr, index):
    return (RECORDS, addr, index)


def require(*values):
    if any(v is None or v == '' for v in values):
        raise ValidationError('Missing required parameters')


def parse_did_type(value) -> int:
    try:
        did_type = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid DID type: {value}')
    if did_type not in DID_TYPES:
        raise ValidationError(f'Invalid DID type: {value}')
    return did_type


def explorer_url(addr: str, network: str) -> str:
    return f'https://explorer.aptoslabs.com/account/{addr}?network={network}'


def generate_account(store) -> Dict[str, str]:
    address, priv = crypto_asym.generate_account()
    store.set(account_key(address), {'priv': priv, 'data_count': 0})
    logger.info('Generated account %s', address)
    return {'address': address}


def load_account(store, addr: str) -> Dict[str, Any]:
    info = store.get(account_key(addr))
    if not info or not info.get('priv'):
        raise NotFoundError('Account not found')
    return info


def account_info(store, addr: str, network: str) -> Dict[str, Any]:
    require(addr)
    info = store.get(account_key(addr))
    # never expose the private key
    safe_info = {'data_count': info.get('data_count', 0)} if info else None
    return {
        'info': safe_info,
        'did': store.get(did_key(addr)),
        'services': store.get(services_key(addr)),
        'explorer': explorer_url(addr, network),
    }


def init_did(store, builder, module_address: str, addr: str, did_type, description: str, policy=None) -> Dict[str, Any]:
    """Register a DID for `addr` on chain and record it. One DID per address."""
    require(addr, did_type, description)
    did_type = parse_did_type(did_type)
    with address_lock(addr):
        if store.get(did_key(addr)):
            raise ConflictError('DID already exists for this address')
        account = load_account(store, addr)
        priv = account['priv']
        txn = builder.execute(
            crypto_asym.address_from_private_key(priv), priv,
            f'{module_address}::did::init', [], [did_type, description], policy)
        record = {
            'type': did_type,
            'description': description,
            'hash': txn.get('hash'),
            'version': txn.get('version'),
        }
        if not store.set_if_absent(did_key(addr), record):
            raise ConflictError('DID already exists for this address')
    logger.info('DID initialized for %s (type=%s) in %s', addr, DID_TYPES[did_type], record['hash'])
    return {'message': 'DID initialized successfully', 'hash': record['hash'], 'version': record['version']}


def register_service(store, builder, module_address: str, base_url: str, addr: str, name: str, description: str,
                     url: Optional[str] = None, verification_url: str = '', spec_fields: str = '',
                     expired_at=0, policy=None) -> Dict[str, Any]:
    require(addr, name, description)
    try:
        expired_at = int(expired_at or 0)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid expired_at: {expired_at}')
    service_url = url or f'{base_url}/records?addr={addr}'
    with address_lock(addr):
        account = load_account(store, addr)
        priv = account['priv']
        txn = builder.execute(
            crypto_asym.address_from_private_key(priv), priv,
            f'{module_address}::service_aggregator::add_service', [],
            [name, description, service_url, verification_url or '', spec_fields or '', str(expired_at)],
            policy)
        service = {
            'name': name,
            'description': description,
            'url': service_url,
            'verification_url': verification_url or '',
            'spec_fields': spec_fields or '',
            'expired_at': expired_at,
            'hash': txn.get('hash'),
            'version': txn.get('version'),
        }
        existing = store.get(services_key(addr)) or {'services': []}
        existing['services'].append(service)
        store.set(services_key(addr), existing)
    logger.info('Service %s registered for %s (%s total)', name, addr, len(existing['services']))
    return {'message': 'Service registered successfully', 'hash': service['hash'], 'version': service['version']}


def insert_record(store, addr: str, record: str) -> Dict[str, Any]:
    require(addr, record)
    with address_lock(addr):
        info = store.get(account_key(addr))
        if not info:
            raise NotFoundError('Account not found')
        index = info.get('data_count', 0)
        store.set(record_key(addr, index), record)
        info['data_count'] = index + 1
        store.set(account_key(addr), info)
    return {'message': 'Record inserted successfully', 'index': index}


def list_records(store, addr: str) -> List[Any]:
    require(addr)
    return [value for _, value in store.list((RECORDS, addr))]


def view_did(client, module_address: str, addr: str) -> Dict[str, Any]:
    """Read the on-chain DID type and description for `addr` via view functions."""
    require(addr)
    did_type = int(client.view(f'{module_address}::addr_aggregator::get_type', [], [addr])[0])
    description = client.view(f'{module_address}::addr_aggregator::get_description', [], [addr])[0]
    return {
        'address': addr,
        'type': did_type,
        'type_label': DID_TYPES.get(did_type, 'Unknown'),
        'description': description,
    }
