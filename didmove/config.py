import json
import os
from pathlib import Path

CFG_PATH = Path(os.environ.get('DIDMOVE_CONFIG', Path(__file__).resolve().parents[1] / 'didmove_config.json'))

DEFAULT_NODE_URL = 'https://fullnode.testnet.aptoslabs.com/v1'
DEFAULT_MODULE_ADDRESS = '0xc71124a51e0d63cfc6eb04e690c39a4ea36774ed4df77c00f7cbcbc9d0505b2c'
DEFAULT_NETWORK = 'testnet'


def read_config():
    if not CFG_PATH.exists():
        return {}
    try:
        return json.loads(CFG_PATH.read_text(encoding='utf-8'))
    except (OSError, ValueError):
        return {}


def write_config(d: dict):
    CFG_PATH.write_text(json.dumps(d, indent=2), encoding='utf-8')


def _setting(env_name: str, cfg_name: str, default=None):
    # environment wins over the config file; both are read on every call
    value = os.environ.get(env_name)
    if value:
        return value
    return read_config().get(cfg_name, default)


def get_network() -> str:
    return _setting('NETWORK', 'network', DEFAULT_NETWORK)


def get_service_base_url() -> str:
    """Public base URL of this backend, used to build default service URLs."""
    return _setting('URL', 'url', '')


def get_node_url() -> str:
    return _setting('NODE_URL', 'node_url', DEFAULT_NODE_URL).rstrip('/')


def set_node_url(url: str):
    cfg = read_config()
    cfg['node_url'] = url
    write_config(cfg)


def get_module_address() -> str:
    return _setting('MODULE_ADDRESS', 'module_address', DEFAULT_MODULE_ADDRESS)


def get_db_path() -> Path:
    return Path(_setting('DIDMOVE_DB_PATH', 'db_path', Path(__file__).resolve().parents[1] / 'didmove.db'))


def get_log_dir() -> Path:
    return Path(_setting('DIDMOVE_LOG_DIR', 'log_dir', 'logs'))


def get_confirm_settings() -> dict:
    """Confirmation polling bounds. A null value in the config file disables that bound."""
    attempts = _setting('CONFIRM_MAX_ATTEMPTS', 'confirm_max_attempts', 10)
    interval = _setting('CONFIRM_INTERVAL', 'confirm_interval', 1.0)
    timeout = _setting('CONFIRM_TIMEOUT', 'confirm_timeout', 20.0)
    return {
        'max_attempts': int(attempts) if attempts not in (None, '') else None,
        'interval': float(interval),
        'timeout': float(timeout) if timeout not in (None, '') else None,
    }
