"""Ed25519 account keys and signing helpers (PyNaCl).

Accounts are plain keypairs: the address is the SHA3-256 of the public key
followed by the single-signer scheme byte 0x00.
"""
import hashlib
from typing import Tuple

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

ED25519_SCHEME = b'\x00'
AIP80_PREFIX = 'ed25519-priv-'


def _strip_hex(value: str) -> str:
    v = value.strip()
    if v.startswith(AIP80_PREFIX):
        v = v[len(AIP80_PREFIX):]
    if v.startswith('0x') or v.startswith('0X'):
        v = v[2:]
    return v


def load_signing_key(private_key: str) -> SigningKey:
    """Parse a hex private key (0x-prefixed, bare, or AIP-80 `ed25519-priv-0x...`)."""
    raw = bytes.fromhex(_strip_hex(private_key))
    if len(raw) != 32:
        raise ValueError('Ed25519 private key must be 32 bytes')
    return SigningKey(raw)


def address_from_public_key(pub: bytes) -> str:
    return '0x' + hashlib.sha3_256(pub + ED25519_SCHEME).hexdigest()


def generate_account() -> Tuple[str, str]:
    """Return (address, private_key_hex) for a fresh keypair."""
    sk = SigningKey.generate()
    priv = '0x' + sk.encode(encoder=HexEncoder).decode('utf-8')
    return address_from_public_key(sk.verify_key.encode()), priv


def address_from_private_key(private_key: str) -> str:
    sk = load_signing_key(private_key)
    return address_from_public_key(sk.verify_key.encode())


def public_key_hex(private_key: str) -> str:
    sk = load_signing_key(private_key)
    return '0x' + sk.verify_key.encode().hex()


def sign_bytes(data: bytes, private_key: str) -> str:
    sk = load_signing_key(private_key)
    return '0x' + sk.sign(data).signature.hex()


def verify_with_public_key(data: bytes, sig_hex: str, pub_hex: str) -> bool:
    """Verify a signature against an explicit public key (both hex)."""
    try:
        vk = VerifyKey(bytes.fromhex(_strip_hex(pub_hex)))
        vk.verify(data, bytes.fromhex(_strip_hex(sig_hex)))
        return True
    except (BadSignatureError, ValueError):
        return False
