"""
Caller identities: secp256k1 key pairs and the addresses derived from them
"""

import hashlib
from typing import Optional, Tuple

from cryptography.hazmat.primitives import hashes
from ecdsa import BadSignatureError, SigningKey, SECP256k1, VerifyingKey
from ecdsa.errors import MalformedPointError

ADDRESS_BYTES = 20

def sha3_256(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA3_256())
    digest.update(data)
    return digest.finalize()

def _to_address(raw: bytes) -> str:
    return "0x" + sha3_256(raw)[-ADDRESS_BYTES:].hex()

class Identity:
    """Key pair that owns an address on the ledger"""

    def __init__(self, private_key: Optional[bytes] = None):
        if private_key:
            self.private_key = SigningKey.from_string(private_key, curve=SECP256k1)
        else:
            self.private_key = SigningKey.generate(curve=SECP256k1)

        self.public_key = self.private_key.get_verifying_key()

    @classmethod
    def from_private_hex(cls, private_hex: str) -> 'Identity':
        return cls(bytes.fromhex(private_hex))

    @property
    def address(self) -> str:
        """Ledger address: last 20 bytes of SHA3-256 over the raw public key"""
        return _to_address(self.public_key.to_string())

    def get_public_key_hex(self) -> str:
        """Get compressed public key in hex format"""
        point = self.public_key.pubkey.point
        x = point.x()
        y = point.y()

        # 02 for even y, 03 for odd y
        prefix = b'\x02' if y % 2 == 0 else b'\x03'
        return (prefix + x.to_bytes(32, 'big')).hex()

    def get_private_key_hex(self) -> str:
        return self.private_key.to_string().hex()

    def sign_message(self, message: bytes) -> str:
        """Sign message (RFC 6979, SHA-256) and return signature in hex"""
        signature = self.private_key.sign_deterministic(message, hashfunc=hashlib.sha256)
        return signature.hex()

    @staticmethod
    def verify_signature(message: bytes, signature_hex: str, pubkey_hex: str) -> bool:
        """Verify signature against message and a compressed or uncompressed public key"""
        try:
            vk = VerifyingKey.from_string(bytes.fromhex(pubkey_hex), curve=SECP256k1)
            return vk.verify(bytes.fromhex(signature_hex), message, hashfunc=hashlib.sha256)
        except (BadSignatureError, MalformedPointError, ValueError):
            return False

    @staticmethod
    def address_from_public_key(pubkey_hex: str) -> str:
        """Derive the ledger address for a hex encoded public key"""
        try:
            vk = VerifyingKey.from_string(bytes.fromhex(pubkey_hex), curve=SECP256k1)
        except MalformedPointError as e:
            raise ValueError(f"Invalid public key: {e}") from e
        return _to_address(vk.to_string())

    @staticmethod
    def contract_address(deployer_address: str, nonce: int) -> str:
        """Address of a bank deployed by deployer_address with the given nonce"""
        raw = bytes.fromhex(deployer_address[2:]) + nonce.to_bytes(8, 'big')
        return _to_address(raw)

    @staticmethod
    def generate_key_pair() -> Tuple[str, str]:
        """Generate new key pair and return (private_key_hex, public_key_hex)"""
        key = Identity()
        return key.get_private_key_hex(), key.get_public_key_hex()
