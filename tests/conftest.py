import pgpy
import pytest
from pgpy.constants import (CompressionAlgorithm, EllipticCurveOID,
                            HashAlgorithm, KeyFlags, PubKeyAlgorithm,
                            SymmetricKeyAlgorithm)

KEY_PASSWORD = "correct horse battery staple"

def new_key(uid, password=None):
    key = pgpy.PGPKey.new(PubKeyAlgorithm.EdDSA, EllipticCurveOID.Ed25519)
    key.add_uid(pgpy.PGPUID.new(uid),
                usage={KeyFlags.Certify, KeyFlags.Sign},
                hashes=[HashAlgorithm.SHA256],
                ciphers=[SymmetricKeyAlgorithm.AES256],
                compression=[CompressionAlgorithm.Uncompressed])
    subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.Curve25519)
    key.add_subkey(subkey, usage={KeyFlags.EncryptCommunications,
                                  KeyFlags.EncryptStorage})
    if password:
        key.protect(password, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
    return key

@pytest.fixture(scope="session")
def alice():
    return new_key("Alice <alice@example.org>")

@pytest.fixture(scope="session")
def bob():
    return new_key("Bob <bob@example.org>", KEY_PASSWORD)

@pytest.fixture
def key_password():
    return KEY_PASSWORD.encode()
