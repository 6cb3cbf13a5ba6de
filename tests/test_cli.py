from datetime import datetime, timezone

import pgpy
import pytest
import sop
from pgpy.constants import CompressionAlgorithm, SymmetricKeyAlgorithm

from pgpsop.cli import PGPSOP
from pgpsop.error import (ConfigMismatch, DecryptionFailed, Error,
                          IOFailure, KeyUnlockFailure, MalformedValue,
                          MissingSecret)

password = b"123456789"
plaintext = b"attack at dawn\n"

def message(signer=None):
    msg = pgpy.PGPMessage.new(plaintext, format="b",
                              compression=CompressionAlgorithm.Uncompressed)
    if signer:
        msg |= signer.sign(msg)
    return msg

def test_errors_are_sop_errors():
    for cls in (MissingSecret, ConfigMismatch, KeyUnlockFailure,
                MalformedValue, DecryptionFailed, IOFailure):
        assert issubclass(cls, sop.SOPException)
    assert issubclass(KeyUnlockFailure, sop.SOPKeyIsProtected)
    assert issubclass(DecryptionFailed, sop.SOPCouldNotDecrypt)

def test_exit_codes():
    assert MissingSecret.exit_code == 69
    assert ConfigMismatch.exit_code == 23
    assert KeyUnlockFailure.exit_code == 67
    assert DecryptionFailed.exit_code == 99
    assert Error.exit_code == 99

def test_decrypt():
    ciphertext = bytes(message().encrypt(password))
    out, sigs, session_key = PGPSOP().decrypt(ciphertext,
                                              passwords={"pw": password})
    assert out == plaintext
    assert sigs == []
    assert session_key is None

def test_decrypt_with_key(bob, key_password):
    ciphertext = bytes(bob.pubkey.encrypt(message()))
    out, _, _ = PGPSOP().decrypt(ciphertext,
                                 secretkeys={"bob.key": bytes(bob)},
                                 keypasswords={"pw": key_password})
    assert out == plaintext

def test_missing_secret():
    with pytest.raises(MissingSecret):
        PGPSOP().decrypt(b"")

def test_key_unlock_failure(bob):
    ciphertext = bytes(bob.pubkey.encrypt(message()))
    with pytest.raises(sop.SOPKeyIsProtected):
        PGPSOP().decrypt(ciphertext, secretkeys={"bob.key": bytes(bob)},
                         keypasswords={"pw": b"wrong"})

def test_session_key_out():
    sk = SymmetricKeyAlgorithm.AES256.gen_key()
    ciphertext = bytes(message().encrypt(
        password, cipher=SymmetricKeyAlgorithm.AES256, sessionkey=sk))
    _, _, session_key = PGPSOP().decrypt(ciphertext, wantsessionkey=True,
                                         passwords={"pw": password})
    assert isinstance(session_key, sop.SOPSessionKey)
    assert str(session_key).upper() == "9:" + sk.hex().upper()

def test_session_key_from_sop():
    sk = SymmetricKeyAlgorithm.AES256.gen_key()
    ciphertext = bytes(message().encrypt(
        password, cipher=SymmetricKeyAlgorithm.AES256, sessionkey=sk))
    out, _, _ = PGPSOP().decrypt(
        ciphertext, sessionkeys={"sk": sop.SOPSessionKey(9, sk)})
    assert out == plaintext

def test_verifications(alice):
    ciphertext = bytes(message(signer=alice).encrypt(password))
    out, sigs, _ = PGPSOP().decrypt(ciphertext, passwords={"pw": password},
                                    signers={"alice.cert": bytes(alice.pubkey)})
    assert out == plaintext
    assert len(sigs) == 1
    assert isinstance(sigs[0], sop.SOPSigResult)
    assert str(alice.fingerprint).replace(" ", "") in str(sigs[0])

def test_verifications_outside_window(alice):
    ciphertext = bytes(message(signer=alice).encrypt(password))
    _, sigs, _ = PGPSOP().decrypt(
        ciphertext, passwords={"pw": password},
        signers={"alice.cert": bytes(alice.pubkey)},
        end=datetime(2001, 1, 1, tzinfo=timezone.utc))
    assert sigs == []
