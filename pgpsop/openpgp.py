import binascii
import contextlib
import io
import itertools
import logging
import re
from collections import namedtuple
from enum import Enum

import pgpy
from cryptography.hazmat.primitives.keywrap import InvalidUnwrap
from pgpy.constants import SignatureType, SymmetricKeyAlgorithm
from pgpy.errors import PGPDecryptionError
from pgpy.packet.packets import PKESessionKey, SKESessionKey

from .error import (DecryptionFailed, InvalidAlgorithm, InvalidHex,
                    InvalidSessionKeyFormat, KeyUnlockFailure, MalformedValue,
                    VerificationFailed)
from .glue import (PGPY_ERRORS, WILDCARD_KEYID, clear_key_material, key_packet,
                   literal_bytes, session_key_packets, sq_timestamp)
from .verify import Signature, VerificationResult

log = logging.getLogger(__name__)

# What PGPy raises when handed a key or password that does not fit.
_MISMATCH = PGPY_ERRORS + (InvalidUnwrap, ValueError, TypeError,
                          NotImplementedError)

class Algorithm(Enum):
    """Symmetric algorithms accepted in session keys."""
    TripleDES = int(SymmetricKeyAlgorithm.TripleDES)
    CAST5 = int(SymmetricKeyAlgorithm.CAST5)
    AES128 = int(SymmetricKeyAlgorithm.AES128)
    AES192 = int(SymmetricKeyAlgorithm.AES192)
    AES256 = int(SymmetricKeyAlgorithm.AES256)

    @property
    def symmetric(self):
        return SymmetricKeyAlgorithm(self.value)

def _algorithm(value):
    try:
        return Algorithm(value)
    except ValueError:
        raise InvalidAlgorithm(
            "Unsupported session key algorithm {}".format(value)) from None

_DECIMAL = re.compile(r"[0-9]+")

# Algorithm ids are one octet.
_MAX_ID_DIGITS = 3

class SessionKey(namedtuple("SessionKey", ["algorithm", "key"])):
    """A symmetric algorithm and key sufficient to decrypt one message."""
    __slots__ = ()

    def __new__(cls, algorithm, key):
        if not isinstance(algorithm, Algorithm):
            algorithm = _algorithm(algorithm)
        return super(SessionKey, cls).__new__(cls, algorithm, bytes(key))

    @classmethod
    def decode(cls, token):
        """Parses a session key of the form ALGORITHM:HEXKEY."""
        if isinstance(token, (bytes, bytearray)):
            try:
                token = token.decode("ascii")
            except UnicodeDecodeError as e:
                raise InvalidSessionKeyFormat() from e
        parts = token.split(":", 1)
        if len(parts) != 2:
            raise InvalidSessionKeyFormat()
        algo, key = parts
        if not _DECIMAL.fullmatch(algo):
            raise InvalidSessionKeyFormat(
                "Invalid session key algorithm {!r}".format(algo))
        if len(algo) > _MAX_ID_DIGITS:
            raise InvalidAlgorithm(
                "Unsupported session key algorithm {}...".format(
                    algo[:_MAX_ID_DIGITS]))
        algorithm = _algorithm(int(algo))
        try:
            key = binascii.unhexlify(key)
        except (binascii.Error, ValueError) as e:
            raise InvalidHex() from e
        return cls(algorithm, key)

    def encode(self):
        return "{}:{}".format(self.algorithm.value,
                              binascii.hexlify(self.key).decode("ascii").upper())

    def __repr__(self):
        return "SessionKey(algorithm={})".format(self.algorithm.name)

    def candidates(self, message):
        yield self.algorithm.symmetric, self.key

class Password(object):
    """A passphrase for symmetrically encrypted messages."""

    def __init__(self, passphrase):
        self.passphrase = bytes(passphrase)

    def __repr__(self):
        return "Password(...)"

    def candidates(self, message):
        for skesk in session_key_packets(message, SKESessionKey):
            try:
                yield skesk.decrypt_sk(self.passphrase)
            except _MISMATCH as e:
                log.warning("Could not decrypt session key with password: %s", e)

class Secrets(tuple):
    """Secrets of one kind, tried in order."""
    __slots__ = ()

    def __repr__(self):
        return "Secrets({})".format(", ".join(repr(s) for s in self))

    def candidates(self, message):
        for secret in self:
            for candidate in secret.candidates(message):
                yield candidate

def load_keys(handle, data):
    """Returns every primary key or certificate in DATA."""
    try:
        key, others = pgpy.PGPKey.from_blob(data)
    except _MISMATCH as e:
        raise MalformedValue(
            "{} is not an OpenPGP key: {}".format(handle, e)) from e
    if key.fingerprint is None:
        raise MalformedValue("{} holds no OpenPGP key".format(handle))
    keys = [key]
    seen = {key.fingerprint}
    for other in others.values():
        if other.is_primary and other.fingerprint not in seen:
            seen.add(other.fingerprint)
            keys.append(other)
    log.debug("Loaded %d keys from %s", len(keys), handle)
    return keys

def load_secret_keys(handle, data):
    keys = load_keys(handle, data)
    for key in keys:
        if key.is_public:
            raise MalformedValue(
                "{} is not an OpenPGP secret key".format(handle))
    return keys

def load_certs(handle, data):
    certs = []
    for key in load_keys(handle, data):
        if not key.is_public:
            log.debug("Using public part of secret key %s", handle)
            key = key.pubkey
        certs.append(key)
    return certs

def _with_subkeys(key):
    return itertools.chain([key], key.subkeys.values())

class KeyRing(object):
    """Secret keys owned by a single operation.

    Use as a context manager: on exit every unlocked key is locked
    again and the secret key material of all keys is cleared, so the
    ring is unusable afterwards.
    """

    def __init__(self, keys=()):
        self._keys = list(keys)
        self._stack = contextlib.ExitStack()

    def add(self, key):
        self._keys.append(key)

    def load(self, blobs):
        """Adds the keys of BLOBS, a mapping of handles to key data."""
        for handle, data in blobs.items():
            for key in load_secret_keys(handle, data):
                self.add(key)

    def __iter__(self):
        return iter(self._keys)

    def __len__(self):
        return len(self._keys)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.clear()
        return False

    def unlock(self, passphrases=()):
        """Unlocks every protected key with one of PASSPHRASES."""
        if isinstance(passphrases, (bytes, bytearray)):
            passphrases = [passphrases]
        passphrases = list(passphrases)
        for key in self._keys:
            if not key.is_protected:
                continue
            if not passphrases:
                raise KeyUnlockFailure(
                    "Key {} is protected and no key password was given"
                    .format(key.fingerprint))
            for passphrase in passphrases:
                try:
                    self._stack.enter_context(key.unlock(passphrase))
                    break
                except PGPDecryptionError:
                    pass
            else:
                raise KeyUnlockFailure(
                    "Key {} could not be unlocked by the provided password"
                    .format(key.fingerprint))
            log.debug("Unlocked key %s", key.fingerprint)

    def clear(self):
        # Locking a protected key again clears what unlocking decrypted.
        try:
            self._stack.close()
        finally:
            for key in self._keys:
                for k in _with_subkeys(key):
                    if not k.is_protected:
                        clear_key_material(k)
            log.debug("Cleared %d secret keys", len(self._keys))

    def candidates(self, message):
        pkesks = session_key_packets(message, PKESessionKey)
        for key in self._keys:
            for k in _with_subkeys(key):
                keyid = k.fingerprint.keyid
                for pkesk in pkesks:
                    if pkesk.encrypter not in (keyid, WILDCARD_KEYID):
                        continue
                    if pkesk.pkalg != k.key_algorithm:
                        continue
                    try:
                        yield pkesk.decrypt_sk(key_packet(k))
                    except _MISMATCH as e:
                        log.warning("Could not decrypt session key with %s: %s",
                                    k.fingerprint, e)

class DecryptingReader(io.RawIOBase):
    """Plaintext of an encrypted message.

    Use DecryptingReader.open to decrypt a message read from a binary
    stream with a SessionKey, Password, Secrets or unlocked KeyRing.
    After the plaintext has been consumed, the session key that was
    used and the signatures on the message can be retrieved.
    """

    def __init__(self, message, plaintext, algorithm, key):
        super(DecryptingReader, self).__init__()
        self._message = message
        self._plaintext = memoryview(plaintext)
        self._offset = 0
        self._algorithm = algorithm
        self._key = bytes(key)

    @classmethod
    def open(cls, source, secret):
        try:
            encrypted = pgpy.PGPMessage.from_blob(source.read())
        except _MISMATCH as e:
            raise DecryptionFailed("Malformed message: {}".format(e)) from e
        if not encrypted.is_encrypted:
            raise DecryptionFailed("Message is not encrypted")

        for algorithm, key in secret.candidates(encrypted):
            try:
                data = encrypted.message.decrypt(key, algorithm)
            except _MISMATCH as e:
                log.warning("Session key did not decrypt the message: %s", e)
                continue
            message = pgpy.PGPMessage()
            try:
                message.parse(data)
            except _MISMATCH as e:
                log.warning("Decrypted data is not a message: %s", e)
                continue
            body = literal_bytes(message)
            if body is None:
                log.warning("Decrypted message carries no literal data")
                continue
            log.debug("Decrypted message using %r", secret)
            return cls(message, body, algorithm, key)

        raise DecryptionFailed(
            "No key, password or session key could decrypt the message")

    def readable(self):
        return True

    def readinto(self, buf):
        n = min(len(buf), len(self._plaintext) - self._offset)
        buf[:n] = self._plaintext[self._offset:self._offset + n]
        self._offset += n
        return n

    def session_key(self):
        return SessionKey(int(self._algorithm), self._key)

    def verify_signature(self, certs):
        """Checks the signatures on the message against CERTS."""
        signatures = []
        signers = {sig.signer for sig in self._message.signatures}
        for cert in certs:
            keyids = {cert.fingerprint.keyid} | set(cert.subkeys)
            if not keyids & signers:
                continue
            try:
                verification = cert.verify(self._message)
            except _MISMATCH as e:
                raise VerificationFailed(
                    "Verifying with {} failed: {}".format(cert.fingerprint, e)) from e
            for valid, subjects in ((True, verification.good_signatures),
                                    (False, verification.bad_signatures)):
                for subject in subjects:
                    signatures.append(_signature(cert, subject, valid))
        return VerificationResult(signatures)

def _fingerprint(key):
    return str(key.fingerprint).replace(" ", "")

def _signature(cert, subject, valid):
    sig = subject.signature
    mode = "text" if sig.type == SignatureType.CanonicalDocument else "binary"
    return Signature(created=sq_timestamp(sig.created),
                     signer=_fingerprint(subject.by),
                     primary=_fingerprint(cert),
                     valid=valid,
                     mode=mode)
