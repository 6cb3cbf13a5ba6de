import logging
import shutil
from collections import namedtuple
from contextlib import contextmanager

from .error import MissingSecret
from .glue import tagged
from .openpgp import (DecryptingReader, KeyRing, Password, Secrets,
                      SessionKey, load_certs)
from .verify import TimeWindow, check_pairing

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

def _by_handle(values):
    if hasattr(values, "items"):
        return dict(values)
    return {"#{}".format(i): v for i, v in enumerate(values)}

class DecryptConfig(namedtuple("DecryptConfig", [
        "secret_keys", "passwords", "session_keys", "key_passwords",
        "verify_with", "want_verifications", "not_before", "not_after",
        "want_session_key"])):
    """Everything the decrypt operation needs to know.

    Secret keys, passwords, session keys, key passwords and certificates
    map a handle (usually the file they were read from) to their
    contents.  Session keys are ALGORITHM:HEXKEY tokens.  The date
    bounds are datetimes or None.
    """
    __slots__ = ()

    def __new__(cls, secret_keys=(), passwords=(), session_keys=(),
                key_passwords=(), verify_with=(), want_verifications=False,
                not_before=None, not_after=None, want_session_key=False):
        return super(DecryptConfig, cls).__new__(
            cls, _by_handle(secret_keys), _by_handle(passwords),
            _by_handle(session_keys), _by_handle(key_passwords),
            _by_handle(verify_with), bool(want_verifications),
            not_before, not_after, bool(want_session_key))

    @property
    def has_secret(self):
        return bool(self.session_keys or self.passwords or self.secret_keys)

# Result of a decryption: the VerificationResult, or None if no
# verification was requested, and the SessionKey that was used, or None
# if it was not asked for.
Decryption = namedtuple("Decryption", ["verifications", "session_key"])

def _session_key(token):
    if not isinstance(token, (str, bytes, bytearray)):
        # sop hands over parsed SOPSessionKeys.
        token = str(token)
    return SessionKey.decode(token.strip())

def _passphrases(value):
    """Yields VALUE with surrounding whitespace trimmed, then as given."""
    value = bytes(value)
    trimmed = value.strip()
    yield trimmed
    if trimmed != value:
        yield value

@contextmanager
def resolve_secret(config):
    """Yields the secrets used to decrypt: session keys, passwords or an
    unlocked KeyRing, in that order of preference.

    A key ring is cleared when the context exits.
    """
    if config.session_keys:
        log.debug("Decrypting with %d session keys", len(config.session_keys))
        yield Secrets(_session_key(t) for t in config.session_keys.values())
    elif config.passwords:
        log.debug("Decrypting with %d passwords", len(config.passwords))
        yield Secrets(Password(p) for value in config.passwords.values()
                      for p in _passphrases(value))
    elif config.secret_keys:
        log.debug("Decrypting with keys from %s",
                  ", ".join(config.secret_keys))
        passphrases = [p for value in config.key_passwords.values()
                       for p in _passphrases(value)]
        with KeyRing() as ring:
            ring.load(config.secret_keys)
            ring.unlock(passphrases)
            yield ring
    else:
        raise MissingSecret()

@tagged("decrypt")
def decrypt(config, source, sink):
    """Decrypts the message read from SOURCE, writing the plaintext to SINK.

    Returns a Decryption holding the verified signatures and the session
    key that was used, each if CONFIG asks for it.
    """
    if not config.has_secret:
        raise MissingSecret()
    check_pairing(config.verify_with, config.want_verifications)
    window = TimeWindow.between(config.not_before, config.not_after)
    certs = [cert for handle, data in config.verify_with.items()
             for cert in load_certs(handle, data)]

    result = session_key = None
    with resolve_secret(config) as secret:
        reader = DecryptingReader.open(source, secret)
        shutil.copyfileobj(reader, sink, CHUNK_SIZE)
        sink.flush()

        if config.want_session_key:
            session_key = reader.session_key()
            log.debug("Captured %r", session_key)

        if config.want_verifications:
            result = reader.verify_signature(certs).constrain(window)
            log.debug("%s", result)
    return Decryption(result, session_key)
