import calendar
import functools
from datetime import datetime, timezone

from pgpy.errors import PGPDecryptionError, PGPError
from pgpy.packet.packets import LiteralData

from . import error

# PGPDecryptionError does not derive from PGPError.
PGPY_ERRORS = (PGPError, PGPDecryptionError)

def tagged(operation):
    """Tags every error escaping the decorated function.

    pgpsop errors are annotated with the operation name and re-raised.
    I/O errors are wrapped into IOFailure, anything PGPy raises that
    was not translated at the call site becomes a generic Error.
    """
    def decorator(fun):
        @functools.wraps(fun)
        def wrapper(*args, **kwargs):
            try:
                return fun(*args, **kwargs)
            except error.Error as e:
                e.operation = operation
                raise
            except OSError as e:
                err = error.IOFailure(str(e))
                err.operation = operation
                raise err from e
            except PGPY_ERRORS as e:
                err = error.Error(str(e))
                err.operation = operation
                raise err from e
        return wrapper
    return decorator

# PGPy 0.6.0 has no public API for the following.  Everything that
# reaches into its private attributes goes through these functions.

# Key id of a PKESK addressed to a hidden recipient.
WILDCARD_KEYID = "0" * 16

def session_key_packets(message, kind):
    """Returns the PKESK or SKESK packets (KIND) of an encrypted message."""
    return [p for p in message._sessionkeys if isinstance(p, kind)]

def key_packet(key):
    """Returns the key packet PKESessionKey.decrypt_sk expects."""
    return key._key

def clear_key_material(key):
    key._key.keymaterial.clear()

def literal_bytes(message):
    """Returns the literal data of a decrypted message, or None.

    PGPMessage.message decodes text literals, this returns the bytes
    as they were encrypted.
    """
    literal = message._message
    if not isinstance(literal, LiteralData):
        return None
    return bytes(literal._contents)

def sq_timestamp(t):
    """Converts a datetime to epoch seconds, treating naive values as UTC."""
    if t.tzinfo is None:
        return calendar.timegm(t.utctimetuple())
    return int(t.timestamp())

def sq_time(t):
    return datetime.fromtimestamp(t, timezone.utc)

def sq_isoformat(t):
    return sq_time(t).strftime("%Y-%m-%dT%H:%M:%SZ")
