import logging
from collections import namedtuple

import sop

from .error import ConfigMismatch, MalformedValue
from .glue import sq_isoformat, sq_time, sq_timestamp

log = logging.getLogger(__name__)

BEGINNING_OF_TIME = float("-inf")
END_OF_TIME = float("inf")

def check_pairing(verify_with, verifications_out):
    """Verification keys and a verification output go together."""
    if bool(verify_with) != bool(verifications_out):
        raise ConfigMismatch()

class TimeWindow(namedtuple("TimeWindow", ["start", "end"])):
    """An inclusive range of epoch seconds, possibly open on either end."""
    __slots__ = ()

    @classmethod
    def between(cls, not_before=None, not_after=None):
        """Builds a window from two datetimes, None leaving that end open.

        Naive datetimes are taken to be UTC.
        """
        window = cls(BEGINNING_OF_TIME if not_before is None
                     else sq_timestamp(not_before),
                     END_OF_TIME if not_after is None
                     else sq_timestamp(not_after))
        if window.start > window.end:
            raise MalformedValue("--not-before is later than --not-after")
        return window

    def __contains__(self, t):
        return self.start <= t <= self.end

    def __str__(self):
        def fmt(t, open_bound):
            return open_bound if t in (BEGINNING_OF_TIME, END_OF_TIME) \
                else sq_isoformat(t)
        return "[{}, {}]".format(fmt(self.start, "-"), fmt(self.end, "+"))

# One signature found on a message.  CREATED is in epoch seconds, SIGNER
# and PRIMARY are the fingerprints of the signing (sub)key and of the
# certificate it belongs to, MODE is "binary" or "text".
Signature = namedtuple("Signature",
                       ["created", "signer", "primary", "valid", "mode"])

class VerificationResult(object):
    def __init__(self, signatures=(), window=None):
        self._signatures = tuple(signatures)
        self._window = window

    def __iter__(self):
        return iter(self._signatures)

    def __len__(self):
        return len(self._signatures)

    @property
    def window(self):
        return self._window

    def constrain(self, window):
        """Returns a copy whose passing set is limited to WINDOW."""
        return VerificationResult(self._signatures, window)

    @property
    def passing(self):
        return [s for s in self._signatures
                if s.valid and (self._window is None or s.created in self._window)]

    def __bool__(self):
        return bool(self.passing)

    def __str__(self):
        return "VerificationResult{{signatures={}, passing={}, window={}}}" \
            .format(len(self), len(self.passing), self._window)

def sig_results(result):
    """Returns the passing signatures of RESULT as VERIFICATIONS lines."""
    passing = result.passing
    log.debug("%d of %d signatures pass", len(passing), len(result))
    return [sop.SOPSigResult(sq_time(s.created), s.signer, s.primary,
                             "mode:{}".format(s.mode))
            for s in passing]
