import sop

class Error(sop.SOPException):
    """Base class for all errors raised by pgpsop.

    Every error carries the exit code the command line tool reports,
    and optionally the name of the operation it was raised in.
    """
    exit_code = 99

    def __init__(self, message=None):
        super(Error, self).__init__(message or self.__class__.__doc__)
        self.operation = None

    def __str__(self):
        message = super(Error, self).__str__()
        if self.operation:
            return "{}: {}".format(self.operation, message)
        return message

class MissingSecret(Error, sop.SOPMissingRequiredArgument):
    """Please provide decryption keys, session key, or passphrase"""
    exit_code = 69

class ConfigMismatch(Error):
    """Verification keys and a verification output must be given together"""
    exit_code = 23

class KeyUnlockFailure(Error, sop.SOPKeyIsProtected):
    """A secret key could not be unlocked"""
    exit_code = 67

class MalformedValue(Error, sop.SOPInvalidDataType, ValueError):
    """Malformed value"""

class InvalidSessionKeyFormat(MalformedValue):
    """Session key must be of the form ALGORITHM:HEXKEY"""

class InvalidAlgorithm(MalformedValue):
    """Unsupported session key algorithm"""

class InvalidHex(MalformedValue):
    """Session key is not valid hexadecimal"""

class DecryptionFailed(Error, sop.SOPCouldNotDecrypt):
    """Decryption failed"""
    exit_code = 99

class VerificationFailed(Error):
    """Signature verification failed"""

class IOFailure(Error, OSError):
    """I/O error"""
