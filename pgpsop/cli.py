import io
from importlib import metadata

import sop

from . import __version__
from .decrypt import DecryptConfig, decrypt
from .verify import sig_results

class PGPSOP(sop.StatelessOpenPGP):
    """The pgpsop command line tool.

    sop parses the command line, reads the files and special
    designators (@ENV:NAME, @FD:N) it names, writes the outputs and
    turns errors into exit codes.  Only decrypt is implemented.
    """

    def __init__(self):
        super(PGPSOP, self).__init__(
            name="pgpsop", version=__version__,
            backend="PGPy {}".format(metadata.version("pgpy")),
            description="Stateless OpenPGP decryption using PGPy")

    def decrypt(self, data, wantsessionkey=False, sessionkeys={},
                passwords={}, signers={}, start=None, end=None,
                keypasswords={}, secretkeys={}, **kwargs):
        self.raise_on_unknown_options(**kwargs)
        config = DecryptConfig(secret_keys=secretkeys,
                               passwords=passwords,
                               session_keys=sessionkeys,
                               key_passwords=keypasswords,
                               verify_with=signers,
                               want_verifications=bool(signers),
                               not_before=start,
                               not_after=end,
                               want_session_key=wantsessionkey)
        sink = io.BytesIO()
        result = decrypt(config, io.BytesIO(data), sink)

        sigs = []
        if result.verifications is not None:
            sigs = sig_results(result.verifications)
        session_key = None
        if result.session_key is not None:
            session_key = sop.SOPSessionKey(result.session_key.algorithm.value,
                                            result.session_key.key)
        return sink.getvalue(), sigs, session_key

def main():
    PGPSOP().dispatch()

if __name__ == '__main__':
    main()
