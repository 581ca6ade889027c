"""Common tooling exceptions. Store them in this central place to
avoid circular imports
"""


class VdockerFatalError(Exception):
    """A broad exception for errors that must abort the whole run"""
    pass


class NetworkError(VdockerFatalError):
    """The release source or the registry could not be reached, or answered with a non-2xx status"""
    pass


class DecodeError(VdockerFatalError):
    """A remote API answered with a body that is not the JSON we expect"""
    pass


class CommandError(Exception):
    """An external command exited with a non-zero status"""

    def __init__(self, cmd, exit_code, combined_output=""):
        super(CommandError, self).__init__(
            "Command {} exited with status {}".format(cmd, exit_code))
        self.cmd = cmd
        self.exit_code = exit_code
        self.combined_output = combined_output


class BuildError(VdockerFatalError):
    """The image build tool failed; nothing built by this run may be pushed"""
    pass


class PushError(VdockerFatalError):
    """Pushing a freshly built tag to the registry failed"""
    pass
