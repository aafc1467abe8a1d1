"""Exception hierarchy for the NETCONF group client.

Transport failures, device-side rejections, local decode failures and
construction-time credential problems each get their own type so callers
can tell "the edit failed" apart from "the edit failed and the session also
failed to close".
"""
from typing import Optional


class GroupcraftError(Exception):
    """Base exception for all groupcraft errors."""
    pass


class TransportError(GroupcraftError):
    """Dial, send or close failed at the driver boundary."""

    def __init__(self, message: str, step: str = ""):
        super().__init__(message)
        self.step = step


class RpcError(TransportError):
    """The device answered with an <rpc-error> of severity "error"."""

    def __init__(self, messages: list[str], step: str = "send"):
        self.messages = list(messages)
        text = "; ".join(self.messages) or "unspecified rpc-error"
        super().__init__(f"rpc-error: {text}", step=step)


class CompoundError(TransportError):
    """A transaction step failed and closing the session failed too."""

    def __init__(self, operation: str, error: BaseException, close_error: BaseException):
        self.operation = operation
        self.error = error
        self.close_error = close_error
        super().__init__(
            f"{operation}: driver error: {error}, driver close error: {close_error}",
            step=getattr(error, "step", ""),
        )


class ParseError(GroupcraftError):
    """A reply body could not be unwrapped."""
    pass


class DecodeError(GroupcraftError):
    """Reply XML does not match the target model."""

    def __init__(self, message: str, tag: Optional[str] = None):
        super().__init__(message)
        self.tag = tag


class ConfigError(GroupcraftError):
    """Client construction failed (no usable credential, bad endpoint)."""
    pass


class KeyLoadError(ConfigError):
    """SSH private key material could not be parsed."""
    pass
