# utils/errors.py
from typing import Optional


class GatewayError(Exception):
    """A power command could not be completed."""


class TransportError(GatewayError):
    """The CoAP exchange failed or timed out."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"CoAP error: {describe_cause(cause)}")


class MalformedReply(GatewayError):
    """The device answered with something other than '<flag>:<epoch>'."""

    def __init__(self, raw: str, detail: Optional[str] = None):
        self.raw = raw
        self.detail = detail
        if detail is None:
            message = f'CoAP: invalid response: "{raw}"'
        else:
            message = f"CoAP response parse error: {detail}"
        super().__init__(message)


def describe_cause(cause: BaseException) -> str:
    text = str(cause)
    if text:
        return f"{type(cause).__name__}: {text}"
    return type(cause).__name__
