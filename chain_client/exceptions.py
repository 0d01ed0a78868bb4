"""
Chain Client Exceptions.

Failures raised by chain client backends. The message text is
kept verbatim so the contract error classifier can parse codes
such as "Custom(1026)" out of it.
"""

from typing import Any, Dict, Optional

from core.exceptions import HarnessException, Severity


class ChainClientError(HarnessException):
    """A chain call failed (simulation, submission or confirmation)."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        code: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if method:
            context["method"] = method
        if code is not None:
            context["code"] = code
        super().__init__(message, context=context, **kwargs)
        self.method = method
        self.code = code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"method": self.method, "code": self.code})
        return data


class RpcTransportError(ChainClientError):
    """The gateway could not be reached or returned a non-JSON-RPC reply."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ) -> None:
        context = kwargs.pop("context", {})
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, method=method, context=context, **kwargs)
        self.status_code = status_code


__all__ = ["ChainClientError", "RpcTransportError"]
