"""
Contract Errors - Classifier.

============================================================
RESPONSIBILITY
============================================================
Turns an opaque failure message into a typed classification.

Pure: no I/O, no logging, no exceptions for any input.

Recognized forms:
- "... custom program error: Custom(1026) ..."
- "... 0x402 (1026) ..."

============================================================
"""

import re
from typing import Dict, Optional, Tuple, Union

from .codes import ContractErrorCode, get_error_message
from .models import ErrorCategory, ErrorClassification, ErrorKind


CUSTOM_PATTERN = re.compile(r"Custom\((\d+)\)")
HEX_PATTERN = re.compile(r"0x[0-9a-fA-F]+\s*\((\d+)\)")

MAX_UNPARSED_MESSAGE_LENGTH = 300


# Codes with a recovery policy. Anything else is UNKNOWN.
POLICY_TABLE: Dict[int, Tuple[ErrorKind, ErrorCategory, bool]] = {
    ContractErrorCode.INSUFFICIENT_FUNDS: (
        ErrorKind.INSUFFICIENT_FUNDS, ErrorCategory.TRANSIENT_WITH_SIDE_EFFECT, True,
    ),
    ContractErrorCode.POOL_PAUSED: (
        ErrorKind.POOL_PAUSED, ErrorCategory.TRANSIENT_RETRYABLE, True,
    ),
    ContractErrorCode.SYSTEM_PAUSED: (
        ErrorKind.SYSTEM_PAUSED, ErrorCategory.TRANSIENT_RETRYABLE, True,
    ),
    ContractErrorCode.INSUFFICIENT_LIQUIDITY: (
        ErrorKind.INSUFFICIENT_LIQUIDITY, ErrorCategory.TRANSIENT_RETRYABLE, True,
    ),
    ContractErrorCode.SLIPPAGE_EXCEEDED: (
        ErrorKind.SLIPPAGE_EXCEEDED, ErrorCategory.TRANSIENT_RETRYABLE, True,
    ),
    ContractErrorCode.POOL_SWAPS_PAUSED: (
        ErrorKind.POOL_SWAPS_PAUSED, ErrorCategory.TRANSIENT_RETRYABLE, True,
    ),
    ContractErrorCode.INVALID_TOKEN_ACCOUNT: (
        ErrorKind.INVALID_TOKEN_ACCOUNT, ErrorCategory.FATAL_CONFIGURATION, False,
    ),
    ContractErrorCode.INVALID_LP_TOKEN_TYPE: (
        ErrorKind.INVALID_LP_TOKEN_TYPE, ErrorCategory.FATAL_CONFIGURATION, False,
    ),
}


def parse_error_code(text: str) -> Optional[int]:
    """Extract a contract error code from free text, if any."""
    for pattern in (CUSTOM_PATTERN, HEX_PATTERN):
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


def classify(raw_error: Union[str, BaseException, None]) -> ErrorClassification:
    """
    Classify a raw failure.

    Args:
        raw_error: Error text or the exception raised by the chain client

    Returns:
        ErrorClassification. Unparsed text is UNKNOWN with no code;
        a parsed code without a policy is UNKNOWN with that code.
    """
    text = "" if raw_error is None else str(raw_error)
    code = parse_error_code(text)

    if code is None:
        return ErrorClassification(
            kind=ErrorKind.UNKNOWN,
            category=ErrorCategory.UNKNOWN_BOUNDED,
            code=None,
            recoverable=True,
            message=text[:MAX_UNPARSED_MESSAGE_LENGTH] or "Unknown error",
        )

    policy = POLICY_TABLE.get(code)
    if policy is None:
        return ErrorClassification(
            kind=ErrorKind.UNKNOWN,
            category=ErrorCategory.UNKNOWN_BOUNDED,
            code=code,
            recoverable=True,
            message=get_error_message(code),
        )

    kind, category, recoverable = policy
    return ErrorClassification(
        kind=kind,
        category=category,
        code=code,
        recoverable=recoverable,
        message=get_error_message(code),
    )


__all__ = ["classify", "parse_error_code", "POLICY_TABLE"]
