"""
Contract Errors Package.

Classification of contract failures and their recovery policies.
"""

from .classifier import POLICY_TABLE, classify, parse_error_code
from .codes import ERROR_MESSAGES, ContractErrorCode, format_custom_error, get_error_message
from .models import (
    ErrorCategory,
    ErrorClassification,
    ErrorKind,
    RecoveryDecision,
    RecoveryVerdict,
)
from .recovery import RecoveryEngine


__all__ = [
    "classify",
    "parse_error_code",
    "POLICY_TABLE",
    "ContractErrorCode",
    "ERROR_MESSAGES",
    "get_error_message",
    "format_custom_error",
    "ErrorKind",
    "ErrorCategory",
    "ErrorClassification",
    "RecoveryDecision",
    "RecoveryVerdict",
    "RecoveryEngine",
]
