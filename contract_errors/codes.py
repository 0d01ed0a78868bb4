"""
Contract Errors - Error Codes.

Numeric custom-error codes returned by the fixed-ratio contract
and their human-readable messages.
"""

from enum import IntEnum
from typing import Dict


class ContractErrorCode(IntEnum):
    """Custom error codes emitted by the contract."""

    # System / authority
    UNAUTHORIZED = 1001
    INVALID_TOKEN_MINTS = 1002
    INVALID_RATIO = 1003
    SYSTEM_PAUSED = 1004
    POOL_PAUSED = 1005
    ALREADY_PAUSED = 1006
    NOT_PAUSED = 1007
    INVALID_OWNER = 1008
    INVALID_SYSTEM = 1009
    INVALID_TOKEN_DECIMALS = 1010

    # Pool
    POOL_ALREADY_EXISTS = 1011
    POOL_NOT_FOUND = 1012
    INVALID_POOL_STATE = 1013
    INVALID_TOKEN_ACCOUNT = 1014

    # Treasury / fees
    INSUFFICIENT_FUNDS = 1015
    INVALID_FEE_RATE = 1016
    FEE_TOO_HIGH = 1017
    INVALID_TREASURY = 1018

    # Liquidity
    INVALID_AMOUNT = 1019
    INSUFFICIENT_LIQUIDITY = 1020
    INVALID_LP_TOKEN_TYPE = 1021
    INSUFFICIENT_LP_TOKENS = 1022
    DEPOSIT_TOO_SMALL = 1023
    WITHDRAWAL_TOO_SMALL = 1024

    # Swap
    SWAP_AMOUNT_TOO_SMALL = 1025
    SLIPPAGE_EXCEEDED = 1026
    INVALID_SWAP_DIRECTION = 1027
    INVALID_INPUT_AMOUNT = 1028
    INVALID_MINIMUM_OUTPUT = 1029
    POOL_SWAPS_PAUSED = 1030

    # Accounts
    INVALID_ACCOUNT_OWNER = 1031
    INVALID_MINT_AUTHORITY = 1032
    INVALID_PDA = 1033
    ACCOUNT_ALREADY_INITIALIZED = 1034
    ACCOUNT_NOT_INITIALIZED = 1035
    INVALID_SIGNER = 1036

    # Instruction
    INVALID_INSTRUCTION = 1037
    MISSING_REQUIRED_SIGNATURE = 1038
    INVALID_PROGRAM_ID = 1039
    INVALID_ACCOUNT_DATA = 1040
    ACCOUNT_BORROW_FAILED = 1041
    INSTRUCTION_PACK_ERROR = 1042


ERROR_MESSAGES: Dict[int, str] = {
    ContractErrorCode.UNAUTHORIZED: "Unauthorized access",
    ContractErrorCode.INVALID_TOKEN_MINTS: "Invalid token mints - ensure correct ordering (smaller mint = token A)",
    ContractErrorCode.INVALID_RATIO: "Invalid pool ratio - ensure one side equals 10^decimals",
    ContractErrorCode.SYSTEM_PAUSED: "System is paused - no operations allowed",
    ContractErrorCode.POOL_PAUSED: "Pool is paused - no liquidity operations allowed",
    ContractErrorCode.ALREADY_PAUSED: "Already paused",
    ContractErrorCode.NOT_PAUSED: "Not paused",
    ContractErrorCode.INVALID_OWNER: "Invalid owner",
    ContractErrorCode.INVALID_SYSTEM: "Invalid system account",
    ContractErrorCode.INVALID_TOKEN_DECIMALS: "Invalid token decimals",
    ContractErrorCode.POOL_ALREADY_EXISTS: "Pool already exists for this token pair",
    ContractErrorCode.POOL_NOT_FOUND: "Pool not found",
    ContractErrorCode.INVALID_POOL_STATE: "Invalid pool state",
    ContractErrorCode.INVALID_TOKEN_ACCOUNT: "Invalid token account",
    ContractErrorCode.INSUFFICIENT_FUNDS: "Insufficient funds for operation",
    ContractErrorCode.INVALID_FEE_RATE: "Invalid fee rate",
    ContractErrorCode.FEE_TOO_HIGH: "Fee exceeds maximum allowed",
    ContractErrorCode.INVALID_TREASURY: "Invalid treasury account",
    ContractErrorCode.INVALID_AMOUNT: "Invalid amount - must be greater than 0",
    ContractErrorCode.INSUFFICIENT_LIQUIDITY: "Insufficient liquidity in pool",
    ContractErrorCode.INVALID_LP_TOKEN_TYPE: "Invalid LP token type for this operation",
    ContractErrorCode.INSUFFICIENT_LP_TOKENS: "Insufficient LP tokens for withdrawal",
    ContractErrorCode.DEPOSIT_TOO_SMALL: "Deposit amount too small",
    ContractErrorCode.WITHDRAWAL_TOO_SMALL: "Withdrawal amount too small",
    ContractErrorCode.SWAP_AMOUNT_TOO_SMALL: "Swap amount too small",
    ContractErrorCode.SLIPPAGE_EXCEEDED: "Slippage tolerance exceeded",
    ContractErrorCode.INVALID_SWAP_DIRECTION: "Invalid swap direction",
    ContractErrorCode.INVALID_INPUT_AMOUNT: "Invalid input amount",
    ContractErrorCode.INVALID_MINIMUM_OUTPUT: "Invalid minimum output amount",
    ContractErrorCode.POOL_SWAPS_PAUSED: "Pool swaps are paused",
    ContractErrorCode.INVALID_ACCOUNT_OWNER: "Invalid account owner",
    ContractErrorCode.INVALID_MINT_AUTHORITY: "Invalid mint authority",
    ContractErrorCode.INVALID_PDA: "Invalid PDA derivation",
    ContractErrorCode.ACCOUNT_ALREADY_INITIALIZED: "Account already initialized",
    ContractErrorCode.ACCOUNT_NOT_INITIALIZED: "Account not initialized",
    ContractErrorCode.INVALID_SIGNER: "Invalid signer",
    ContractErrorCode.INVALID_INSTRUCTION: "Invalid instruction",
    ContractErrorCode.MISSING_REQUIRED_SIGNATURE: "Missing required signature",
    ContractErrorCode.INVALID_PROGRAM_ID: "Invalid program ID",
    ContractErrorCode.INVALID_ACCOUNT_DATA: "Invalid account data",
    ContractErrorCode.ACCOUNT_BORROW_FAILED: "Account borrow failed",
    ContractErrorCode.INSTRUCTION_PACK_ERROR: "Instruction pack error",
}


def get_error_message(code: int) -> str:
    """Message for a contract error code."""
    return ERROR_MESSAGES.get(code, f"Unknown error code: {code}")


def format_custom_error(code: int) -> str:
    """Render a code the way the runtime reports custom program errors."""
    return f"custom program error: {hex(code)} ({code}) Custom({code})"


__all__ = [
    "ContractErrorCode",
    "ERROR_MESSAGES",
    "get_error_message",
    "format_custom_error",
]
