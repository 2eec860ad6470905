"""
JSON-RPC 2.0 envelopes and the router's error taxonomy.

Every RpcError carries the code/message surfaced to the caller and a
`reason` used in logs: "validation" for calls rejected before any I/O,
"cascade_exhausted" when every relay failed, "upstream" when a read
upstream answered with nothing usable.
"""

import re
from typing import Any, Dict

JSONRPC_VERSION = "2.0"

INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
SERVER_ERROR = -32000

# Write-class methods go through the private relay cascade
WRITE_METHODS = frozenset({"eth_sendRawTransaction"})

HEX_DATA_PATTERN = re.compile(r"0x[0-9a-fA-F]+")


class RpcError(Exception):
    reason = "error"

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def log_context(self) -> Dict[str, Any]:
        """Extra fields for the rpc_call_failed log line."""
        return {}


class RpcValidationError(RpcError):
    reason = "validation"


class CascadeExhaustedError(RpcError):
    reason = "cascade_exhausted"

    def __init__(self, exhausted: int):
        super().__init__(SERVER_ERROR, "private_relay_submit_failed")
        self.exhausted = exhausted

    def log_context(self) -> Dict[str, Any]:
        return {"exhausted": self.exhausted}


class UpstreamError(RpcError):
    reason = "upstream"

    def __init__(self):
        super().__init__(SERVER_ERROR, "upstream_failed")


def is_hex_data(value: Any) -> bool:
    return isinstance(value, str) and HEX_DATA_PATTERN.fullmatch(value) is not None


def rpc_result(rpc_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": rpc_id, "result": result}


def rpc_error(rpc_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": rpc_id, "error": {"code": code, "message": message}}
