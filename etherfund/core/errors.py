"""EtherFund — Error Taxonomy.

Every gateway translates library exceptions into one of these, so callers
only ever handle EtherFund errors.
"""

from typing import List, Optional


class EtherFundError(Exception):
    """Base class for all EtherFund errors."""

    kind = "error"


class UnavailableProvider(EtherFundError):
    """No wallet / JSON-RPC provider is connected."""

    kind = "unavailable_provider"


class UserRejected(EtherFundError):
    """The signer declined a write."""

    kind = "user_rejected"


class RpcError(EtherFundError):
    """Transport or node failure on a read or write."""

    kind = "rpc_error"

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(message)


class NotFound(EtherFundError):
    """Id absent on-chain or in the content store."""

    kind = "not_found"


class DecodeError(EtherFundError):
    """Content payload is not valid UTF-8 JSON."""

    kind = "decode_error"


class StoreUnavailable(EtherFundError):
    """Content store could not be reached or refused the request."""

    kind = "store_unavailable"

    def __init__(self, message: str, status_code: int = 0):
        self.status_code = status_code
        super().__init__(message)


class Timeout(EtherFundError):
    """A gateway call exceeded its configured timeout."""

    kind = "timeout"


class ValidationError(EtherFundError):
    """A required form field is missing."""

    kind = "validation_error"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        self.fields = fields or []
        super().__init__(message)
