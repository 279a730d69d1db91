from realtyhost.core.auth import AuthContext, AuthResult, TokenVerifier
from realtyhost.core.config import RealtyHostConfig, clear_config, get_config
from realtyhost.core.exceptions import (
    AbortedError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    RealtyHostError,
    UnauthenticatedError,
)

__all__ = [
    "AuthContext",
    "AuthResult",
    "TokenVerifier",
    "RealtyHostConfig",
    "get_config",
    "clear_config",
    "RealtyHostError",
    "InvalidArgumentError",
    "UnauthenticatedError",
    "FailedPreconditionError",
    "NotFoundError",
    "AbortedError",
    "InternalError",
]
