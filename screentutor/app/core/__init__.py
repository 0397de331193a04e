from .errors import APIError, MalformedResponseError
from .logging import get_logger, request_id_var, setup_logging

__all__ = [
    "APIError",
    "MalformedResponseError",
    "get_logger",
    "request_id_var",
    "setup_logging",
]
