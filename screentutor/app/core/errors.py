"""Shared error helpers."""
from dataclasses import dataclass


@dataclass
class APIError(Exception):
    code: str
    message: str
    status_code: int = 400
    detail: dict | None = None


class MalformedResponseError(ValueError):
    """A provider answered 2xx with a body that does not match its wire family."""
