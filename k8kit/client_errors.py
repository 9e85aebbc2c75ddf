"""Errors raised by the Kubernetes API client."""

from __future__ import annotations

from http import HTTPStatus


def _describe_status(code: int) -> str:
    try:
        return f"{code} {HTTPStatus(code).phrase}"
    except ValueError:
        return f"{code} <unknown status code>"


class ClientError(Exception):
    """A request to the Kubernetes API could not be made or failed."""

    def not_found(self) -> bool:
        """True when the error means the requested object does not exist."""
        return False


class StatusError(ClientError):
    """The API server answered with a non-success HTTP status."""

    def __init__(self, status: int) -> None:
        self.status = int(status)
        super().__init__(f"client error: {_describe_status(self.status)}")

    def not_found(self) -> bool:
        return self.status == HTTPStatus.NOT_FOUND


class PatchError(ClientError):
    """A patch could not be computed or applied."""

    def __init__(self, message: str = "patch error") -> None:
        super().__init__(message)