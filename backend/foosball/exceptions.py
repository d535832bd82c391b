from collections.abc import Iterable
from typing import Optional

from fastapi import HTTPException
from pydantic import BaseModel


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions.

    ``retryable`` tells callers whether repeating the same request may
    succeed without changing its input.
    """

    retryable = False

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class UnknownPlayer(DomainException):
    def __init__(self, player_ids: Iterable[int]) -> None:
        self.player_ids = sorted(player_ids)
        joined = ", ".join(str(pid) for pid in self.player_ids)
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"unknown player id(s): {joined}",
            code="player_not_found",
        )


class DuplicatePlayer(DomainException):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            status_code=409,
            title="Player exists",
            detail=f"player name '{name}' already exists",
            code="player_exists",
        )


class InvalidTeamComposition(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=422,
            title="Invalid team composition",
            detail=detail,
            code="invalid_team_composition",
        )


class TransactionConflict(DomainException):
    retryable = True

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            status_code=409,
            title="Transaction conflict",
            detail=detail or "a concurrent update touched the same players; retry the request",
            code="transaction_conflict",
        )


class StoreUnavailable(DomainException):
    retryable = True

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            status_code=503,
            title="Store unavailable",
            detail=detail or "the database is currently unavailable",
            code="store_unavailable",
        )


class OperationForbidden(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=403,
            title="Operation forbidden",
            detail=detail,
            code="operation_forbidden",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
