"""Shared schema types."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """RFC 7807 problem document."""

    type: str
    title: str
    status: int
    detail: str | dict | list
    instance: str


PROBLEM_RESPONSES: dict[int | str, dict] = {
    404: {"model": ErrorResponse, "description": "Not found"},
    409: {"model": ErrorResponse, "description": "Conflicts with the document or sequence state"},
    422: {"model": ErrorResponse, "description": "Validation or business rule failure"},
}
