"""Validation of the hello function's query string.

Every field is checked independently and all problems are reported together,
so a caller gets one message naming each offending parameter.
"""
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError


# Searched, not matched: "prefix2024-01-01suffix" passes.
PLAIN_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


def _require_text(value: Any) -> Any:
    if isinstance(value, str) and not value:
        raise PydanticCustomError(
            "string_too_short",
            "String should have at least 1 character",
            {"min_length": 1},
        )
    return value


class ParsedQuery(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    many: Optional[List[str]] = None
    string: Optional[str] = Field(None, min_length=1)
    pos_number: Optional[float] = Field(None, alias="posNumber", gt=0, allow_inf_nan=False)
    range: Optional[float] = Field(None, ge=0, le=5, allow_inf_nan=False)
    plain_date: Optional[str] = Field(None, alias="plainDate")

    @field_validator("*", mode="before")
    @classmethod
    def _non_empty(cls, value: Any) -> Any:
        return _require_text(value)

    @field_validator("many", mode="before")
    @classmethod
    def _split_many(cls, value: Any) -> Any:
        value = _require_text(value)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",")]
        return value

    @field_validator("plain_date")
    @classmethod
    def _looks_like_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not PLAIN_DATE_PATTERN.search(value):
            raise PydanticCustomError("plain_date", "Invalid plain date: {value}", {"value": value})
        return value

    def to_wire(self) -> dict:
        """Populated fields keyed by their query-string names."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class FieldIssue:
    field: str
    reason: str

    def __str__(self) -> str:
        return f'{self.reason} at "{self.field}"'


@dataclass(frozen=True)
class ValidationFailure:
    issues: Tuple[FieldIssue, ...]

    @classmethod
    def from_error(cls, exc: ValidationError) -> "ValidationFailure":
        issues = []
        for err in exc.errors(include_url=False):
            field = ".".join(str(part) for part in err["loc"]) or "query"
            issues.append(FieldIssue(field=field, reason=err["msg"]))
        return cls(issues=tuple(issues))

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

    @property
    def message(self) -> str:
        return "Validation error: " + "; ".join(str(issue) for issue in self.issues)


@dataclass(frozen=True)
class QueryResult:
    success: bool
    data: Optional[ParsedQuery] = None
    error: Optional[ValidationFailure] = None


def parse_query(raw: Mapping[str, str]) -> QueryResult:
    """Validate raw query values, returning either the parsed query or the failure."""
    try:
        data = ParsedQuery.model_validate(dict(raw))
    except ValidationError as exc:
        return QueryResult(success=False, error=ValidationFailure.from_error(exc))
    return QueryResult(success=True, data=data)
