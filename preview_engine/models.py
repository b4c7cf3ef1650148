"""
Pydantic models shared by the template engine, script engine and HTTP API.

FunctionDefinition, ExecutionResult, FunctionTestResult, VariableNode, and
request/response bodies for the preview routes.
"""

import keyword
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EditorTypeEnum(str, Enum):
    """Editor flavour; decides renderer vs sandbox and HTML escaping."""

    JSON_REST = "JSON_REST"
    EMAIL_HTML = "EMAIL_HTML"
    XML_TEMPLATE = "XML_TEMPLATE"
    DB_QUERY = "DB_QUERY"
    SCRIPT = "SCRIPT"


class VariableTypeEnum(str, Enum):
    """JSON type of a context value, as shown in the variables tree."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"


# ---------------------------------------------------------------------------
# Function definitions
# ---------------------------------------------------------------------------


def _check_identifier(value: str, what: str) -> str:
    if not value.isidentifier() or keyword.iskeyword(value):
        raise ValueError(f"{what} {value!r} is not a valid identifier")
    if value.startswith("_"):
        raise ValueError(f"{what} {value!r} must not start with '_'")
    return value


class FunctionDefinition(BaseModel):
    """User-authored function: name, ordered parameter names, Python body source."""

    id: str | None = None
    name: str = Field(..., min_length=1, max_length=255)
    params: list[str] = Field(default_factory=list)
    body: str = ""

    @field_validator("name")
    @classmethod
    def name_is_identifier(cls, v: str) -> str:
        return _check_identifier(v.strip(), "Function name")

    @field_validator("params", mode="before")
    @classmethod
    def split_params(cls, v: Any) -> Any:
        # The function editor sends "a, b, c"
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v

    @field_validator("params")
    @classmethod
    def params_are_identifiers(cls, v: list[str]) -> list[str]:
        seen: set[str] = set()
        for p in v:
            _check_identifier(p, "Parameter")
            if p in seen:
                raise ValueError(f"Duplicate parameter {p!r}")
            seen.add(p)
        return v


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ExecutionResult(BaseModel):
    """Outcome of a sandboxed script run. error is set iff the script raised."""

    model_config = ConfigDict(populate_by_name=True)

    logs: list[str] = Field(default_factory=list)
    final_context: dict[Any, Any] = Field(default_factory=dict, alias="finalContext")
    error: str | None = None
    error_type: str | None = Field(default=None, alias="errorType")

    @property
    def ok(self) -> bool:
        return self.error is None


class FunctionTestResult(BaseModel):
    """Outcome of the "test this function" affordance."""

    output: str | None = None
    error: str | None = None


class VariableNode(BaseModel):
    """One node of the context tree view."""

    key: str
    path: str
    type: VariableTypeEnum
    value: Any = None
    children: list["VariableNode"] | None = None


# ---------------------------------------------------------------------------
# HTTP bodies
# ---------------------------------------------------------------------------


class RenderIn(BaseModel):
    """Body for POST /preview/render."""

    template: str
    context: dict[str, Any] = Field(default_factory=dict)
    functions: list[FunctionDefinition] = Field(default_factory=list)
    autoescape: bool = False


class RenderOut(BaseModel):
    output: str
    missing_functions: list[str] = Field(default_factory=list)


class ExecuteIn(BaseModel):
    """Body for POST /preview/execute."""

    code: str
    context: dict[str, Any] = Field(default_factory=dict)
    functions: list[FunctionDefinition] = Field(default_factory=list)


class ScanIn(BaseModel):
    """Body for POST /preview/scan."""

    template: str
    functions: list[FunctionDefinition] = Field(default_factory=list)


class ScanOut(BaseModel):
    missing_functions: list[str] = Field(default_factory=list)


class PreviewIn(BaseModel):
    """Body for POST /preview/run: dispatch by editor type."""

    editor_type: EditorTypeEnum
    content: str
    context: dict[str, Any] = Field(default_factory=dict)
    functions: list[FunctionDefinition] = Field(default_factory=list)


class FunctionTestIn(BaseModel):
    """Body for POST /functions/test: raw text argument values keyed by param name."""

    function: FunctionDefinition
    args: dict[str, str] = Field(default_factory=dict)


class ContextParseIn(BaseModel):
    text: str


class ContextParseOut(BaseModel):
    context: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None
    tree: list[VariableNode] = Field(default_factory=list)
