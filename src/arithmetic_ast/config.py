"""
Configuration for parsing and evaluating expressions.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .limits import DEFAULT_EXPRESSION_LIMITS, ExpressionLimits

# camelCase keys accepted for expression limits, mapped to dataclass fields
_LIMIT_ALIASES = {
    "maxExpressionLength": "max_expression_length",
    "maxAstDepth": "max_ast_depth",
    "maxAstNodes": "max_ast_nodes",
    "maxFunctionArgs": "max_function_args",
}


class ArithmeticConfig(BaseModel):
    """Configuration shared by the tokenizer, parser and evaluator."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    # Unit every normalized value is expressed in
    canonical_unit: str = Field(default="pt", alias="canonicalUnit")

    # Resolution used by the pixel converter
    dpi: float = Field(default=96.0, gt=0)

    expression_limits: ExpressionLimits = Field(
        default=DEFAULT_EXPRESSION_LIMITS, alias="expressionLimits"
    )

    @field_validator("expression_limits", mode="before")
    @classmethod
    def _normalize_limits(cls, value: Any) -> Any:
        """Support both snake_case and camelCase limit keys."""
        if value is None:
            return DEFAULT_EXPRESSION_LIMITS
        if not isinstance(value, dict):
            return value

        normalized: dict[str, Any] = {}
        for key, limit in value.items():
            normalized[_LIMIT_ALIASES.get(key, key)] = limit
        return normalized


DEFAULT_CONFIG = ArithmeticConfig()
