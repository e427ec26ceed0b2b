"""
Unit-aware arithmetic expression engine.

This package parses expressions such as ``1cm + 2in * 3`` or
``rand(1, 6) + 2``, checks unit consistency across operators and evaluates
them, with injectable operators, functions and unit converters.
"""

# Core types and utilities
from .ast import (
    AstNode,
    AstNodeBase,
    BinaryOpNode,
    EvaluationCache,
    FunctionCallNode,
    LiteralNode,
    RootNode,
    ast_to_string,
    calculate_ast_depth,
    count_ast_nodes,
)

# Builtins
from .builtins import (
    BUILTIN_FUNCTIONS,
    BUILTIN_OPERATORS,
    BUILTIN_VALIDATORS,
    ArgumentValidator,
    BuiltinContext,
    BuiltinFunction,
    ExprValue,
    create_default_symbol_table,
    validate_numeric,
    validate_string,
)

# Configuration
from .config import DEFAULT_CONFIG, ArithmeticConfig
from .errors import (
    BuildError,
    BuiltinError,
    ConversionError,
    EvaluationError,
    ExpressionError,
    FunctionContractError,
    LimitExceededError,
    ReductionError,
    UnitConsistencyError,
)

# Evaluator
from .evaluator import (
    EvaluationContext,
    EvaluationResult,
    Evaluator,
    evaluate,
    evaluate_expression,
)
from .limits import (
    DEFAULT_EXPRESSION_LIMITS,
    ExpressionLimits,
    check_ast_depth,
    check_ast_node_count,
    check_expression_length,
    check_function_arg_count,
)

# Parser
from .parser import (
    Parser,
    parse,
)

# Shunting-yard
from .shunting_yard import (
    Instruction,
    InstructionType,
    ShuntingYard,
)

# Symbols
from .symbols import (
    TYPE_NUMERIC,
    TYPE_STRING,
    Associativity,
    FunctionDescriptor,
    OperatorDescriptor,
    Parameter,
    ParameterMode,
    SymbolRegistry,
    SymbolTable,
    always_retain,
    never_retain,
)

# Tokenizer
from .tokenizer import (
    Segment,
    SegmentType,
    Tokenizer,
    tokenize,
)

# Units
from .units import (
    DEFAULT_CANONICAL_UNIT,
    DEFAULT_DPI,
    DIMENSIONLESS,
    Converter,
    UnitRegistry,
    centimeter_converter,
    create_default_unit_registry,
    format_quantity,
    inch_converter,
    is_numeric,
    millimeter_converter,
    percentage_converter,
    pica_converter,
    pixel_converter,
    split_quantity,
)

__all__ = [
    # AST
    "AstNode",
    "AstNodeBase",
    "BinaryOpNode",
    "EvaluationCache",
    "FunctionCallNode",
    "LiteralNode",
    "RootNode",
    "ast_to_string",
    "calculate_ast_depth",
    "count_ast_nodes",
    # Builtins
    "BUILTIN_FUNCTIONS",
    "BUILTIN_OPERATORS",
    "BUILTIN_VALIDATORS",
    "ArgumentValidator",
    "BuiltinContext",
    "BuiltinFunction",
    "ExprValue",
    "create_default_symbol_table",
    "validate_numeric",
    "validate_string",
    # Configuration
    "ArithmeticConfig",
    "DEFAULT_CONFIG",
    # Errors
    "BuildError",
    "BuiltinError",
    "ConversionError",
    "EvaluationError",
    "ExpressionError",
    "FunctionContractError",
    "LimitExceededError",
    "ReductionError",
    "UnitConsistencyError",
    # Evaluator
    "EvaluationContext",
    "EvaluationResult",
    "Evaluator",
    "evaluate",
    "evaluate_expression",
    # Limits
    "DEFAULT_EXPRESSION_LIMITS",
    "ExpressionLimits",
    "check_ast_depth",
    "check_ast_node_count",
    "check_expression_length",
    "check_function_arg_count",
    # Parser
    "Parser",
    "parse",
    # Shunting-yard
    "Instruction",
    "InstructionType",
    "ShuntingYard",
    # Symbols
    "TYPE_NUMERIC",
    "TYPE_STRING",
    "Associativity",
    "FunctionDescriptor",
    "OperatorDescriptor",
    "Parameter",
    "ParameterMode",
    "SymbolRegistry",
    "SymbolTable",
    "always_retain",
    "never_retain",
    # Tokenizer
    "Segment",
    "SegmentType",
    "Tokenizer",
    "tokenize",
    # Units
    "DEFAULT_CANONICAL_UNIT",
    "DEFAULT_DPI",
    "DIMENSIONLESS",
    "Converter",
    "UnitRegistry",
    "centimeter_converter",
    "create_default_unit_registry",
    "format_quantity",
    "inch_converter",
    "is_numeric",
    "millimeter_converter",
    "percentage_converter",
    "pica_converter",
    "pixel_converter",
    "split_quantity",
]
