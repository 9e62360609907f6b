"""Contract layer: document loading, schema registry and validator compilation."""

from contractum.contract.compiler import OperationValidators, compile_operation
from contractum.contract.loader import load_contract
from contractum.contract.models import Contract, Operation
from contractum.contract.registry import SchemaRegistry
from contractum.contract.validation import SchemaValidator, ValidationResult

__all__ = [
    "Contract",
    "Operation",
    "OperationValidators",
    "SchemaRegistry",
    "SchemaValidator",
    "ValidationResult",
    "compile_operation",
    "load_contract",
]
