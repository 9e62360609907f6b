"""Contract document loading.

A contract is given either as a path to a YAML/JSON file or as an already
parsed mapping. YAML is a superset of JSON, so one parser covers both file
formats. Any failure here is fatal for route table construction.
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from contractum.contract.models import Contract
from contractum.core.exceptions import ContractLoadError

type ContractSource = str | Path | Mapping[str, Any]


def read_document(source: str | Path) -> dict[str, Any]:
    """Read and parse a contract file.

    Args:
        source: Path of the YAML or JSON document.

    Returns:
        dict[str, Any]: The parsed document tree.

    Raises:
        ContractLoadError: If the file is missing, unreadable or not a mapping.
    """
    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        msg = f"Cannot read contract file {path}"
        raise ContractLoadError(msg, {"path": str(path)}, cause=e) from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"Contract file {path} is not valid YAML or JSON"
        raise ContractLoadError(msg, {"path": str(path)}, cause=e) from e

    if not isinstance(document, dict):
        msg = f"Contract file {path} does not contain a mapping"
        raise ContractLoadError(msg, {"path": str(path)})

    return document


def load_contract(source: ContractSource) -> Contract:
    """Load a contract from a file path or an in-memory document.

    Args:
        source: File path, or a mapping shaped like an OpenAPI document.

    Returns:
        Contract: The parsed, immutable contract.

    Raises:
        ContractLoadError: If the document cannot be read or does not have the
            expected shape.
    """
    if isinstance(source, Mapping):
        document: Mapping[str, Any] = source
    elif isinstance(source, str | Path):
        document = read_document(source)
    else:
        msg = f"Unsupported contract definition type: {type(source).__name__}"
        raise ContractLoadError(msg)

    try:
        contract = Contract.model_validate(dict(document))
    except ValidationError as e:
        msg = "Contract document does not match the OpenAPI shape"
        raise ContractLoadError(
            msg, {"errors": e.errors(include_url=False)}, cause=e
        ) from e

    logger.debug(
        "Contract loaded",
        paths=len(contract.paths),
        schemas=len(contract.components.schemas),
    )
    return contract
