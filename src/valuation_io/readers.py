"""
Valuation I/O Readers

YAML and JSON input file parsing.

A file holds either a bare inputs mapping, or a request with an 'inputs'
section plus optional grid axes and tornado perturbations.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from valuation_engine.models import ValuationInputs


class RequestError(ValueError):
    """Raised when a payload is malformed."""
    pass


def _map_legacy_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Older payloads send 'taxRate'; it maps onto 'taxRateNorm' when absent."""
    if "taxRateNorm" not in data and "tax_rate_norm" not in data and "taxRate" in data:
        data = {**data, "taxRateNorm": data["taxRate"]}
        del data["taxRate"]
    return data


def parse_input_dict(data: dict[str, Any]) -> ValuationInputs:
    """
    Parse a dictionary of inputs into a ValuationInputs model.

    This is the core parsing function used by both file readers and the
    request handlers. Keys may be snake_case or camelCase.

    Raises:
        RequestError: If the mapping is not a valid inputs record
    """
    if not isinstance(data, dict):
        raise RequestError("Inputs must be a mapping")
    try:
        return ValuationInputs.model_validate(_map_legacy_fields(data))
    except ValidationError as e:
        raise RequestError(f"Invalid inputs: {e}") from e


def inputs_section(data: dict[str, Any]) -> dict[str, Any]:
    """Return the 'inputs' section of a request, or the mapping itself."""
    if isinstance(data, dict) and "inputs" in data:
        return data["inputs"]
    return data


def read_yaml(path: str | Path) -> dict[str, Any]:
    """
    Read a raw request mapping from a YAML file.
    """
    path = Path(path)
    with open(path, "r") as f:
        return yaml.safe_load(f)


def read_json(path: str | Path) -> dict[str, Any]:
    """
    Read a raw request mapping from a JSON file.
    """
    path = Path(path)
    with open(path, "r") as f:
        return json.load(f)


def read_request_file(path: str | Path) -> dict[str, Any]:
    """
    Read a raw request mapping from a file (auto-detects format).

    Args:
        path: Path to input file (YAML or JSON)
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        data = read_yaml(path)
    elif suffix == ".json":
        data = read_json(path)
    else:
        raise ValueError(f"Unsupported file format: {suffix}")

    if not isinstance(data, dict):
        raise RequestError(f"Input file must contain a mapping: {path}")
    return data


def read_input_file(path: str | Path) -> ValuationInputs:
    """
    Read valuation inputs from a file (auto-detects format).

    Args:
        path: Path to input file (YAML or JSON)

    Returns:
        ValuationInputs model
    """
    return parse_input_dict(inputs_section(read_request_file(path)))
