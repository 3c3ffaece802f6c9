"""
Valuation Request Handlers

Maps the three request payloads (valuate, sensitivity grid, tornado) onto
the engine and serialises the responses with camelCase keys. Transport and
authentication belong to the caller.
"""
from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from valuation_engine.engine import valuate
from valuation_engine.models import TornadoSpec, ValuationInputs
from valuation_engine.sensitivities import sensitivity_grid, tornado
from valuation_io.readers import RequestError, inputs_section, parse_input_dict


def _number_list(payload: dict[str, Any], *keys: str) -> list[float]:
    """First list found under any of keys; every item must be a number."""
    for key in keys:
        if key in payload:
            values = payload[key]
            break
    else:
        raise RequestError(f"Missing '{keys[0]}'")

    if not isinstance(values, list):
        raise RequestError(f"'{keys[0]}' must be a list")
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise RequestError(f"'{keys[0]}' must contain numbers only, got {v!r}")
    return [float(v) for v in values]


def _require_inputs(payload: Any) -> ValuationInputs:
    if not isinstance(payload, dict) or "inputs" not in payload:
        raise RequestError("Missing 'inputs'")
    return parse_input_dict(payload["inputs"])


def parse_grid_request(payload: Any) -> tuple[ValuationInputs, list[float], list[float]]:
    """
    Parse {inputs, rateValues, growthValues}.

    The legacy field names 'waccVals' / 'gVals' are accepted too.
    """
    inputs = _require_inputs(payload)
    rate_values = _number_list(payload, "rateValues", "waccVals", "rate_values")
    growth_values = _number_list(payload, "growthValues", "gVals", "growth_values")
    return inputs, rate_values, growth_values


def parse_tornado_specs(raw: Any) -> list[TornadoSpec]:
    if not isinstance(raw, list):
        raise RequestError("'perturbations' must be a list")
    try:
        return [TornadoSpec.model_validate(item) for item in raw]
    except ValidationError as e:
        raise RequestError(f"Invalid perturbation: {e}") from e


def parse_tornado_request(payload: Any) -> tuple[ValuationInputs, list[TornadoSpec]]:
    """
    Parse {inputs, perturbations}; 'deltas' is accepted as an alias.
    """
    inputs = _require_inputs(payload)
    if "perturbations" in payload:
        raw = payload["perturbations"]
    elif "deltas" in payload:
        raw = payload["deltas"]
    else:
        raise RequestError("Missing 'perturbations'")
    return inputs, parse_tornado_specs(raw)


def handle_valuate(payload: Any) -> dict[str, Any]:
    """Valuate request -> serialised ValuationResult (bands included)."""
    inputs = parse_input_dict(inputs_section(payload))
    return valuate(inputs).model_dump(by_alias=True, mode="json")


def handle_sensitivity(payload: Any) -> dict[str, Any]:
    """Sensitivity request -> {grid, rateValues, growthValues}."""
    inputs, rate_values, growth_values = parse_grid_request(payload)
    return sensitivity_grid(inputs, rate_values, growth_values).model_dump(by_alias=True, mode="json")


def handle_tornado(payload: Any) -> dict[str, Any]:
    """Tornado request -> {rows}."""
    inputs, specs = parse_tornado_request(payload)
    return tornado(inputs, specs).model_dump(by_alias=True, mode="json")
