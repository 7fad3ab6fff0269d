"""Module for building the values document passed to chart rendering.

Values come from four sources, merged in increasing order of precedence:
the versioned spec, the selected layer options (in the order the caller
supplied them), the install parameters, and finally the user overrides.
Nested mappings are merged recursively; any other value, including lists,
replaces the earlier value entirely, the same way Helm merges values files.
"""

from collections.abc import Mapping
import logging
import re
from typing import Any

import yaml

from .exceptions import InputException, ValuesParseError, ValuesSource
from .inputs import ValuesInputs

__all__ = [
    "to_nested_map",
    "params_to_nested_map",
    "deep_merge",
    "to_yaml",
    "compute_value_overrides",
]

_LOGGER = logging.getLogger(__name__)

_INT_RE = re.compile(r"^[-+]?(0|[1-9][0-9]*)$")


def to_nested_map(content: str, source: ValuesSource) -> dict[str, Any]:
    """Parse a YAML values document into a mapping."""
    if not content or not content.strip():
        return {}
    try:
        obj = yaml.load(content, Loader=yaml.SafeLoader)
    except yaml.YAMLError as err:
        raise ValuesParseError(source, content, str(err)) from err
    # Handle empty YAML file case
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValuesParseError(
            source, content, f"expected a mapping, found {type(obj).__name__}"
        )
    return obj


def _split_path(path: str) -> list[str]:
    """Split a dotted parameter path, honoring `\\.` escapes."""
    raw_parts = re.split(r"(?<!\\)\.", path)
    parts = [re.sub(r"\\(.)", r"\1", raw_part) for raw_part in raw_parts]
    if not all(parts):
        raise ValuesParseError(
            ValuesSource.PARAM, path, f"invalid parameter path '{path}'"
        )
    return parts


def _parse_param_value(value: str) -> Any:
    """Type a parameter value the way `helm --set` does."""
    if value == "true":
        return True
    if value == "false":
        return False
    if value == "null":
        return None
    if _INT_RE.match(value):
        return int(value)
    return value


def params_to_nested_map(params: Mapping[str, str]) -> dict[str, Any]:
    """Expand dotted parameter names into a nested mapping.

    For example `{"a.b.c": "v"}` becomes `{"a": {"b": {"c": "v"}}}`.
    """
    values: dict[str, Any] = {}
    for name in sorted(params):
        parts = _split_path(name)
        inner_values = values
        for part in parts[:-1]:
            if part not in inner_values:
                inner_values[part] = {}
            elif not isinstance(inner_values[part], dict):
                raise ValuesParseError(
                    ValuesSource.PARAM,
                    name,
                    f"parameter '{name}' descends into non-mapping value '{part}'",
                )
            inner_values = inner_values[part]
        if isinstance(inner_values.get(parts[-1]), dict):
            raise ValuesParseError(
                ValuesSource.PARAM,
                name,
                f"parameter '{name}' would replace a nested mapping",
            )
        inner_values[parts[-1]] = _parse_param_value(params[name])
    return values


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge two mappings, with values in overlay taking precedence.

    Lists and scalars are replaced entirely, never merged element-wise.
    """
    result = dict(base)
    for key, overlay_value in overlay.items():
        base_value = result.get(key)
        if isinstance(base_value, Mapping) and isinstance(overlay_value, Mapping):
            result[key] = deep_merge(base_value, overlay_value)
        else:
            result[key] = overlay_value
    return result


def to_yaml(values: Mapping[str, Any]) -> str:
    """Serialize a values mapping as a YAML document."""
    try:
        return yaml.dump(dict(values), sort_keys=False)
    except yaml.YAMLError as err:
        raise InputException(f"Unable to serialize values: {err}") from err


def compute_value_overrides(inputs: ValuesInputs) -> str:
    """Coalesce the spec, layer, parameter and user values into one document.

    User defined values override params which override layer values which
    override spec values.
    """
    values: dict[str, Any] = {}

    try:
        spec_values = to_nested_map(inputs.spec_defined_values, ValuesSource.SPEC)
    except ValuesParseError as err:
        _LOGGER.error(
            "Error parsing spec values yaml: %s\nvalues:\n%s",
            err,
            inputs.spec_defined_values,
        )
        raise
    values = deep_merge(values, spec_values)

    for layer_input in inputs.layers:
        if inputs.flavor is None:
            raise InputException(
                f"Layer input '{layer_input.layer_id}' supplied without a flavor"
            )
        option = inputs.flavor.get_layer_option(
            layer_input.layer_id, layer_input.option_id
        )
        if not option.helm_values:
            continue
        try:
            layer_values = to_nested_map(option.helm_values, ValuesSource.LAYER)
        except ValuesParseError as err:
            _LOGGER.error(
                "Error parsing layer values yaml for %s/%s: %s\nvalues:\n%s",
                layer_input.layer_id,
                layer_input.option_id,
                err,
                option.helm_values,
            )
            raise
        values = deep_merge(values, layer_values)

    try:
        param_values = params_to_nested_map(inputs.params)
    except ValuesParseError as err:
        _LOGGER.error("Error parsing install params: %s", err)
        raise
    values = deep_merge(values, param_values)

    try:
        user_values = to_nested_map(inputs.user_defined_values, ValuesSource.USER)
    except ValuesParseError as err:
        _LOGGER.error(
            "Error parsing user values yaml: %s\nvalues:\n%s",
            err,
            inputs.user_defined_values,
        )
        raise
    values = deep_merge(values, user_values)

    return to_yaml(values)
