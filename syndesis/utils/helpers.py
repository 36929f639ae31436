import re
import jsonpickle
from datetime import datetime, timezone
from typing import Any, Mapping

_PARAM_PATTERN = re.compile(r"\$\{([A-Za-z0-9_]+)\}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def find_params(input: str):
    """Return the names of all ${PARAM} placeholders found in input."""
    return _PARAM_PATTERN.findall(input)


def substitute_params(data: Any, params: Mapping[str, str]) -> Any:
    """
    Substitutes ${PARAM} placeholders in every string of a nested structure.

    For example, syndesis-upgrade-${SYNDESIS_VERSION} converts to
    syndesis-upgrade-1.5.0 if SYNDESIS_VERSION is a defined parameter.
    Placeholders without a matching parameter are left untouched.
    """
    if isinstance(data, str):
        return _PARAM_PATTERN.sub(
            lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
            data,
        )
    elif isinstance(data, dict):
        return {
            substitute_params(k, params): substitute_params(v, params)
            for k, v in data.items()
        }
    elif isinstance(data, list):
        return [substitute_params(item, params) for item in data]
    return data


def collect_params(data: Any) -> set:
    """Names of every placeholder still present in a nested structure."""
    if isinstance(data, str):
        return set(find_params(data))
    elif isinstance(data, dict):
        found = set()
        for k, v in data.items():
            found |= collect_params(k) | collect_params(v)
        return found
    elif isinstance(data, list):
        found = set()
        for item in data:
            found |= collect_params(item)
        return found
    return set()


def sort_dict_keys(d):
    """Recursively sort dictionary keys and handle nested structures.

    Args:
        d: Data structure (dict, list, or primitive type)

    Returns:
        Sorted version of the data structure
    """
    if isinstance(d, dict):
        return {key: sort_dict_keys(value) for key, value in sorted(d.items())}
    elif isinstance(d, list):
        return [sort_dict_keys(item) for item in d]
    else:
        return d


def canonicalize_dict(data):
    """
    Returns a canonical JSON representation of a dictionary.

    Keys are sorted recursively so two manifests with the same content
    always produce the same string regardless of key order.
    """
    return jsonpickle.dumps(sort_dict_keys(data), unpicklable=False)
