"""
Request parameter normalization.

Contract
- Standard keys work across providers:
  max_tokens: int
  temperature: float
  top_p: float
  stop: str | list[str]
  tools: list[ToolDescriptor]
  tool_choice: str | dict

- Provider specific keys go under `extra` and pass through unchanged.
  Unknown top-level keys are moved into extra.
"""

from __future__ import annotations

from typing import Any

STANDARD_KEYS = {
    "max_tokens",
    "temperature",
    "top_p",
    "stop",
    "tools",
    "tool_choice",
}

DEFAULT_MAX_TOKENS = 1000


def normalize_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """
    Normalize a user-supplied params dict to a single internal shape.

    Returns a dict with only standard keys plus an `extra` dict. A caller-supplied
    `extra` dict is merged last, so it wins over moved unknown keys.

    >>> normalize_params({"max_tokens": 10, "metadata": {"user_id": "u1"}})
    {'max_tokens': 10, 'extra': {'metadata': {'user_id': 'u1'}}}
    """
    if params is None:
        return {"extra": {}}
    if not isinstance(params, dict):
        raise TypeError(f"params must be a dict, got {type(params).__name__}")

    user_extra = params.get("extra") or {}
    if not isinstance(user_extra, dict):
        raise TypeError("params['extra'] must be a dict")

    std: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in params.items():
        if key == "extra":
            continue
        if key in STANDARD_KEYS:
            std[key] = value
        else:
            extra[key] = value

    std["extra"] = {**extra, **user_extra}
    return std


def split_extra(params: dict[str, Any]) -> dict[str, Any]:
    """Flatten normalized params for an SDK call; standard keys win over extras."""
    base = dict(params)
    extras = base.pop("extra", {})
    for k, v in extras.items():
        base.setdefault(k, v)
    return base
