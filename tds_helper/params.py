"""
Parameter definitions and the merge of caller values into them.

A parameter map is a plain ``dict`` from parameter name to ``ParamDef``.
Definitions are immutable; ``merge`` returns a new map whose definitions
carry the resolved values, so one declaration map can be shared between
callers.  Plain dicts are accepted in place of ``ParamDef`` instances::

    params = {
        'AccountID': {'type': TYPES.Int, 'required': True},
        'UserName': {'type': TYPES.VarChar, 'required': True, 'alt': 'user'},
    }
    merged = merge(params, {'accountid': 7, 'user': 'bob'})
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .config import config
from .errors import MissingRequiredParameterError
from .types import SqlType

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for "no value", distinct from ``None`` (SQL NULL)."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

RETURN_VALUE_KEY = "returnValue"

# fromisoformat accepts a "Z" suffix only from Python 3.11 on
_UTC_SUFFIX_RE = re.compile(r"[Zz]$")


@dataclass(frozen=True)
class ParamDef:
    """Declarative description of one query or procedure parameter."""

    type: SqlType
    required: bool = False
    alt: Union[str, Sequence[str], None] = None
    options: Mapping[str, Any] = field(default_factory=dict)
    value: Any = UNSET
    output: bool = False

    @property
    def has_value(self) -> bool:
        return self.value is not UNSET

    @classmethod
    def coerce(cls, definition: Union["ParamDef", Mapping[str, Any]]) -> "ParamDef":
        """Build a ``ParamDef`` from a ``ParamDef`` or a dict of its fields."""
        if isinstance(definition, ParamDef):
            return definition
        if not isinstance(definition, Mapping):
            raise TypeError(f"Unsupported parameter definition: {definition!r}")
        data = dict(definition)
        if "type" not in data:
            raise TypeError(f"Parameter definition has no type: {definition!r}")
        return cls(
            type=data["type"],
            required=bool(data.get("required", False)),
            alt=data.get("alt"),
            options=dict(data.get("options") or {}),
            value=data.get("value", UNSET),
            output=bool(data.get("output", False)),
        )

    def with_value(self, value: Any) -> "ParamDef":
        return replace(self, value=value)

    def candidate_keys(self, name: str) -> List[str]:
        """All the names a value may be supplied under, in lookup order."""
        keys = [name, name.lower()]
        if isinstance(self.alt, str):
            keys += [self.alt, self.alt.lower()]
        elif self.alt:
            alts = list(self.alt)
            keys += alts + [a.lower() for a in alts]
        return keys

    def bind_value(self) -> Any:
        """Value as handed to the driver; date strings become date objects."""
        value = self.value
        if isinstance(value, str):
            if self.type.is_datetime:
                return datetime.fromisoformat(_UTC_SUFFIX_RE.sub("+00:00", value))
            if self.type is SqlType.Date:
                return date.fromisoformat(value)
        return value


ParamMap = Dict[str, ParamDef]


def coerce_params(params: Optional[Mapping[str, Any]]) -> ParamMap:
    """Normalise a parameter map so every entry is a ``ParamDef``."""
    if not params:
        return {}
    return {name: ParamDef.coerce(definition) for name, definition in params.items()}


def merge(params: Any, values: Optional[Mapping[str, Any]], *, throw_on_missing: Optional[bool] = None) -> Any:
    """Merge caller values into parameter definitions.

    For each declared parameter the value map is searched under the
    parameter's name, its lowercase form and its alternate names (see
    ``ParamDef.candidate_keys``).  The first key present whose value is not
    ``UNSET`` wins.  A key present with the value ``UNSET`` is treated as
    absent: the search goes on to the next candidate and does not count as
    found for the required check.

    Args:
        params: Mapping of parameter names to definitions.  Anything that
            is not a mapping (``None``, a list) is returned unchanged.
        values: Mapping of caller supplied values.  Not modified.
        throw_on_missing: Raise when a required parameter is not found.
            ``None`` uses ``config.THROW_ON_MISSING``.

    Returns:
        A new parameter map with the values assigned.

    Raises:
        MissingRequiredParameterError: If a required parameter has no
            candidate key in ``values``, no preset value, and
            ``throw_on_missing`` is set.
    """
    logger.debug("[merge] merging parameters")
    if not isinstance(params, Mapping):
        return params
    if throw_on_missing is None:
        throw_on_missing = config.THROW_ON_MISSING
    values = values or {}

    merged: ParamMap = {}
    for name, definition in params.items():
        definition = ParamDef.coerce(definition)
        found = False
        for key in definition.candidate_keys(name):
            if key in values and values[key] is not UNSET:
                definition = definition.with_value(values[key])
                found = True
                break
        if not found and definition.required and not definition.has_value and throw_on_missing:
            logger.debug("[merge] missing required parameter", extra={"param": name})
            raise MissingRequiredParameterError(name)
        merged[name] = definition
    return merged
