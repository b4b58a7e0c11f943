from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

if TYPE_CHECKING:
    from .state import TableView

logger = logging.getLogger(__name__)


class FilterOperator(str, Enum):
    CONTAINS = "contains"
    EQUALS = "equals"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    NOT_EQUALS = "not_equals"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


VALUELESS_OPERATORS = frozenset({FilterOperator.IS_EMPTY, FilterOperator.IS_NOT_EMPTY})


class Connector(str, Enum):
    AND = "AND"
    OR = "OR"

    @classmethod
    def parse(cls, raw: Any) -> Connector:
        return cls(str(raw).upper())


def as_text(value: Any) -> str:
    """Attribute value coerced to the lowercased text filters compare against."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).lower()


@dataclass(frozen=True)
class FilterCondition:
    """
    One condition of the ordered filter list.

    `connector` joins this condition to the *previous* one; the first
    condition of a list has no connector.
    """

    column: str
    operator: FilterOperator
    value: Optional[str] = None
    connector: Optional[Connector] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", FilterOperator(self.operator))
        if self.connector is not None:
            object.__setattr__(self, "connector", Connector.parse(self.connector))
        if self.operator not in VALUELESS_OPERATORS and self.value is None:
            raise ValueError(f"Operator '{self.operator.value}' requires a value")
        if self.value is not None:
            object.__setattr__(self, "value", str(self.value))

    def matches(self, attributes: Mapping[str, Any]) -> bool:
        cell = as_text(attributes.get(self.column))
        wanted = (self.value or "").lower()
        op = self.operator

        if op is FilterOperator.CONTAINS:
            return wanted in cell
        if op is FilterOperator.EQUALS:
            return cell == wanted
        if op is FilterOperator.STARTS_WITH:
            return cell.startswith(wanted)
        if op is FilterOperator.ENDS_WITH:
            return cell.endswith(wanted)
        if op is FilterOperator.NOT_EQUALS:
            return cell != wanted
        if op is FilterOperator.IS_EMPTY:
            return cell == ""
        return cell != ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.column,
            "operator": self.operator.value,
            "value": self.value,
            "connector": self.connector.value if self.connector else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterCondition:
        connector = data.get("connector")
        return cls(
            column=data["column"],
            operator=FilterOperator(data["operator"]),
            value=data.get("value"),
            connector=Connector.parse(connector) if connector else None,
        )


# -----------------------------------------------------------------------------
# Evaluation
# -----------------------------------------------------------------------------
def evaluate(conditions: List[FilterCondition], attributes: Mapping[str, Any]) -> bool:
    """
    Left fold over the conditions. Every condition is evaluated; the running
    result is combined with each subsequent match using that condition's
    connector. An empty list matches everything.
    """
    result: Optional[bool] = None
    for cond in conditions:
        matched = cond.matches(attributes)
        if result is None:
            result = matched
        elif cond.connector is Connector.OR:
            result = result or matched
        else:
            result = result and matched
    return True if result is None else result


def normalize(conditions: Iterable[FilterCondition]) -> List[FilterCondition]:
    """First condition loses its connector, the others default to AND."""
    out: List[FilterCondition] = []
    for cond in conditions:
        if not out:
            if cond.connector is not None:
                cond = replace(cond, connector=None)
        elif cond.connector is None:
            cond = replace(cond, connector=Connector.AND)
        out.append(cond)
    return out


# -----------------------------------------------------------------------------
# Mutations on a TableView (each is a query-shape change)
# -----------------------------------------------------------------------------
def apply_filters(view: TableView, conditions: Iterable[FilterCondition]) -> None:
    view.filter_conditions = normalize(conditions)
    view.reset_position()


def append_condition(view: TableView, condition: FilterCondition) -> None:
    apply_filters(view, [*view.filter_conditions, condition])


def remove_condition(view: TableView, index: int) -> None:
    """
    Remove the condition at `index` together with its connector. Removing the
    first condition promotes the second one to connector-less.
    """
    if not 0 <= index < len(view.filter_conditions):
        raise IndexError(f"No filter condition at index {index}")
    remaining = [c for i, c in enumerate(view.filter_conditions) if i != index]
    apply_filters(view, remaining)


def clear_filters(view: TableView) -> None:
    apply_filters(view, [])


# -----------------------------------------------------------------------------
# Transport encoding: JSON -> base64
# -----------------------------------------------------------------------------
def encode_filters(conditions: List[FilterCondition]) -> str:
    """
    Serialise conditions for the wire. An empty list encodes to "" so callers
    can omit the parameter.
    """
    if not conditions:
        return ""
    payload = [
        {
            "column": c.column,
            "operator": c.operator.value,
            "value": c.value,
            "logic": (c.connector or Connector.AND).value.lower(),
        }
        for c in conditions
    ]
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_filters(encoded: Optional[str]) -> List[FilterCondition]:
    """
    Reverse of encode_filters. Anything malformed (base64, JSON or condition
    shape) decodes to an empty list instead of raising.
    """
    if not encoded:
        return []
    try:
        raw = base64.b64decode(encoded, validate=True).decode("utf-8")
        payload = json.loads(raw)
        if not isinstance(payload, list):
            raise ValueError("filter payload is not a list")
        conditions = [
            FilterCondition(
                column=str(item["column"]),
                operator=FilterOperator(item["operator"]),
                value=item.get("value"),
                connector=Connector.parse(item["logic"]) if item.get("logic") else None,
            )
            for item in payload
        ]
    except (binascii.Error, ValueError, TypeError, KeyError, AttributeError) as e:
        logger.warning(
            "Discarding malformed filter encoding",
            extra={"encoded": encoded[:120], "error": str(e)},
        )
        return []
    return normalize(conditions)
