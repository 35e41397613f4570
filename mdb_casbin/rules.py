"""
Policy rule rows.

Maps Casbin policy tuples to the fixed-width row schema stored in MongoDB
(``p_type`` plus ``v0``..``v5``) and back, and builds the equality filters
used by the removal operations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, fields
from typing import Any

from .constants import (
    MAX_RULE_FIELDS,
    NAMESPACE_FIELD,
    PTYPE_FIELD,
    REMOVE_POLICY_FIELDS,
    RULE_FIELDS,
)
from .exceptions import ValidationError


@dataclass
class CasbinRule:
    """
    One stored policy row.

    Unused positions hold the empty string so that every row has the same
    shape and equality filters on any field behave uniformly.

    Example:
        rule = CasbinRule.from_policy("p", ["alice", "data1", "read"])
        rule.to_tokens()  # ["alice", "data1", "read"]
        rule.section      # "p"
    """

    p_type: str
    v0: str = ""
    v1: str = ""
    v2: str = ""
    v3: str = ""
    v4: str = ""
    v5: str = ""

    @classmethod
    def from_policy(cls, ptype: str, rule: Sequence[str]) -> CasbinRule:
        """
        Build a row from a policy type and a rule tuple.

        Raises:
            ValidationError: If the rule has more fields than the schema holds
        """
        if len(rule) > MAX_RULE_FIELDS:
            raise ValidationError(
                f"rule has {len(rule)} fields, at most {MAX_RULE_FIELDS} can be stored",
                context={"p_type": ptype},
            )
        values = dict(zip(RULE_FIELDS, (str(v) for v in rule)))
        return cls(p_type=ptype, **values)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> CasbinRule:
        """Create a row from a stored document; missing or null fields read as empty."""
        values = {f.name: doc.get(f.name) or "" for f in fields(cls)}
        return cls(**values)

    def to_document(self, namespace: str) -> dict[str, Any]:
        """Document written to the store for this row."""
        doc: dict[str, Any] = {NAMESPACE_FIELD: namespace, PTYPE_FIELD: self.p_type}
        for name in RULE_FIELDS:
            doc[name] = getattr(self, name)
        return doc

    @property
    def values(self) -> list[str]:
        return [getattr(self, name) for name in RULE_FIELDS]

    @property
    def section(self) -> str:
        """Model section, taken from the first character of the policy type."""
        return self.p_type[:1]

    def to_tokens(self) -> list[str]:
        """
        Rebuild the rule tuple.

        Fields are taken in order up to the first empty one; that field and
        every field after it are dropped, even when later fields hold values.
        """
        tokens = []
        for value in self.values:
            if not value:
                break
            tokens.append(value)
        return tokens


def rules_filter(namespace: str, ptype: str | None = None) -> dict[str, Any]:
    """
    Filter selecting rule rows of a namespace.

    Rows always carry ``p_type``; requiring it keeps the model document,
    which shares the collection, out of every rule query.
    """
    query: dict[str, Any] = {NAMESPACE_FIELD: namespace}
    query[PTYPE_FIELD] = ptype if ptype is not None else {"$exists": True}
    return query


def remove_policy_filter(namespace: str, ptype: str, rule: Sequence[str]) -> dict[str, Any]:
    """
    Exact-match filter for remove_policy.

    Matches ``p_type`` and ``v0``..``v4``. ``v5`` is never part of the match.
    """
    row = CasbinRule.from_policy(ptype, rule)
    query = rules_filter(namespace, ptype)
    for name in RULE_FIELDS[:REMOVE_POLICY_FIELDS]:
        query[name] = getattr(row, name)
    return query


def remove_filtered_policy_filter(
    namespace: str, ptype: str, field_index: int, field_values: Sequence[str]
) -> dict[str, Any] | None:
    """
    Filter for remove_filtered_policy.

    ``field_values[i]`` constrains ``v{field_index + i}``. Empty values are
    wildcards and add no constraint.

    Returns None when a non-empty value falls past ``v5``: no stored row can
    match it.
    """
    if field_index < 0:
        raise ValidationError(
            f"field_index must be >= 0, got {field_index}", context={"p_type": ptype}
        )

    query = rules_filter(namespace, ptype)
    for offset, value in enumerate(field_values):
        position = field_index + offset
        if not value:
            continue
        if position >= MAX_RULE_FIELDS:
            return None
        query[RULE_FIELDS[position]] = value
    return query
