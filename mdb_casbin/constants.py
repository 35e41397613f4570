"""
Constants for MDB_CASBIN.

This module contains the shared constants used by the model store and the
policy adapter: collection defaults, the stored document schema, and the
built-in model definitions.
"""

from typing import Final

# ============================================================================
# STORAGE CONSTANTS
# ============================================================================

DEFAULT_COLLECTION: Final[str] = "casbin"
"""Default collection holding both rule rows and the model document."""

DEFAULT_NAMESPACE: Final[str] = ""
"""Default namespace (root partition)."""

MODEL_DOCUMENT_KEY: Final[str] = "conf"
"""Key identifying the model document inside a namespace."""

NAMESPACE_FIELD: Final[str] = "namespace"
KEY_FIELD: Final[str] = "key"
TEXT_FIELD: Final[str] = "text"
PTYPE_FIELD: Final[str] = "p_type"

RULE_FIELDS: Final[tuple[str, ...]] = ("v0", "v1", "v2", "v3", "v4", "v5")
"""Positional value fields of a rule row."""

MAX_RULE_FIELDS: Final[int] = len(RULE_FIELDS)
"""Maximum arity of a rule that fits the fixed-width row schema."""

REMOVE_POLICY_FIELDS: Final[int] = 5
"""Number of value fields (v0..v4) matched by remove_policy; v5 is never matched."""

POLICY_SECTIONS: Final[tuple[str, ...]] = ("p", "g")
"""Model sections persisted by save_policy."""

# ============================================================================
# VALIDATION CONSTANTS
# ============================================================================

MAX_COLLECTION_NAME_LENGTH: Final[int] = 255
"""Maximum length for MongoDB collection names."""

RESERVED_COLLECTION_PREFIX: Final[str] = "system."
"""MongoDB reserves collection names starting with this prefix."""

# ============================================================================
# CONNECTION CONSTANTS
# ============================================================================

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

# ============================================================================
# BUILT-IN MODELS
# ============================================================================

# Subject (user/role) -> Object -> Action, with role inheritance via g rules.
DEFAULT_RBAC_MODEL: Final[str] = """
[request_definition]
r = sub, obj, act

[policy_definition]
p = sub, obj, act

[role_definition]
g = _, _

[policy_effect]
e = some(where (p.eft == allow))

[matchers]
m = g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act
"""

# Plain ACL, no roles.
SIMPLE_ACL_MODEL: Final[str] = """
[request_definition]
r = sub, obj, act

[policy_definition]
p = sub, obj, act

[policy_effect]
e = some(where (p.eft == allow))

[matchers]
m = r.sub == p.sub && r.obj == p.obj && r.act == p.act
"""
