"""kvquery - schema-driven relational queries over ordered key-value stores."""

from .client import Client, create_client
from .errors import ConfigurationError, KVQueryError, StoreError, ValidationError
from .models import BatchResult, ClientState, FindManyResult, Order, OrderBy
from .namespace import Namespace
from .predicates import (
    All,
    And,
    Contains,
    EndsWith,
    Eq,
    Gt,
    Gte,
    In,
    Lt,
    Lte,
    Ne,
    Never,
    NotIn,
    Predicate,
    StartsWith,
    compile_where,
    matches,
)
from .schema import Cardinality, ModelDefinition, PrimaryKey, Relation, SchemaRegistry, create_schema
from .settings import Settings, settings
from .shaping import apply_select
from .store import KVStore, MemoryStore, RocksStore, StoreEntry, get_store

__all__ = [
    # Client
    "Client",
    "create_client",
    "Namespace",
    # Schema
    "create_schema",
    "SchemaRegistry",
    "ModelDefinition",
    "Relation",
    "Cardinality",
    "PrimaryKey",
    # Results
    "FindManyResult",
    "BatchResult",
    "OrderBy",
    "Order",
    "ClientState",
    # Where clauses
    "compile_where",
    "matches",
    "Predicate",
    "Eq",
    "Ne",
    "Gt",
    "Gte",
    "Lt",
    "Lte",
    "In",
    "NotIn",
    "Contains",
    "StartsWith",
    "EndsWith",
    "And",
    "All",
    "Never",
    "apply_select",
    # Stores
    "KVStore",
    "StoreEntry",
    "MemoryStore",
    "RocksStore",
    "get_store",
    # Errors
    "KVQueryError",
    "ValidationError",
    "ConfigurationError",
    "StoreError",
    # Config
    "Settings",
    "settings",
]
