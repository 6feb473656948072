"""Test schema registration, primary key detection and validation."""

import pytest
from pydantic import BaseModel, Field

from kvquery.errors import ConfigurationError, ValidationError
from kvquery.schema import Cardinality, PrimaryKey, Relation, create_schema
from kvquery.settings import Settings


class User(BaseModel):
    id: str | None = None
    name: str
    email: str


class Product(BaseModel):
    sku: str | None = PrimaryKey(description="Stock keeping unit")
    title: str
    price: float = Field(ge=0)


class Broken(BaseModel):
    a: str | None = PrimaryKey()
    b: str | None = PrimaryKey()


# =================================================================
# Registration
# =================================================================


def test_model_registers_collections():
    """Test fluent multi-collection registration."""
    schema = create_schema().model({
        "users": {
            "schema": User,
            "relations": {
                "orders": {"target": "orders", "local_key": "id", "foreign_key": "user_id"},
            },
        },
        "products": {"schema": Product},
    })

    assert schema.list_models() == ["users", "products"]
    assert "users" in schema
    assert "missing" not in schema
    assert schema.get_schema("users") is User
    assert schema.get_schema("missing") is None


def test_relations_are_parsed():
    """Test relation dicts become Relation models with default cardinality."""
    schema = create_schema().model({
        "users": {
            "schema": User,
            "relations": {
                "orders": {"target": "orders", "local_key": "id", "foreign_key": "user_id"},
                "profile": Relation(
                    target="profiles", cardinality=Cardinality.ONE, local_key="id", foreign_key="user_id"
                ),
            },
        },
    })

    relations = schema.get_relations("users")
    assert relations["orders"].cardinality == Cardinality.MANY
    assert relations["profile"].cardinality == Cardinality.ONE
    assert schema.get_relations("missing") == {}


def test_get_relations_returns_copy():
    """Test callers cannot mutate registered relations."""
    schema = create_schema().model({
        "users": {
            "schema": User,
            "relations": {"orders": {"target": "orders", "local_key": "id", "foreign_key": "user_id"}},
        },
    })

    schema.get_relations("users").clear()
    assert "orders" in schema.get_relations("users")


def test_reregistration_last_write_wins():
    """Test registering a name twice replaces the first definition."""
    schema = create_schema()
    schema.register("items", User)
    schema.register("items", Product)

    assert schema.get_schema("items") is Product
    assert schema.list_models() == ["items"]


def test_missing_schema_entry_raises():
    """Test a config entry without 'schema' is rejected."""
    with pytest.raises(ConfigurationError):
        create_schema().model({"users": {"relations": {}}})


def test_non_model_schema_raises():
    """Test only pydantic model classes are accepted."""
    with pytest.raises(ConfigurationError):
        create_schema().register("users", dict)


def test_malformed_relation_raises():
    """Test relations missing keys are rejected at registration."""
    with pytest.raises(ConfigurationError):
        create_schema().register("users", User, {"orders": {"target": "orders"}})


def test_frozen_registry_rejects_registration():
    """Test the registry is read-only once frozen."""
    schema = create_schema()
    schema.register("users", User)
    schema.freeze()

    assert schema.frozen
    with pytest.raises(ConfigurationError):
        schema.register("products", Product)


# =================================================================
# Primary keys
# =================================================================


def test_default_primary_key():
    """Test untagged models use the configured default key field."""
    schema = create_schema()
    schema.register("users", User)

    definition = schema.get_definition("users")
    assert definition.primary_key == "id"
    assert not definition.primary_key_declared


def test_tagged_primary_key():
    """Test PrimaryKey() marks the key field."""
    schema = create_schema()
    schema.register("products", Product)

    assert schema.get_primary_key("products") == "sku"
    assert schema.get_definition("products").fields["sku"].is_primary_key
    assert schema.get_primary_key("missing") is None


def test_registry_primary_key_override():
    """Test a registry-level default key field."""
    schema = create_schema(primary_key_field="uid")
    schema.register("users", User)

    assert schema.get_primary_key("users") == "uid"


def test_multiple_primary_keys_raise():
    """Test a model may tag at most one key field."""
    with pytest.raises(ConfigurationError):
        create_schema().register("broken", Broken)


# =================================================================
# Validation
# =================================================================


def test_validate_data_returns_json_record():
    """Test validation coerces and dumps to JSON-compatible values."""
    schema = create_schema()
    definition = schema.register("products", Product)

    record = definition.validate_data({"sku": "p1", "title": "Lamp", "price": "9.5"})
    assert record == {"sku": "p1", "title": "Lamp", "price": 9.5}


def test_validate_data_wraps_errors():
    """Test pydantic errors surface as ValidationError with details."""
    schema = create_schema()
    definition = schema.register("products", Product)

    with pytest.raises(ValidationError) as exc_info:
        definition.validate_data({"title": "Lamp", "price": -1}, operation="create")

    error = exc_info.value
    assert error.collection == "products"
    assert error.operation == "create"
    assert error.errors[0]["loc"] == ("price",)
    assert str(error).startswith("products.create:")


def test_registry_primary_key_from_config():
    """Test the default key field can come from a settings object."""
    schema = create_schema(config=Settings(primary_key_field="uid"))
    schema.register("users", User)

    assert schema.get_primary_key("users") == "uid"
    assert create_schema(primary_key_field="key", config=Settings(primary_key_field="uid")).primary_key_field == "key"
