"""Schema registry - pydantic models and relation declarations per collection.

Each collection is registered once at startup with a pydantic model and an
optional mapping of relations. The registry is a pure lookup structure: it
performs no I/O and does not check that relation targets exist (dangling
targets surface when a relation is traversed).
"""

from enum import Enum
from typing import Any, Mapping, Optional, Type

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from kvquery.errors import ConfigurationError, ValidationError
from kvquery.settings import Settings, settings


def PrimaryKey(default: Any = None, **kwargs: Any) -> Any:
    """Declare a model field as the collection primary key.

    Works like ``pydantic.Field`` and tags the field with
    ``json_schema_extra={"primary_key": True}``. The default is ``None`` so the
    key can be omitted on create and synthesized by the engine.

    Example:
        >>> class User(BaseModel):
        ...     id: str | None = PrimaryKey(description="User id")
        ...     name: str
    """
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra["primary_key"] = True
    return Field(default=default, json_schema_extra=extra, **kwargs)


class Cardinality(str, Enum):
    """Relation cardinality."""

    ONE = "one"
    MANY = "many"


class Relation(BaseModel):
    """Link from a record to records of another collection.

    The related records are those in ``target`` whose ``foreign_key`` equals
    this record's ``local_key``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    target: str = Field(description="Target collection name")
    cardinality: Cardinality = Field(
        default=Cardinality.MANY, description="one (single record) or many (list)"
    )
    local_key: str = Field(description="Field on this record holding the join value")
    foreign_key: str = Field(description="Field on the target record matched against local_key")


class FieldDescriptor(BaseModel):
    """Field metadata derived from a pydantic model field."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    annotation: Any = None
    required: bool = False
    is_primary_key: bool = False


def _is_tagged_primary_key(field_info: Any) -> bool:
    extra = field_info.json_schema_extra
    return isinstance(extra, dict) and bool(extra.get("primary_key"))


class ModelDefinition(BaseModel):
    """Registered collection: name, pydantic model, fields and relations."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(description="Collection name (also the key-space prefix)")
    model: Type[BaseModel] = Field(description="Pydantic model validating records")
    fields: dict[str, FieldDescriptor] = Field(default_factory=dict)
    relations: dict[str, Relation] = Field(default_factory=dict)
    primary_key: str = Field(description="Primary key field name")
    primary_key_declared: bool = Field(
        default=False, description="True when the model tags a primary key field"
    )

    @classmethod
    def from_pydantic(
        cls,
        name: str,
        model: Type[BaseModel],
        relations: Optional[Mapping[str, Relation | Mapping[str, Any]]] = None,
        default_primary_key: str | None = None,
    ) -> "ModelDefinition":
        """Build a definition from a pydantic model class.

        Args:
            name: Collection name
            model: Pydantic model class
            relations: Relation name -> Relation (or a dict of Relation fields)
            default_primary_key: Primary key used when no field is tagged

        Returns:
            ModelDefinition

        Raises:
            ConfigurationError: If the model is not a pydantic model, tags more
                than one primary key, or a relation is malformed
        """
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise ConfigurationError(
                f"schema must be a pydantic model class, got {model!r}", collection=name
            )

        fields: dict[str, FieldDescriptor] = {}
        tagged: list[str] = []
        for field_name, field_info in model.model_fields.items():
            is_pk = _is_tagged_primary_key(field_info)
            if is_pk:
                tagged.append(field_name)
            fields[field_name] = FieldDescriptor(
                name=field_name,
                annotation=field_info.annotation,
                required=field_info.is_required(),
                is_primary_key=is_pk,
            )

        if len(tagged) > 1:
            raise ConfigurationError(
                f"model {model.__name__} tags more than one primary key: {tagged}",
                collection=name,
            )

        parsed_relations: dict[str, Relation] = {}
        for relation_name, relation in (relations or {}).items():
            try:
                parsed_relations[relation_name] = (
                    relation if isinstance(relation, Relation) else Relation.model_validate(relation)
                )
            except PydanticValidationError as e:
                raise ConfigurationError(
                    f"invalid relation '{relation_name}': {e}", collection=name
                ) from e

        primary_key = tagged[0] if tagged else (default_primary_key or settings.primary_key_field)

        return cls(
            name=name,
            model=model,
            fields=fields,
            relations=parsed_relations,
            primary_key=primary_key,
            primary_key_declared=bool(tagged),
        )

    def has_field(self, field_name: str) -> bool:
        """Check whether the model declares a field."""
        return field_name in self.fields

    def validate_data(self, data: Mapping[str, Any], operation: str = "validate") -> dict[str, Any]:
        """Validate data against the model.

        Args:
            data: Record data (relation keys already removed)
            operation: Operation name used in error messages

        Returns:
            Validated, JSON-compatible record

        Raises:
            ValidationError: If data doesn't match the model
        """
        try:
            validated = self.model.model_validate(dict(data))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Validation error in {self.name}: {e}",
                collection=self.name,
                operation=operation,
                errors=e.errors(include_url=False),
            ) from e
        return validated.model_dump(mode="json")


class SchemaRegistry:
    """Per-collection schema and relation registry.

    Registration is idempotent per name (last write wins) and must happen
    before the client is initialized; afterwards the registry is frozen.

    Example:
        >>> schema = create_schema().model({
        ...     "users": {
        ...         "schema": User,
        ...         "relations": {
        ...             "orders": {"target": "orders", "cardinality": "many",
        ...                        "local_key": "id", "foreign_key": "user_id"},
        ...         },
        ...     },
        ...     "orders": {"schema": Order},
        ... })
        >>> schema.get_primary_key("users")
        'id'
    """

    def __init__(self, primary_key_field: str | None = None, config: Settings | None = None):
        self._models: dict[str, ModelDefinition] = {}
        self._frozen = False
        self.primary_key_field = primary_key_field or (config or settings).primary_key_field

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make the registry read-only."""
        self._frozen = True

    def register(
        self,
        name: str,
        model: Type[BaseModel],
        relations: Optional[Mapping[str, Relation | Mapping[str, Any]]] = None,
    ) -> ModelDefinition:
        """Register a pydantic model as a collection.

        Args:
            name: Collection name
            model: Pydantic model class
            relations: Relation declarations keyed by relation name

        Returns:
            Registered ModelDefinition

        Raises:
            ConfigurationError: If the registry is frozen or the declaration is invalid
        """
        if self._frozen:
            raise ConfigurationError(
                "schema registry is read-only once the client is initialized",
                collection=name,
                operation="register",
            )

        definition = ModelDefinition.from_pydantic(
            name=name,
            model=model,
            relations=relations,
            default_primary_key=self.primary_key_field,
        )
        if name in self._models:
            logger.debug(f"Replacing schema for collection '{name}'")
        self._models[name] = definition
        logger.debug(
            f"Registered collection '{name}' (model={model.__name__}, "
            f"pk={definition.primary_key}, relations={list(definition.relations)})"
        )
        return definition

    def model(self, config: Mapping[str, Mapping[str, Any]]) -> "SchemaRegistry":
        """Register several collections at once.

        Args:
            config: Collection name -> {"schema": Model, "relations": {...}}

        Returns:
            The registry, for chaining
        """
        for name, model_config in config.items():
            if "schema" not in model_config:
                raise ConfigurationError("missing 'schema' entry", collection=name, operation="register")
            self.register(name, model_config["schema"], model_config.get("relations"))
        return self

    def get_definition(self, name: str) -> Optional[ModelDefinition]:
        """Get the full definition for a collection."""
        return self._models.get(name)

    def get_schema(self, name: str) -> Optional[Type[BaseModel]]:
        """Get the pydantic model for a collection."""
        definition = self._models.get(name)
        return definition.model if definition else None

    def get_relations(self, name: str) -> dict[str, Relation]:
        """Get relations for a collection (empty when none or unknown)."""
        definition = self._models.get(name)
        return dict(definition.relations) if definition else {}

    def get_primary_key(self, name: str) -> Optional[str]:
        """Get the primary key field name for a collection."""
        definition = self._models.get(name)
        return definition.primary_key if definition else None

    def list_models(self) -> list[str]:
        """List all registered collection names."""
        return list(self._models.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._models


def create_schema(primary_key_field: str | None = None, config: Settings | None = None) -> SchemaRegistry:
    """Create an empty schema registry.

    The default primary key field is ``primary_key_field``, else the one in
    ``config`` (the module settings when omitted).
    """
    return SchemaRegistry(primary_key_field=primary_key_field, config=config)
