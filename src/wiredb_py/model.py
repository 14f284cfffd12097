from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .errors import MissingKeyDefinitionError, TooManyKeysError, ValidationError

if TYPE_CHECKING:
    from .conditions import AttributeCondition

HASH_KEY_TYPE = "HASH"
RANGE_KEY_TYPE = "RANGE"

TABLE_STATUS_CREATING = "CREATING"
TABLE_STATUS_UPDATING = "UPDATING"
TABLE_STATUS_DELETING = "DELETING"
TABLE_STATUS_ACTIVE = "ACTIVE"


@dataclass(frozen=True)
class AttributeDefinition:
    attribute_name: str
    attribute_type: str

    def to_request(self) -> dict[str, str]:
        return {"AttributeName": self.attribute_name, "AttributeType": self.attribute_type}

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> AttributeDefinition:
        return AttributeDefinition(
            attribute_name=str(raw.get("AttributeName", "")),
            attribute_type=str(raw.get("AttributeType", "")),
        )

    def condition(self, operator: str, *values: Any) -> AttributeCondition:
        from .conditions import attribute_condition

        return attribute_condition(self, operator, *values)


@dataclass(frozen=True)
class KeyValue:
    key: AttributeDefinition
    value: Any


@dataclass(frozen=True)
class KeySchemaElement:
    attribute_name: str
    key_type: str

    def to_request(self) -> dict[str, str]:
        return {"AttributeName": self.attribute_name, "KeyType": self.key_type}

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> KeySchemaElement:
        return KeySchemaElement(
            attribute_name=str(raw.get("AttributeName", "")),
            key_type=str(raw.get("KeyType", "")),
        )


@dataclass(frozen=True)
class KeySchema:
    hash_key: AttributeDefinition
    range_key: AttributeDefinition | None = None

    @classmethod
    def from_description(
        cls,
        attributes: Sequence[AttributeDefinition],
        elements: Sequence[KeySchemaElement],
    ) -> KeySchema:
        if len(elements) > 2:
            raise TooManyKeysError(f"key schema declares {len(elements)} keys (maximum 2)")

        by_name = {a.attribute_name: a for a in attributes}
        hash_key: AttributeDefinition | None = None
        range_key: AttributeDefinition | None = None

        for element in elements:
            attr = by_name.get(element.attribute_name)
            if attr is None:
                raise MissingKeyDefinitionError(f"no attribute definition for key: {element.attribute_name}")
            if element.key_type == HASH_KEY_TYPE:
                if hash_key is not None:
                    raise TooManyKeysError("key schema declares more than one HASH key")
                hash_key = attr
            elif element.key_type == RANGE_KEY_TYPE:
                if range_key is not None:
                    raise TooManyKeysError("key schema declares more than one RANGE key")
                range_key = attr
            else:
                raise ValidationError(f"unsupported key type: {element.key_type}")

        if hash_key is None:
            raise MissingKeyDefinitionError("hash-key required")

        return cls(hash_key=hash_key, range_key=range_key)

    def has_range_key(self) -> bool:
        return self.range_key is not None

    def elements(self) -> list[KeySchemaElement]:
        out = [KeySchemaElement(self.hash_key.attribute_name, HASH_KEY_TYPE)]
        if self.range_key is not None:
            out.append(KeySchemaElement(self.range_key.attribute_name, RANGE_KEY_TYPE))
        return out

    def attributes(self) -> list[AttributeDefinition]:
        out = [self.hash_key]
        if self.range_key is not None:
            out.append(self.range_key)
        return out


@dataclass(frozen=True)
class ConsumedCapacity:
    units: float
    table_name: str

    @staticmethod
    def from_response(raw: Any) -> ConsumedCapacity | None:
        if not isinstance(raw, Mapping):
            return None
        return ConsumedCapacity(
            units=float(raw.get("CapacityUnits") or 0.0),
            table_name=str(raw.get("TableName") or ""),
        )


def consumed_units(capacity: ConsumedCapacity | None) -> float:
    return capacity.units if capacity is not None else 0.0


def epoch_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value), tz=UTC)
    raise ValidationError(f"invalid epoch time: {value!r}")


@dataclass(frozen=True)
class ProjectionDescription:
    projection_type: str
    non_key_attributes: tuple[str, ...] = ()

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> ProjectionDescription:
        return ProjectionDescription(
            projection_type=str(raw.get("ProjectionType", "")),
            non_key_attributes=tuple(str(a) for a in raw.get("NonKeyAttributes") or ()),
        )


@dataclass(frozen=True)
class LocalSecondaryIndexDescription:
    index_name: str
    key_schema: tuple[KeySchemaElement, ...]
    projection: ProjectionDescription
    index_size_bytes: int = 0
    item_count: int = 0

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> LocalSecondaryIndexDescription:
        return LocalSecondaryIndexDescription(
            index_name=str(raw.get("IndexName", "")),
            key_schema=tuple(KeySchemaElement.from_response(e) for e in raw.get("KeySchema") or ()),
            projection=ProjectionDescription.from_response(raw.get("Projection") or {}),
            index_size_bytes=int(raw.get("IndexSizeBytes") or 0),
            item_count=int(raw.get("ItemCount") or 0),
        )


@dataclass(frozen=True)
class ProvisionedThroughputDescription:
    read_capacity_units: int = 0
    write_capacity_units: int = 0
    number_of_decreases_today: int = 0
    last_increase_date_time: datetime | None = None
    last_decrease_date_time: datetime | None = None

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> ProvisionedThroughputDescription:
        return ProvisionedThroughputDescription(
            read_capacity_units=int(raw.get("ReadCapacityUnits") or 0),
            write_capacity_units=int(raw.get("WriteCapacityUnits") or 0),
            number_of_decreases_today=int(raw.get("NumberOfDecreasesToday") or 0),
            last_increase_date_time=epoch_time(raw.get("LastIncreaseDateTime")),
            last_decrease_date_time=epoch_time(raw.get("LastDecreaseDateTime")),
        )


@dataclass(frozen=True)
class StreamSpecification:
    stream_enabled: bool
    stream_view_type: str | None = None

    def to_request(self) -> dict[str, Any]:
        out: dict[str, Any] = {"StreamEnabled": self.stream_enabled}
        if self.stream_view_type:
            out["StreamViewType"] = self.stream_view_type
        return out

    @staticmethod
    def from_response(raw: Any) -> StreamSpecification | None:
        if not isinstance(raw, Mapping):
            return None
        view = raw.get("StreamViewType")
        return StreamSpecification(
            stream_enabled=bool(raw.get("StreamEnabled", False)),
            stream_view_type=str(view) if view else None,
        )


@dataclass(frozen=True)
class TableDescription:
    table_name: str
    table_status: str
    attribute_definitions: tuple[AttributeDefinition, ...]
    key_schema: tuple[KeySchemaElement, ...]
    creation_date_time: datetime | None = None
    item_count: int = 0
    table_size_bytes: int = 0
    provisioned_throughput: ProvisionedThroughputDescription = field(
        default_factory=ProvisionedThroughputDescription
    )
    local_secondary_indexes: tuple[LocalSecondaryIndexDescription, ...] = ()
    stream_specification: StreamSpecification | None = None
    latest_stream_arn: str | None = None

    @staticmethod
    def from_response(raw: Mapping[str, Any]) -> TableDescription:
        return TableDescription(
            table_name=str(raw.get("TableName", "")),
            table_status=str(raw.get("TableStatus", "")),
            attribute_definitions=tuple(
                AttributeDefinition.from_response(a) for a in raw.get("AttributeDefinitions") or ()
            ),
            key_schema=tuple(KeySchemaElement.from_response(e) for e in raw.get("KeySchema") or ()),
            creation_date_time=epoch_time(raw.get("CreationDateTime")),
            item_count=int(raw.get("ItemCount") or 0),
            table_size_bytes=int(raw.get("TableSizeBytes") or 0),
            provisioned_throughput=ProvisionedThroughputDescription.from_response(
                raw.get("ProvisionedThroughput") or {}
            ),
            local_secondary_indexes=tuple(
                LocalSecondaryIndexDescription.from_response(i) for i in raw.get("LocalSecondaryIndexes") or ()
            ),
            stream_specification=StreamSpecification.from_response(raw.get("StreamSpecification")),
            latest_stream_arn=raw.get("LatestStreamArn") or None,
        )

    def key(self) -> KeySchema:
        return KeySchema.from_description(self.attribute_definitions, self.key_schema)

    def get_attribute(self, name: str) -> AttributeDefinition | None:
        for attr in self.attribute_definitions:
            if attr.attribute_name == name:
                return attr
        return None
