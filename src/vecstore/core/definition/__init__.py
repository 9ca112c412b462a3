from .fields import (
    DistanceFunction,
    FieldRole,
    IndexKind,
    VectorStoreRecordData,
    VectorStoreRecordDataField,
    VectorStoreRecordField,
    VectorStoreRecordKey,
    VectorStoreRecordKeyField,
    VectorStoreRecordVector,
    VectorStoreRecordVectorField,
)
from .record_definition import VectorStoreRecordDefinition

__all__ = [
    "DistanceFunction",
    "FieldRole",
    "IndexKind",
    "VectorStoreRecordData",
    "VectorStoreRecordDataField",
    "VectorStoreRecordField",
    "VectorStoreRecordKey",
    "VectorStoreRecordKeyField",
    "VectorStoreRecordVector",
    "VectorStoreRecordVectorField",
    "VectorStoreRecordDefinition",
]
