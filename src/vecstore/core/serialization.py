"""
Value codecs shared by the record mappers.

``encode_value``/``decode_value`` move between typed Python values and JSON compatible
values; ``to_text``/``from_text`` are the flat string forms used for Redis hash fields.
Vectors have a dedicated binary form (little-endian float32) for search indexes.
"""

import base64
from datetime import datetime
from decimal import Decimal
import json
import struct
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from vecstore.core.definition import VectorStoreRecordField
from vecstore.core.definition.fields import type_parts
from vecstore.core.exceptions import MappingError

RecordT = TypeVar("RecordT", bound=BaseModel)


def encode_value(value: Any, field_type: Any) -> Any:
    if value is None:
        return None
    outer, element = type_parts(field_type)
    if outer is list:
        return [encode_value(v, element) for v in value]
    if isinstance(value, bool) or isinstance(value, (int, float, str)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"Value of type {type(value).__name__} is not serializable")


def decode_value(raw: Any, field_type: Any) -> Any:
    if raw is None:
        return None
    outer, element = type_parts(field_type)
    if outer is list:
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        return [decode_value(v, element) for v in raw]
    if outer is bool:
        if isinstance(raw, (bytes, str)):
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            return text.strip().lower() in ("true", "1")
        return bool(raw)
    if outer is int:
        return int(raw)
    if outer is float:
        return float(raw)
    if outer is Decimal:
        return raw if isinstance(raw, Decimal) else Decimal(_as_str(raw))
    if outer is datetime:
        return raw if isinstance(raw, datetime) else datetime.fromisoformat(_as_str(raw))
    if outer is UUID:
        return raw if isinstance(raw, UUID) else UUID(_as_str(raw))
    if outer is bytes:
        if isinstance(raw, str):
            return base64.b64decode(raw)
        return bytes(raw)
    if outer is str:
        return _as_str(raw)
    return raw


def _as_str(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8")
    return str(raw)


def to_text(value: Any, field_type: Any) -> str:
    """Flat string form: strings as-is, everything else as JSON text."""
    if type_parts(field_type)[0] is str:
        return str(value)
    return json.dumps(encode_value(value, field_type))


def from_text(text: Any, field_type: Any) -> Any:
    if text is None:
        return None
    text = _as_str(text)
    if type_parts(field_type)[0] is str:
        return text
    return decode_value(json.loads(text), field_type)


def pack_vector(vector: Sequence[float]) -> bytes:
    """Pack a vector as little-endian float32, the layout search indexes expect."""
    return struct.pack(f"<{len(vector)}f", *[float(v) for v in vector])


def unpack_vector(blob: bytes) -> List[float]:
    if len(blob) % 4 != 0:
        raise ValueError(f"Vector buffer length {len(blob)} is not a multiple of 4")
    return list(struct.unpack(f"<{len(blob) // 4}f", blob))


def vector_to_json(vector: Any) -> str:
    if isinstance(vector, str):
        return vector
    return json.dumps([float(v) for v in vector], separators=(",", ":"))


def read_field(record: Any, field: VectorStoreRecordField) -> Any:
    try:
        return getattr(record, field.name)
    except AttributeError as e:
        raise MappingError(field.name, e) from e


def build_record(record_type: Type[RecordT], values: Mapping[str, Any]) -> RecordT:
    """
    Construct a fresh record from attribute values.

    Raises:
        MappingError: Naming the first field the record type rejected.
    """
    try:
        return record_type.model_validate(dict(values))
    except ValidationError as e:
        errors = e.errors()
        field_name: Optional[str] = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else None
        raise MappingError(field_name, e) from e


def decode_fields(
    fields: Sequence[VectorStoreRecordField], raw_by_storage_name: Mapping[str, Any], decoder=decode_value
) -> Dict[str, Any]:
    """Decode the fields present in a storage mapping into attribute values keyed by field name."""
    values: Dict[str, Any] = {}
    for field in fields:
        if field.effective_storage_name not in raw_by_storage_name:
            continue
        raw = raw_by_storage_name[field.effective_storage_name]
        try:
            values[field.name] = decoder(raw, field.field_type)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise MappingError(field.name, e) from e
    return values
