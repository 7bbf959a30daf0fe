import dataclasses
import decimal
import enum
import typing

import marshmallow

from common import exceptions


def get_exception_message(exception: Exception) -> str:
    if isinstance(exception, type):
        return exception.__name__

    if hasattr(exception, "message") and exception.message:
        return exception.message

    return str(exception.args[0]) if len(exception.args) else exception.__class__.__name__


def validate_data_schema(
    data: typing.Union[typing.Dict, typing.List[typing.Dict]],
    schema: marshmallow.schema.Schema,
) -> typing.Dict:
    try:
        validated_data = schema.load(data=data, unknown=marshmallow.EXCLUDE)
    except marshmallow.exceptions.ValidationError as e:
        raise exceptions.ValidationSchemaException(str(e.messages))

    return validated_data


def normalize_identifier(value: typing.Any) -> str:
    if value is None:
        return ""

    return str(value).strip().lower()


def dataclass_to_dict(obj: typing.Any) -> typing.Any:
    if dataclasses.is_dataclass(obj):
        return {
            key: dataclass_to_dict(value)
            for key, value in dataclasses.asdict(obj).items()
        }
    elif isinstance(obj, (list, tuple)):
        return [dataclass_to_dict(item) for item in obj]
    elif isinstance(obj, dict):
        return {key: dataclass_to_dict(value) for key, value in obj.items()}
    elif isinstance(obj, decimal.Decimal):
        # Convert decimal to string to make it JSON serializable
        return str(obj)
    elif isinstance(obj, enum.Enum):
        return obj.name
    elif hasattr(obj, "isoformat"):
        return obj.isoformat()

    return obj


def clean_string(value: typing.Any) -> typing.Optional[str]:
    if value is None:
        return None

    value = str(value).strip()
    return value or None
