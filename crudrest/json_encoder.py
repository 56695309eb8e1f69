# json encoding of the values found in backend records

import datetime
import decimal
import json
from uuid import UUID
import crudrest
from .config import is_debug


def _encode_bytes(value: bytes) -> str:
    crudrest.log.debug("RestJSONEncoder: serializing bytes as hex")
    return value.hex()


# checked in order: datetime.datetime is a subclass of datetime.date
CONVERTERS = (
    (datetime.timedelta, str),
    (datetime.datetime, lambda value: value.isoformat(" ")),
    ((datetime.date, datetime.time), lambda value: value.isoformat()),
    ((set, frozenset), list),
    (UUID, str),
    (decimal.Decimal, float),
    (bytes, _encode_bytes),
)


class RestJSONEncoder(json.JSONEncoder):
    """
    Encodes dates and times, sets, uuids, decimals and bytes.
    Other objects are replaced by an error record, unless debug logging is enabled:
    then their public attributes are encoded.
    """

    # pylint: disable=arguments-renamed,method-hidden
    def default(self, obj):
        for types, convert in CONVERTERS:
            if isinstance(obj, types):
                return convert(obj)

        if not is_debug():
            crudrest.log.warning(f'JSON Encoding Error: Unknown object type "{type(obj)}" for {obj}')
            return {"error": "RestJSONEncoder invalid object"}
        return self.public_attributes(obj)

    @staticmethod
    def public_attributes(obj):
        """
        :return: the attributes without _ prefix, non-numeric values as strings
        """
        try:
            attrs = vars(obj)
        except TypeError:
            return str(obj)
        return {
            key: value if value is None or isinstance(value, (int, float)) else str(value)
            for key, value in attrs.items()
            if not key.startswith("_")
        }
