"""
Content negotiation: the request and response formats supported by the resources.

The request format is derived from the ``Content-Type`` header, the response format from the
``format`` query argument. Formats are kept in a :py:class:`FormatRegistry`, a format can
be registered with an encoder (response), a decoder (request) or both.
"""
import csv
import io
import json
from collections import namedtuple
from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qsl
import crudrest
from .errors import ValidationError
from .json_encoder import RestJSONEncoder

FORMAT_ARG = "format"
CHARSET = "utf-8"

Format = namedtuple("Format", ["name", "ctype"])


class DecodeError(ValidationError):
    """
    The request body could not be decoded with the negotiated format
    """

    def __init__(self, message="Invalid request body"):
        super().__init__(message)


class FormatRegistry:
    """
    The formats known to the resources, with the content types that select them.
    """

    def __init__(self):
        self._formats = {}
        self._encoders = {}
        self._decoders = {}
        self._input_mimes = {}

    def register(
        self,
        format: Format,
        encoder: Callable[[Any], str] = None,
        decoder: Callable[[str], Any] = None,
        mimetypes=(),
    ) -> None:
        """
        add support for a named format
        :param format: the format (providing its name and default content type)
        :param encoder: function that serializes a structured value (None if the format can't be sent)
        :param decoder: function that parses a request body (None if the format can't be received)
        :param mimetypes: additional content types that select this format for request bodies
        """
        self._formats[format.name] = format
        if encoder is not None:
            self._encoders[format.name] = encoder
        if decoder is not None:
            self._decoders[format.name] = decoder
            for mime in (format.ctype,) + tuple(mimetypes):
                self._input_mimes[mime.lower()] = format.name

    def __contains__(self, name: str) -> bool:
        return name in self._formats

    def can_encode(self, name: str) -> bool:
        return name in self._encoders

    def input_format(self, headers: Mapping[str, str]) -> Optional[str]:
        """
        :param headers: request headers
        :return: the format of the request body or None if the content type is unknown
        """
        for key, value in headers.items():
            if key.lower() != "content-type" or not value:
                continue
            mime = value.split(";")[0].strip().lower()
            return self._input_mimes.get(mime)
        return None

    def output_format(self, args: Mapping[str, str], arg_name: str = FORMAT_ARG) -> Optional[str]:
        """
        :param args: request query arguments
        :return: the requested response format, None if it wasn't requested or isn't supported
        """
        name = args.get(arg_name)
        if name in self._encoders:
            return name
        # Unsupported format, let the caller decide the output format
        return None

    def content_type(self, name: str) -> Optional[str]:
        fmt = self._formats.get(name)
        if fmt is None:
            return None
        return f"{fmt.ctype}; charset={CHARSET}"

    def decode(self, body: bytes, name: str) -> Any:
        """
        :param body: raw request body
        :param name: format name
        :return: decoded structured value, None for an empty body
        """
        decoder = self._decoders.get(name)
        if decoder is None:
            raise DecodeError(f'Unsupported request format "{name}"')
        if not body:
            return None
        try:
            text = body.decode(CHARSET) if isinstance(body, bytes) else body
            return decoder(text)
        except (ValueError, UnicodeDecodeError) as exc:
            raise DecodeError(f"Invalid {name} request body: {exc}")

    def encode(self, data: Any, name: str) -> bytes:
        """
        :param data: structured value
        :param name: format name
        :return: encoded body
        """
        encoder = self._encoders.get(name)
        if encoder is None:
            raise ValueError(f'Unsupported response format "{name}"')
        return encoder(data).encode(CHARSET)


def decode_json(text: str) -> Any:
    return json.loads(text)


def encode_json(data: Any) -> str:
    return json.dumps(data, cls=RestJSONEncoder)


def decode_form(text: str) -> dict:
    return dict(parse_qsl(text, keep_blank_values=True, strict_parsing=True))


def _csv_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return value
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, cls=RestJSONEncoder)
    return RestJSONEncoder().default(value)


def encode_csv(data: Any) -> str:
    """
    Encode a record or a list of records: the header row contains the keys of the first record,
    every field is quoted
    """
    if data is None:
        return ""
    if isinstance(data, Mapping):
        rows = [data]
    elif isinstance(data, (list, tuple)):
        rows = list(data)
    else:
        return str(data)

    if not rows:
        return ""

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    if not isinstance(rows[0], Mapping):
        # a list of plain values
        writer.writerow([_csv_value(value) for value in rows])
        return output.getvalue()

    headings = list(rows[0].keys())
    writer.writerow(headings)
    for row in rows:
        if not isinstance(row, Mapping):
            crudrest.log.warning(f"Skipping CSV row {row}")
            continue
        writer.writerow([_csv_value(row.get(heading)) for heading in headings])
    return output.getvalue()


JSON = Format("json", "application/json")
CSV = Format("csv", "application/csv")
FORM = Format("form", "application/x-www-form-urlencoded")

formats = FormatRegistry()
formats.register(JSON, encoder=encode_json, decoder=decode_json)
formats.register(CSV, encoder=encode_csv)
formats.register(FORM, decoder=decode_form)
