# Response classes
from http import HTTPStatus
from typing import Any, Mapping
from flask import Response
import crudrest
from .formats import FormatRegistry, formats, JSON


class RestResponse(Response):
    """
    Response class
    """

    default_mimetype = JSON.ctype


class ResponseWriter:
    """
    Holds the response status, headers and format of a single request.

    The output format is the `format` query argument if it names a known format,
    otherwise `default_format`. http_exit() encodes the output and creates the
    response object, this can happen only once per request.
    """

    def __init__(self, args: Mapping[str, str] = None, default_format: str = None, registry: FormatRegistry = None) -> None:
        self.registry = registry if registry is not None else formats
        if default_format is None:
            default_format = crudrest.get_config("DEFAULT_FORMAT")
        output_format = self.registry.output_format(args or {})
        self.format = output_format if output_format else default_format
        self.status = HTTPStatus.OK.value
        self.body = None
        self._headers = []

    @property
    def headers(self) -> list:
        return list(self._headers)

    @property
    def sent(self) -> bool:
        return self.body is not None

    def set_header(self, name: str, value: str) -> None:
        """
        Adds a header to the response, headers are sent in the order they were added

        :example: writer.set_header("X-Api-Version", "1.0.1")
        """
        self._headers.append((name, str(value)))

    def http_exit(self, output: Any, status: int = None) -> RestResponse:
        """
        Encode `output` and create the response
        :param output: structured response data
        :param status: http status code
        :return: flask response
        """
        if self.sent:
            raise RuntimeError("Response already sent")
        if status:
            self.status = int(status)
        if not self.registry.can_encode(self.format):
            crudrest.log.error(f'Can\'t encode response format "{self.format}", using json')
            self.format = JSON.name

        if self.status == HTTPStatus.NO_CONTENT:
            self.body = b""
        else:
            self.body = self.registry.encode(output, self.format)

        response = RestResponse(self.body, status=self.status)
        response.headers["Content-Type"] = self.registry.content_type(self.format)
        for name, value in self._headers:
            response.headers.add(name, value)
        return response
