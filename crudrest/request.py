"""
The request as seen by the resources.

RestRequest normalizes the http method, headers, query arguments, routed uri segments and
the request body. The body is decoded lazily (once) according to the format negotiated
from the Content-Type header. Values can be xss cleaned when they're retrieved.
"""
import re
from typing import Any, Callable, Iterable, Mapping, Union
from werkzeug.datastructures import Headers
import crudrest
from .formats import DecodeError, FormatRegistry, formats

# uri segment that addresses the collection instead of an object
INDEX_SEGMENT = "index"

_UNSET = object()


# elements removed together with their content
_DANGEROUS_ELEMENT = re.compile(
    r"<\s*(script|style|iframe|object|embed|applet)\b.*?(?:<\s*/\s*\1\s*>|$)", re.IGNORECASE | re.DOTALL
)
# any other (possibly unterminated) tag, "a < b" is left alone
_TAG = re.compile(r"</?[a-zA-Z!][^<>]*(?:>|$)")
_SCRIPT_SCHEME = re.compile(r"(?:java|vb)script\s*:", re.IGNORECASE)


def _clean_text(text: str) -> str:
    # repeat until stable so nested fragments like "<scr<script></script>ipt>" are removed too
    previous = None
    while text != previous:
        previous = text
        text = _DANGEROUS_ELEMENT.sub("", text)
        if text == previous:
            # only strip the remaining tags once no dangerous element is left
            text = _SCRIPT_SCHEME.sub("", _TAG.sub("", text))
    return text


def xss_clean(value: Any) -> Any:
    """
    Remove markup from (nested) string values: tags, script and style elements and
    javascript: urls. Other characters, like & and quotes, are kept as they are.
    :param value: string, record or list of records
    :return: cleaned copy of value
    """
    if isinstance(value, str):
        return _clean_text(value)
    if isinstance(value, Mapping):
        return {key: xss_clean(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [xss_clean(val) for val in value]
    return value


def _filter_record(record: Any, blocklist: Iterable[str]) -> Any:
    if not isinstance(record, Mapping):
        return record
    return {key: value for key, value in record.items() if key not in blocklist}


class RestRequest:
    """
    Request data:
    - method: lower case http method
    - format: the negotiated request body format
    - headers: case insensitive request headers
    - args: query string arguments
    - uri segments: the routed uri components, e.g. ["users", "7"] or ["users", "index"]
    - data: the decoded request body (the query arguments for GET requests)
    """

    def __init__(
        self,
        method: str = "get",
        headers: Union[Mapping[str, str], Iterable] = None,
        args: Mapping[str, str] = None,
        segments: Iterable[str] = (),
        path: str = "/",
        body: bytes = b"",
        default_format: str = None,
        registry: FormatRegistry = None,
        sanitizer: Callable[[Any], Any] = xss_clean,
    ) -> None:
        self.method = (method or "get").lower()
        self.headers = Headers(headers or {})
        self.path = path or "/"
        self._args = dict(args or {})
        self._segments = [str(segment) for segment in segments]
        self._body = body or b""
        self._data = _UNSET
        self._sanitizer = sanitizer
        self.registry = registry if registry is not None else formats

        if default_format is None:
            default_format = crudrest.get_config("DEFAULT_FORMAT")
        input_format = self.registry.input_format(self.headers)
        self.format = input_format if input_format else default_format

    @classmethod
    def from_flask(cls, flask_request, segments: Iterable[str] = None, **kwargs) -> "RestRequest":
        """
        Create a RestRequest from a flask (werkzeug) request
        :param flask_request: flask.request
        :param segments: routed segments, default are the components of the request path
        """
        if segments is None:
            segments = [segment for segment in flask_request.path.split("/") if segment]
        return cls(
            method=flask_request.method,
            headers=flask_request.headers,
            args=flask_request.args.to_dict(),
            segments=segments,
            path=flask_request.path,
            body=flask_request.get_data(),
            **kwargs,
        )

    def _clean(self, value: Any, sanitize: bool) -> Any:
        return self._sanitizer(value) if sanitize and self._sanitizer else value

    def args(self, key: str = None, default: Any = None, sanitize: bool = False) -> Any:
        """
        Retrieve all query arguments or a specific one
        :param key: query argument name, all arguments are returned if None
        :param default: returned if `key` isn't present
        :param sanitize: xss clean the value
        """
        if key is None:
            return self._clean(dict(self._args), sanitize)
        if key in self._args:
            return self._clean(self._args[key], sanitize)
        return default

    def uri(self, index: int = None, sanitize: bool = False) -> Any:
        """
        Retrieve all uri segments or a specific one
        :param index: segment index, -1 is the last segment
        :return: segment or None if `index` is out of range
        """
        if index is None:
            return list(self._segments)
        if index == -1:
            if not self._segments:
                return None
            return self._clean(self._segments[-1], sanitize)
        if 0 <= index < len(self._segments):
            return self._clean(self._segments[index], sanitize)
        return None

    def full_uri(self, segments: Union[str, Iterable[str]] = None) -> str:
        """
        :param segments: segments to append to the request path
        :return: request path, optionally extended with `segments`
        """
        if not segments:
            return self.path
        if not isinstance(segments, str):
            segments = "/".join(str(segment) for segment in segments)
        return "/".join([self.path.rstrip("/"), str(segments)])

    def _load_data(self) -> Any:
        if self._data is not _UNSET:
            return self._data
        if self.method == "get":
            # All Data, No XSS filtering!
            self._data = dict(self._args)
        else:
            try:
                self._data = self.registry.decode(self._body, self.format)
            except DecodeError as exc:
                crudrest.log.warning(f"Failed to decode {self.method} request body: {exc.message}")
                self._data = None
        return self._data

    def data(self, key: str = None, default: Any = None, sanitize: bool = True) -> Any:
        """
        Retrieve all request data or a specific field
        :param key: field name, the complete body is returned if None
        :param default: returned if the body isn't a record or `key` isn't present
        :param sanitize: xss clean the value
        """
        data = self._load_data()
        if key is None:
            return self._clean(data, sanitize)
        if isinstance(data, Mapping) and key in data:
            return self._clean(data[key], sanitize)
        return default

    def filter_fields(self, blocklist: Iterable[str]) -> None:
        """
        Removes the `blocklist` keys from the request record(s)
        """
        blocklist = frozenset(blocklist)
        data = self._load_data()
        if not blocklist or data is None:
            return
        if isinstance(data, Mapping):
            self._data = _filter_record(data, blocklist)
        elif isinstance(data, (list, tuple)):
            self._data = [_filter_record(record, blocklist) for record in data]

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.method.upper()} {self.path}>"
