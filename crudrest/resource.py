#  The resource request lifecycle:
#
#  1. method admission: http method and request/response formats
#  2. authentication: one of the authentication hooks has to succeed
#  3. authorization: all authorization hooks have to succeed
#  4. validation: protected input fields are removed, then the validation hook is called
#  5. dispatch: the handler registered for the http method is called
#  6. response assembly: {"result": ..., "meta": ...} or the raw output for csv
#
#  A failing step raises a RestError, which is converted to a response by the same
#  ResponseWriter.http_exit call as a successful result.
#
# pylint: disable=broad-except
import time
from http import HTTPStatus
from typing import Any, Callable, Mapping, Optional
import crudrest
from .config import ResourceConfig, get_config
from .errors import (
    RestError,
    GenericError,
    MethodNotAllowedError,
    NotImplementedApiError,
    UnAuthenticatedError,
    UnAuthorizedError,
    ValidationError,
)
from .formats import CSV, FormatRegistry, formats
from .request import INDEX_SEGMENT, RestRequest
from .response import ResponseWriter, RestResponse

Handler = Callable[["Exchange"], Any]

DEFAULT_STATUS = {
    "get": HTTPStatus.OK.value,
    "post": HTTPStatus.CREATED.value,
    "put": HTTPStatus.OK.value,
    "delete": HTTPStatus.NO_CONTENT.value,
}

# handler used when no handler is registered for the method
ALIASES = {"head": "get", "patch": "put"}


class Exchange:
    """
    The state of a single request, passed to the hooks and handlers

    :ivar request: RestRequest
    :ivar response: ResponseWriter
    :ivar object_id: id of the requested object, None when the collection is requested
    :ivar limit: page limit
    :ivar offset: page offset
    :ivar meta: handler supplied meta data
    :ivar model: RestModel, set up by model backed resources
    """

    def __init__(self, engine: "ResourceEngine", request: RestRequest, response: ResponseWriter) -> None:
        self.engine = engine
        self.config = engine.config
        self.request = request
        self.response = response
        self.object_id = None
        self.limit = self.config.limit
        self.offset = self.config.offset
        self.meta = {}
        self.model = None

    @property
    def method(self) -> str:
        return self.request.method

    def input(self) -> Any:
        return self.engine.process_input_data(self)

    def output(self, data: Any) -> Any:
        return self.engine.process_output_data(self, data)


def _allowed(method: str, allowed) -> bool:
    return method in allowed or (method == "head" and "get" in allowed)


def _page_arg(value: Any, default: int, maximum: int) -> int:
    if value is None:
        return default
    try:
        result = int(value)
    except (TypeError, ValueError):
        crudrest.log.debug(f'Invalid page argument "{value}"')
        return default
    if result < 0:
        return default
    if maximum is not None:
        result = min(result, int(maximum))
    return result


class ResourceEngine:
    """
    Runs the request lifecycle for one exposed resource

    :param config: ResourceConfig
    :param handlers: http method => handler(exchange), the return value of the handler is the request result
    :param setup: called with the exchange before the lifecycle starts
    :param registry: the formats available to the resource
    """

    def __init__(
        self,
        config: ResourceConfig = None,
        handlers: Mapping[str, Handler] = None,
        setup: Optional[Handler] = None,
        registry: FormatRegistry = None,
    ) -> None:
        self.config = config if config is not None else ResourceConfig()
        self.handlers = {method.lower(): handler for method, handler in (handlers or {}).items()}
        self.setup = setup
        self.registry = registry if registry is not None else formats

    def handle(self, request: RestRequest) -> RestResponse:
        """
        Handle a request
        :param request: RestRequest
        :return: the response, errors are returned as a response as well
        """
        response = ResponseWriter(request.args(), self.config.default_format, self.registry)
        exchange = Exchange(self, request, response)
        try:
            exchange.object_id = self.get_object_id(exchange)
            exchange.limit = self.get_limit(exchange)
            exchange.offset = self.get_offset(exchange)
            if self.setup is not None:
                self.setup(exchange)
            self.check_allowed(exchange)
            self.authenticate(exchange)
            self.authorize(exchange)
            self.validate(exchange)
            output = self.dispatch(exchange)
            return self.send_response(exchange, output)
        except RestError as exc:
            return self.send_error(exchange, exc)
        except Exception as exc:
            crudrest.log.exception(exc)
            return self.send_error(exchange, GenericError(str(exc)))

    def get_object_id(self, exchange: Exchange) -> Optional[str]:
        """
        Default, is the last uri segment (e.g. ["users", "1"] then 1 is the id)
        The "index" segment addresses the collection
        """
        if self.config.object_id is not None:
            return self.config.object_id(exchange)
        # keep it xss clean, as there will be db operations here
        object_id = exchange.request.uri(self.config.object_id_uri_index, sanitize=True)
        if object_id in (INDEX_SEGMENT, ""):
            return None
        return object_id

    def get_limit(self, exchange: Exchange) -> int:
        limit = exchange.request.args(self.config.limit_arg_name)
        return _page_arg(limit, self.config.limit, get_config("MAX_PAGE_LIMIT"))

    def get_offset(self, exchange: Exchange) -> int:
        offset = exchange.request.args(self.config.offset_arg_name)
        return _page_arg(offset, self.config.offset, get_config("MAX_PAGE_OFFSET"))

    def check_allowed(self, exchange: Exchange) -> None:
        config = self.config
        method = exchange.method
        if not _allowed(method, config.allowed_methods):
            raise MethodNotAllowedError(config.allowed_methods)

        if exchange.object_id is not None or _allowed(method, config.allowed_array_methods):
            if exchange.request.format in config.allowed_formats and exchange.response.format in config.allowed_formats:
                return

        raise MethodNotAllowedError(config.allowed_array_methods)

    def authenticate(self, exchange: Exchange) -> None:
        hooks = self.config.authentication
        # By default, all requests are authenticated unless we have authentication hooks
        if not hooks:
            return
        for hook in hooks:
            if hook(exchange):
                # One successful authentication is sufficient
                return
        raise UnAuthenticatedError()

    def authorize(self, exchange: Exchange) -> None:
        for hook in self.config.authorization:
            if not hook(exchange):
                raise UnAuthorizedError()

    def validate(self, exchange: Exchange) -> None:
        exchange.request.filter_fields(self.config.protected_fields(exchange.method))
        validation = self.config.validation
        if validation is not None and not validation(exchange):
            raise ValidationError("Bad Request")

    def dispatch(self, exchange: Exchange) -> Any:
        method = exchange.method or "get"
        handler = self.handlers.get(method)
        if handler is None and method in ALIASES:
            handler = self.handlers.get(ALIASES[method])
        if handler is None:
            raise NotImplementedApiError(f"{method.upper()} is not implemented")
        return handler(exchange)

    def get_status(self, exchange: Exchange) -> int:
        method = exchange.method
        if method in self.config.default_status:
            return self.config.default_status[method]
        return DEFAULT_STATUS.get(method, HTTPStatus.OK.value)

    def get_meta(self, exchange: Exchange) -> dict:
        meta = {}
        if self.config.meta_timestamp:
            meta["timestamp"] = int(time.time())
        meta.update(exchange.meta)
        return meta

    def send_response(self, exchange: Exchange, output: Any) -> RestResponse:
        status = self.get_status(exchange)
        if exchange.response.format == CSV.name:
            # no envelope for csv
            return exchange.response.http_exit(output, status)

        result = {"result": output}
        if self.config.add_meta:
            meta = self.get_meta(exchange)
            if meta:
                result[self.config.meta_name] = meta
        return exchange.response.http_exit(result, status)

    def send_error(self, exchange: Exchange, error: RestError) -> RestResponse:
        if isinstance(error, MethodNotAllowedError):
            exchange.response.set_header("Allow", ", ".join(error.allowed))
        payload = error.to_dict()
        if exchange.response.format != CSV.name:
            payload = {"error": payload}
        return exchange.response.http_exit(payload, error.status_code)

    def process_input_data(self, exchange: Exchange) -> Any:
        """
        :return: the xss clean request data, processed by the input field processors
        """
        data = exchange.request.data()
        processors = self.config.input_field_processors
        if not processors:
            return data

        def process(record):
            if not isinstance(record, Mapping):
                return record
            record = dict(record)
            for field, processor in processors.items():
                if field in record:
                    record[field] = processor(record[field])
            return record

        if isinstance(data, (list, tuple)):
            return [process(record) for record in data]
        return process(data)

    def process_output_data(self, exchange: Exchange, data: Any) -> Any:
        """
        :param data: a record or a list of records
        :return: processed and filtered output
        """
        if isinstance(data, Mapping):
            record = dict(data)
            for field, processor in self.config.output_field_processors.items():
                if field in record:
                    record[field] = processor(record[field])
            record = self.filter_output_fields(exchange, record)
            if self.config.process_output_object is not None:
                record = self.config.process_output_object(exchange, record)
            return record
        if isinstance(data, (list, tuple)):
            return [self.process_output_data(exchange, item) for item in data]
        return data

    def filter_output_fields(self, exchange: Exchange, output: Any) -> Any:
        """
        Add the resource uri to the record(s) and remove the excluded fields.
        The uri is added first, so the fields used to construct it may be excluded.
        """
        if isinstance(output, (list, tuple)):
            return [self.filter_output_fields(exchange, record) for record in output]
        if not isinstance(output, Mapping):
            return output

        record = dict(output)
        uri_field = self.config.resource_uri_field
        if uri_field and uri_field not in record:
            uri = self.get_resource_uri(exchange, record)
            if uri is not None:
                record[uri_field] = uri

        for field in self.config.excluded_fields:
            record.pop(field, None)
        return record

    def get_resource_uri(self, exchange: Exchange, record: Mapping) -> Optional[str]:
        if self.config.resource_uri is not None:
            return self.config.resource_uri(exchange, record)

        request = exchange.request
        if exchange.object_id is not None:
            return request.full_uri()

        record_id = record.get(self.config.id_field)
        if record_id is None:
            return None
        path = request.path.rstrip("/")
        if path.endswith("/" + INDEX_SEGMENT):
            path = path[: -len(INDEX_SEGMENT) - 1]
        return f"{path}/{record_id}"
