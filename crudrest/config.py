# Configuration settings
#
# Process wide settings are stored in the flask app.config, the CrudRest class or the environment,
# get_config() looks them up in that order.
# Per resource settings are kept in an immutable ResourceConfig instance.
#
from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence, Union
from flask import current_app
import crudrest


Hook = Callable[..., Any]


def get_config(option: str) -> Optional[Union[bool, int, str]]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # RuntimeError: working outside of the application context
        result = getattr(crudrest.CrudRest, option, None)
        if result is None:
            result = os.environ.get(option, None)
    return result


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    :rtype: Boolean
    """
    return crudrest.log.getEffectiveLevel() < logging.INFO


def _methods(methods: Sequence[str]) -> frozenset:
    return frozenset(method.lower() for method in methods)


@dataclass(frozen=True)
class ResourceConfig:
    """Configuration of a single exposed resource.

    The instance is shared by all requests for the resource, so all fields are immutable:
    method and format collections are converted to frozensets and the protected field map
    becomes a read-only mapping.

    :param allowed_methods: http methods accepted by the resource
    :param allowed_array_methods: methods accepted when the request doesn't contain an object id
    :param allowed_formats: request and response formats accepted by the resource
    :param default_format: format used when the client doesn't specify one
    :param excluded_fields: fields removed from every outgoing record
    :param protected_input_fields: method => fields removed from the incoming payload
    :param authentication: authentication hooks, one successful hook is sufficient
    :param authorization: authorization hooks, all hooks have to succeed
    :param validation: validation hook
    """

    allowed_methods: Sequence[str] = ("get", "post", "put", "delete")
    allowed_array_methods: Sequence[str] = ("get", "post")
    allowed_formats: Sequence[str] = ("json", "form", "csv")
    default_format: str = "json"
    excluded_fields: Sequence[str] = ()
    protected_input_fields: Mapping[str, Sequence[str]] = field(default_factory=dict)
    authentication: Sequence[Hook] = ()
    authorization: Sequence[Hook] = ()
    validation: Optional[Hook] = None
    # pagination
    limit: int = 50
    limit_arg_name: str = "limit"
    offset: int = 0
    offset_arg_name: str = "offset"
    # output
    id_field: str = "id"
    resource_uri_field: Optional[str] = "uri"
    resource_uri: Optional[Hook] = None
    add_meta: bool = True
    meta_name: str = "meta"
    meta_timestamp: bool = False
    process_output_object: Optional[Hook] = None
    input_field_processors: Mapping[str, Hook] = field(default_factory=dict)
    output_field_processors: Mapping[str, Hook] = field(default_factory=dict)
    # object id and selection (where clause)
    object_id: Optional[Hook] = None
    object_id_uri_index: int = -1
    selection: Optional[Hook] = None
    default_status: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        # frozen dataclass: normalized values have to be set with object.__setattr__
        object.__setattr__(self, "allowed_methods", _methods(self.allowed_methods))
        object.__setattr__(self, "allowed_array_methods", _methods(self.allowed_array_methods))
        object.__setattr__(self, "allowed_formats", frozenset(self.allowed_formats))
        object.__setattr__(self, "excluded_fields", frozenset(self.excluded_fields))
        object.__setattr__(self, "authentication", tuple(self.authentication))
        object.__setattr__(self, "authorization", tuple(self.authorization))
        protected = {method.lower(): frozenset(fields) for method, fields in self.protected_input_fields.items()}
        object.__setattr__(self, "protected_input_fields", MappingProxyType(protected))
        object.__setattr__(self, "input_field_processors", MappingProxyType(dict(self.input_field_processors)))
        object.__setattr__(self, "output_field_processors", MappingProxyType(dict(self.output_field_processors)))
        statuses = {method.lower(): int(status) for method, status in self.default_status.items()}
        object.__setattr__(self, "default_status", MappingProxyType(statuses))

    def protected_fields(self, method: str) -> frozenset:
        """
        :param method: lower case http method
        :return: the input fields that may not be supplied by the client for `method`
        """
        if method in self.protected_input_fields:
            return self.protected_input_fields[method]
        if method == "patch":
            # PATCH is an alias for PUT
            return self.protected_input_fields.get("put", frozenset())
        return frozenset()

    def with_overrides(self, **overrides: Any) -> "ResourceConfig":
        """Return a new config where the fields are replaced by ``overrides``."""
        valid = {k: v for k, v in overrides.items() if k in self.__dataclass_fields__}
        if not valid:
            return self
        return replace(self, **valid)
