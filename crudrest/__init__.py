# flake8: noqa: F401
#
# The order of the imports matters: the modules below refer to crudrest.log, crudrest.DB
# and crudrest.get_config at runtime
#
from .crudrest_init import DB, log, CrudRest
from .config import ResourceConfig, get_config, is_debug
from .errors import (
    RestError,
    ValidationError,
    UnAuthenticatedError,
    UnAuthorizedError,
    ForbiddenError,
    NotFoundError,
    MethodNotAllowedError,
    GenericError,
    NotImplementedApiError,
)
from .formats import Format, FormatRegistry, DecodeError, formats
from .request import RestRequest, INDEX_SEGMENT, xss_clean
from .response import RestResponse, ResponseWriter
from .resource import ResourceEngine, Exchange
from .backend import CrudBackend
from .model import RestModel
from .db import SQLAlchemyBackend
from .model_resource import ModelHandlers, model_resource
from .api import RestApi, RestResource
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    #
    "CrudRest",
    "RestApi",
    "RestResource",
    # configuration:
    "ResourceConfig",
    "get_config",
    # request lifecycle:
    "ResourceEngine",
    "Exchange",
    "RestRequest",
    "RestResponse",
    "ResponseWriter",
    "xss_clean",
    # formats:
    "Format",
    "FormatRegistry",
    "formats",
    # persistence:
    "CrudBackend",
    "RestModel",
    "SQLAlchemyBackend",
    "ModelHandlers",
    "model_resource",
    # Errors:
    "RestError",
    "ValidationError",
    "UnAuthenticatedError",
    "UnAuthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "MethodNotAllowedError",
    "GenericError",
    "NotImplementedApiError",
    "DecodeError",
)
