# Exception Handlers
#
# The application loglevel determines the level of detail shown to the user.
# If set to debug, too much sensitive info might be shown !
#
# The exceptions are caught by ResourceEngine.handle and formatted, for example:
# {
#     "error": {
#         "code": 404,
#         "title": "Not Found",
#         "detail": "Not Found"
#     }
# }
#
import traceback
from http import HTTPStatus
import crudrest
from .config import is_debug

HIDDEN_LOG = "(debug logging disabled)"


class RestError(Exception):
    """
    Base class of the errors that terminate a request, the status_code is sent to the client
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
    message = ""

    def __init__(self, message="", status_code=None):
        Exception.__init__(self, message)
        if status_code is not None:
            self.status_code = int(status_code)
        self.message = str(message) if message else HTTPStatus(self.status_code).phrase

    @property
    def title(self):
        return HTTPStatus(self.status_code).phrase

    def to_dict(self):
        """
        :return: the error record sent to the client
        """
        return {"code": self.status_code, "title": self.title, "detail": self.message}


class ValidationError(RestError):
    """
    This exception is raised when invalid input has been detected (client side input)
    Always send back the message to the client in the response
    """

    status_code = HTTPStatus.BAD_REQUEST.value

    def __init__(self, message="", status_code=HTTPStatus.BAD_REQUEST.value):
        super().__init__(message, status_code)
        crudrest.log.warning("ValidationError: %s", self.message)


class UnAuthenticatedError(RestError):
    """
    This exception is raised when none of the authentication hooks accepted the request
    """

    status_code = HTTPStatus.UNAUTHORIZED.value

    def __init__(self, message="Unauthorized", status_code=HTTPStatus.UNAUTHORIZED.value):
        super().__init__(message, status_code)
        crudrest.log.warning("UnAuthenticatedError: %s", self.message)


class UnAuthorizedError(RestError):
    """
    This exception is raised when an authorization hook rejected the request
    """

    status_code = HTTPStatus.UNAUTHORIZED.value

    def __init__(self, message="Unauthorized", status_code=HTTPStatus.UNAUTHORIZED.value):
        super().__init__(message, status_code)
        crudrest.log.error("UnAuthorizedError: %s", self.message)


class ForbiddenError(RestError):
    """
    Reserved for resources that want to distinguish "forbidden" from "unauthorized"
    """

    status_code = HTTPStatus.FORBIDDEN.value

    def __init__(self, message="Forbidden", status_code=HTTPStatus.FORBIDDEN.value):
        super().__init__(message, status_code)
        crudrest.log.error("ForbiddenError: %s", self.message)


class NotFoundError(RestError):
    """
    This exception is raised when an item was not found
    """

    status_code = HTTPStatus.NOT_FOUND.value

    def __init__(self, message="Not Found", status_code=HTTPStatus.NOT_FOUND.value):
        super().__init__(message, status_code)
        crudrest.log.info("Not found: %s", self.message)


class MethodNotAllowedError(RestError):
    """
    This exception is raised when the http method or the requested format isn't supported by the resource
    """

    status_code = HTTPStatus.METHOD_NOT_ALLOWED.value

    def __init__(self, allowed=(), message="", status_code=HTTPStatus.METHOD_NOT_ALLOWED.value):
        self.allowed = sorted(method.upper() for method in allowed)
        if not message:
            message = "Allowed methods: {}".format(", ".join(self.allowed))
        super().__init__(message, status_code)
        crudrest.log.warning("MethodNotAllowedError: %s", self.message)

    def to_dict(self):
        result = super().to_dict()
        result["allowed"] = self.allowed
        return result


class GenericError(RestError):
    """
    This exception is raised when an unexpected error has been detected,
    the details are only shown to the client in debug mode
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value

    def __init__(self, message="", status_code=HTTPStatus.INTERNAL_SERVER_ERROR.value):
        super().__init__(message, status_code)
        crudrest.log.error("Generic Error: %s", message)
        if is_debug():
            crudrest.log.debug(traceback.format_exc(120))
        else:
            self.message = f"{self.title} {HIDDEN_LOG}"


class NotImplementedApiError(RestError):
    """
    This exception is raised when a resource doesn't implement the requested method
    """

    status_code = HTTPStatus.NOT_IMPLEMENTED.value

    def __init__(self, message="Not Implemented", status_code=HTTPStatus.NOT_IMPLEMENTED.value):
        super().__init__(message, status_code)
        crudrest.log.error("NotImplementedApiError: %s", self.message)
