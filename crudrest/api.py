# flask_restful API subclass
from flask import request
from flask.app import Flask
from flask_restful import Api as FRApiBase, Resource
from flask_sqlalchemy import SQLAlchemy
import crudrest
from .request import INDEX_SEGMENT, RestRequest
from .resource import ResourceEngine

# all methods are routed to the resource, the engine decides which methods are allowed
HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "HEAD", "PATCH"]


class RestResource(Resource):
    """
    Flask webservice wrapper for a ResourceEngine.
    Subclasses are created by RestApi.expose_resource
    """

    # engine: the ResourceEngine handling the requests
    engine: ResourceEngine = None
    # resource_name: the first uri segment, e.g. "users"
    resource_name = None
    # object_id: name of the url parameter holding the object id, e.g. "usersId"
    object_id = None

    def dispatch_request(self, *args, **kwargs):
        """
        Create the RestRequest and let the engine handle it.
        The routed segments are the resource name followed by the object id, or "index"
        if the collection was requested (e.g. ["users", "7"], ["users", "index"])
        """
        object_id = kwargs.get(self.object_id)
        segments = [self.resource_name, object_id if object_id is not None else INDEX_SEGMENT]
        rest_request = RestRequest.from_flask(
            request,
            segments=segments,
            default_format=self.engine.config.default_format,
            registry=self.engine.registry,
        )
        crudrest.log.debug(f"{rest_request} format: {rest_request.format}, object id: {object_id}")
        return self.engine.handle(rest_request)


class RestApi(FRApiBase):
    """
    Subclass of the flask_restful API class where we add the expose_resource method
    this method creates the API endpoints for a ResourceEngine
    """

    def __init__(self, app: Flask = None, prefix: str = "", app_db: SQLAlchemy = None, **kwargs) -> None:
        if app is not None:
            crudrest.CrudRest(app, app_db=app_db)
        super().__init__(app, prefix=prefix, **kwargs)

    def expose_resource(self, name: str, engine: ResourceEngine, url_prefix: str = "", **properties) -> type:
        """This methods creates the API url endpoints for a resource
        :param name: resource name, the collection url path, e.g. "users"
        :param engine: the ResourceEngine handling the requests
        :param url_prefix: url prefix
        :param properties: additional RestResource properties

        creates a class of the form

        class users_API(RestResource):
            engine = engine

        add the class as an api resource to /users and /users/{usersId}
        """
        properties["engine"] = engine
        properties["resource_name"] = name
        properties["object_id"] = f"{name}Id"
        api_class_name = f"{name}_API"  # name for dynamically generated classes
        api_class = type(api_class_name, (RestResource,), properties)

        url = f"{url_prefix}/{name}"
        endpoint = f"{url_prefix}api_{name}"
        crudrest.log.info(f"Exposing {name} on {url}, endpoint: {endpoint}")
        self.add_resource(api_class, url, endpoint=endpoint, methods=HTTP_METHODS)

        url = f"{url_prefix}/{name}/<string:{name}Id>"
        endpoint = f"{url_prefix}api_{name}Id"
        crudrest.log.info(f"Exposing {name} instances on {url}, endpoint: {endpoint}")
        self.add_resource(api_class, url, endpoint=endpoint, methods=HTTP_METHODS)
        return api_class
