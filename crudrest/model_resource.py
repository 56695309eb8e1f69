"""
Handlers for resources backed by a CrudBackend:

- GET /users/7 : retrieve a record, GET /users : retrieve a page of records (with pagination meta)
- POST /users : create one record, or several records if the body is a list
- PUT|PATCH /users/7 : update a record, PUT|PATCH /users : update the selected records
- DELETE /users/7 : delete a record, DELETE /users : delete the selected records

The selection is the where clause returned by the `selection` hook of the resource config,
bulk updates and deletes are refused when it's empty.
"""
from typing import Any
from .backend import CrudBackend
from .config import ResourceConfig
from .errors import GenericError, NotFoundError, ValidationError
from .model import RestModel
from .resource import Exchange, ResourceEngine


class ModelHandlers:
    """
    The http method handlers of a model backed resource
    :param backend: CrudBackend for the exposed model
    """

    def __init__(self, backend: CrudBackend) -> None:
        self.backend = backend

    def handlers(self) -> dict:
        return {
            "get": self.get,
            "head": self.get,
            "post": self.post,
            "put": self.put,
            "patch": self.put,
            "delete": self.delete,
        }

    def setup(self, exchange: Exchange) -> None:
        try:
            exchange.model = RestModel(self.backend)
        except Exception as exc:
            raise GenericError(f"Failed to instantiate object! ({exc})")

    @staticmethod
    def selection(exchange: Exchange) -> dict:
        selection = exchange.config.selection
        if selection is None:
            return {}
        return dict(selection(exchange) or {})

    def get(self, exchange: Exchange) -> Any:
        model = exchange.model
        where = self.selection(exchange)
        if exchange.object_id is not None:
            if not model.get(exchange.object_id, where):
                raise NotFoundError()
        else:
            model.get_all(exchange.limit, exchange.offset, where)
            exchange.meta.update(
                total=model.count(where),
                count=model.result_count(),
                limit=exchange.limit,
                offset=exchange.offset,
            )
        return exchange.output(model.to_record())

    def post(self, exchange: Exchange) -> Any:
        model = exchange.model
        data = exchange.input()
        if not model.load(data):
            raise ValidationError(model.error())
        if not model.save():
            if not model.valid:
                raise ValidationError(model.error())
            raise GenericError(model.error())
        return exchange.output(model.to_record())

    def put(self, exchange: Exchange) -> Any:
        model = exchange.model
        where = self.selection(exchange)
        data = exchange.input()

        if exchange.object_id is None:
            if not model.update_all(data, where):
                if not model.valid:
                    raise ValidationError(model.error())
                if not where:
                    raise NotFoundError(model.error())
                raise GenericError(model.error())
            return exchange.output(model.to_record())

        if not model.exists(exchange.object_id, where):
            raise NotFoundError()
        if not model.load(data, exchange.object_id):
            raise ValidationError(model.error())
        if not model.update():
            if not model.valid:
                raise ValidationError(model.error())
            raise GenericError(model.error())
        return exchange.output(model.to_record())

    def delete(self, exchange: Exchange) -> None:
        model = exchange.model
        where = self.selection(exchange)

        if exchange.object_id is None:
            if not model.delete_all(where):
                if not where:
                    raise NotFoundError(model.error())
                raise GenericError(model.error())
            return None

        if not model.get(exchange.object_id, where):
            raise NotFoundError()
        if not model.delete():
            raise GenericError(model.error())
        # DELETE returns No Content - 204
        return None


def model_resource(backend: CrudBackend, config: ResourceConfig = None, **overrides) -> ResourceEngine:
    """
    Create the engine of a model backed resource
    :param backend: CrudBackend for the exposed model
    :param config: resource configuration, by default clients can't supply or change record ids
    :param overrides: ResourceConfig fields to override
    """
    if config is None:
        config = ResourceConfig(protected_input_fields={"post": ("id",), "put": ("id",)})
    config = config.with_overrides(id_field=backend.id_field, **overrides)
    handlers = ModelHandlers(backend)
    return ResourceEngine(config, handlers=handlers.handlers(), setup=handlers.setup)
