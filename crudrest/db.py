# -*- coding: utf-8 -*-
#
# SQLAlchemy persistence for the model backed resources
#
# The backend uses the session of the flask_sqlalchemy extension (crudrest.DB by default),
# every write is committed immediately, failures roll back the session.
#
from typing import Any, Iterable, List, Mapping, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import inspect as sqla_inspect
from flask_sqlalchemy import SQLAlchemy
import crudrest
from .attr_parse import parse_attr
from .backend import CrudBackend, Where
from .errors import GenericError, ValidationError


class SQLAlchemyBackend(CrudBackend):
    """
    CrudBackend for a flask_sqlalchemy model class

    Records are validated against the model columns:
    - non-nullable columns without a default are required
    - string values may not exceed the column length
    - values of unique columns may not be used by another record
    If the model implements a `validation_errors()` method, the messages it returns are added.

    :param model: flask_sqlalchemy model class (with a single primary key)
    :param db: flask_sqlalchemy extension, crudrest.DB if None
    """

    def __init__(self, model, db: SQLAlchemy = None) -> None:
        self.model = model
        self._db = db
        mapper = sqla_inspect(model)
        if len(mapper.primary_key) != 1:
            raise ValueError(f"{model.__name__}: only models with a single primary key are supported")
        self.id_column = mapper.primary_key[0]
        self.id_field = mapper.get_property_by_column(self.id_column).key
        self.columns = {attr.key: attr.columns[0] for attr in mapper.column_attrs}

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.model.__name__}>"

    @property
    def db(self) -> SQLAlchemy:
        return self._db if self._db is not None else crudrest.DB

    @property
    def session(self):
        return self.db.session

    def query(self, where: Where = None):
        """
        :param where: field => value equality constraints
        :return: sqla query object
        """
        query = self.session.query(self.model)
        if not where:
            return query
        for name in where:
            if name not in self.columns:
                raise ValidationError(f'Invalid selection field "{name}"')
        return query.filter_by(**where)

    def _parse_id(self, id: Any) -> Optional[Any]:
        try:
            return parse_attr(self.id_column, id)
        except (TypeError, ValueError):
            crudrest.log.debug(f'Invalid "{self.model.__name__}" id "{id}"')
            return None

    def new(self):
        # pylint: disable=not-callable
        return self.model()

    def get(self, id: Any, where: Where = None):
        pk = self._parse_id(id)
        if pk is None:
            return None
        return self.query(where).filter(self.id_column == pk).first()

    def get_all(self, limit: int, offset: int, where: Where = None) -> List[Any]:
        return self.query(where).order_by(self.id_column).offset(offset).limit(limit).all()

    def find(self, where: Where) -> List[Any]:
        return self.query(where).order_by(self.id_column).all()

    def count(self, where: Where = None) -> int:
        return self.query(where).count()

    def merge(self, record, data: Mapping[str, Any]) -> None:
        for name, value in data.items():
            column = self.columns.get(name)
            if column is None:
                crudrest.log.debug(f'Ignoring unknown "{self.model.__name__}" field "{name}"')
                continue
            try:
                value = parse_attr(column, value)
            except (TypeError, ValueError) as exc:
                raise ValidationError(f'Invalid value for the {name} field: "{value}" ({exc})')
            setattr(record, name, value)

    def _is_taken(self, record, name: str, value: Any) -> bool:
        query = self.session.query(self.model).filter(getattr(self.model, name) == value)
        pk = getattr(record, self.id_field)
        if pk is not None:
            query = query.filter(self.id_column != pk)
        return query.first() is not None

    def validate(self, record) -> List[str]:
        errors = []
        # the record may be dirty, don't flush it while querying
        with self.session.no_autoflush:
            for name, column in self.columns.items():
                if column.primary_key:
                    continue
                value = getattr(record, name)
                if value is None or value == "":
                    if not column.nullable and column.default is None and column.server_default is None:
                        errors.append(f"The {name} field is required.")
                    continue
                length = getattr(column.type, "length", None)
                if length and isinstance(value, str) and len(value) > length:
                    errors.append(f"The {name} field cannot exceed {length} characters in length.")
                if column.unique and self._is_taken(record, name, value):
                    errors.append(f"The {name} value is already taken.")

            validation_errors = getattr(record, "validation_errors", None)
            if callable(validation_errors):
                errors.extend(validation_errors() or [])
        return errors

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            # Exception may arise when a db constraint has been violated
            # (e.g. duplicate key)
            self.session.rollback()
            crudrest.log.warning(str(exc))
            raise GenericError(str(exc))

    def save_all(self, records: Iterable[Any]) -> None:
        for record in records:
            self.session.add(record)
        self._commit()

    def delete_all(self, records: Iterable[Any]) -> None:
        for record in records:
            self.session.delete(record)
        self._commit()

    def rollback(self) -> None:
        self.session.rollback()

    def to_dict(self, record) -> dict:
        return {name: getattr(record, name) for name in self.columns}
