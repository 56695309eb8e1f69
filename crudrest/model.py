from typing import Any, Iterable, Mapping
import crudrest
from .backend import CrudBackend, Where
from .errors import GenericError, ValidationError

DEFAULT_ERROR = "An error has occurred!"
INVALID_SELECTION = "Invalid selection"


class RestModel:
    """
    The records loaded for a single request.

    The operations return False on failure, error() returns the reason.
    `is_collection` is set by get_all(), a page with a single record is still a collection.
    """

    def __init__(self, backend: CrudBackend) -> None:
        self.backend = backend
        self.records = []
        self.is_collection = False
        # False if the last failure was caused by invalid data
        self.valid = True
        self._checked = False
        self._err = ""
        self._validation_errors = []

    @property
    def id_field(self) -> str:
        return self.backend.id_field

    def _select(self, records: Iterable[Any], collection: bool) -> None:
        self.records = list(records)
        self.is_collection = collection
        self._checked = False

    def _set_error(self, err: str = None) -> None:
        # Get the whole error string
        err_str = err if err else " ".join(self._validation_errors)
        self._err = err_str if err_str else DEFAULT_ERROR

    def get(self, id: Any, where: Where = None) -> bool:
        record = self.backend.get(id, where)
        if record is None:
            self._select([], False)
            self._set_error(f'No record with id "{id}"')
            return False
        self._select([record], False)
        return True

    def get_all(self, limit: int, offset: int, where: Where = None) -> bool:
        self._select(self.backend.get_all(limit, offset, where), True)
        return True

    def exists(self, id: Any, where: Where = None) -> bool:
        return self.backend.get(id, where) is not None

    def count(self, where: Where = None) -> int:
        return self.backend.count(where)

    def result_count(self) -> int:
        return len(self.records)

    def load(self, data: Any, id: Any = None) -> bool:
        """
        Load the object with data: a new record is created if `id` is None,
        otherwise `data` is merged into the existing record.
        A list of records can be loaded to create several records at once.
        """
        self.valid = True
        if id is not None:
            if not self.get(id):
                return False
            items = [data]
        elif isinstance(data, (list, tuple)) and data:
            self._select([self.backend.new() for _ in data], True)
            items = data
        else:
            self._select([self.backend.new()], False)
            items = [data]

        for record, item in zip(self.records, items):
            if not isinstance(item, Mapping):
                self.valid = False
                self._set_error("Invalid data")
                return False
            try:
                self.backend.merge(record, item)
            except ValidationError as exc:
                self.valid = False
                self._set_error(exc.message)
                self.backend.rollback()
                return False
        self._checked = False
        return True

    def validate(self) -> bool:
        errors = []
        for record in self.records:
            errors.extend(self.backend.validate(record))
        self._validation_errors = errors
        self._checked = True
        self.valid = not errors
        if errors:
            self._set_error()
            # discard the changes of the invalid records
            self.backend.rollback()
            return False
        return True

    def save(self) -> bool:
        if not self.records:
            self._set_error("No data to save")
            return False
        if not self._checked and not self.validate():
            return False
        try:
            self.backend.save_all(self.records)
        except GenericError as exc:
            crudrest.log.warning(f"Failed to save data: {exc}")
            self._set_error("Failed to save data!")
            return False
        return True

    def update(self) -> bool:
        # always validate the merged data, save() only validates unchecked records
        self._checked = False
        return self.save()

    def update_all(self, data: Any, where: Where) -> bool:
        """
        Update the records selected by `where`, an empty selection is refused.
        When the update fails, the selected records are fetched again so the
        current state can be returned to the client.
        """
        self.valid = True
        if not where:
            self._set_error(INVALID_SELECTION)
            return False
        if not isinstance(data, Mapping):
            self.valid = False
            self._set_error("Invalid data")
            return False

        self._select(self.backend.find(where), True)
        if not self.records:
            return True
        try:
            for record in self.records:
                self.backend.merge(record, data)
        except ValidationError as exc:
            self.valid = False
            self._set_error(exc.message)
            self.backend.rollback()
            self._select(self.backend.find(where), True)
            return False

        if not self.save():
            self.backend.rollback()
            self._select(self.backend.find(where), True)
            return False
        return True

    def delete(self) -> bool:
        if not self.records:
            self._set_error("No data to delete")
            return False
        try:
            self.backend.delete_all(self.records)
        except GenericError as exc:
            crudrest.log.warning(f"Failed to delete data: {exc}")
            self._set_error("Failed to delete data!")
            return False
        self._select([], self.is_collection)
        return True

    def delete_all(self, where: Where) -> bool:
        """
        Delete the records selected by `where`, an empty selection is refused
        """
        self.valid = True
        if not where:
            self._set_error(INVALID_SELECTION)
            return False
        self._select(self.backend.find(where), True)
        if not self.records:
            return True
        return self.delete()

    def to_record(self) -> Any:
        """
        :return: the loaded record, a list of records for collections
        """
        records = [self.backend.to_dict(record) for record in self.records]
        if self.is_collection:
            return records
        if not records:
            return {}
        return records[0]

    def error(self) -> str:
        return self._err if self._err else DEFAULT_ERROR
