"""
The persistence interface used by RestModel.

A backend serves the records of one model class. It doesn't keep any request state,
the records it returns are handled by a RestModel instance that lives for the duration of
a single request.
"""
from abc import ABCMeta, abstractmethod
from typing import Any, Iterable, List, Mapping, Optional

Record = Any
Where = Optional[Mapping[str, Any]]


class CrudBackend(metaclass=ABCMeta):
    """
    CRUD operations on the records of a model.
    Methods that write to the store raise a GenericError when the store fails.
    """

    #: the name of the id field in the records returned by to_dict()
    id_field = "id"

    @abstractmethod
    def new(self) -> Record:
        """
        :return: a new, unsaved record
        """

    @abstractmethod
    def get(self, id: Any, where: Where = None) -> Optional[Record]:
        """
        :param id: record id
        :param where: field => value constraints the record has to match
        :return: the record or None
        """

    @abstractmethod
    def get_all(self, limit: int, offset: int, where: Where = None) -> List[Record]:
        """
        :return: a page of records, ordered by id
        """

    @abstractmethod
    def find(self, where: Where) -> List[Record]:
        """
        :return: all records matching `where`
        """

    @abstractmethod
    def count(self, where: Where = None) -> int:
        pass

    @abstractmethod
    def merge(self, record: Record, data: Mapping[str, Any]) -> None:
        """
        Update the record attributes with the values in `data`.
        Raises a ValidationError if a value can't be used.
        """

    @abstractmethod
    def validate(self, record: Record) -> List[str]:
        """
        :return: validation error messages, empty if the record is valid
        """

    @abstractmethod
    def save_all(self, records: Iterable[Record]) -> None:
        """
        Persist (insert or update) the records
        """

    @abstractmethod
    def delete_all(self, records: Iterable[Record]) -> None:
        pass

    @abstractmethod
    def to_dict(self, record: Record) -> dict:
        pass

    def save(self, record: Record) -> None:
        self.save_all([record])

    def delete(self, record: Record) -> None:
        self.delete_all([record])

    def rollback(self) -> None:
        """
        Discard unsaved changes
        """
