import datetime
import sqlalchemy
import crudrest

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off", "")


def _parse_datetime(value):
    date_str = str(value)
    try:
        return datetime.datetime.fromisoformat(date_str)
    except ValueError:
        pass
    if "." in date_str:
        # str(datetime.datetime.now()) => "%Y-%m-%d %H:%M:%S.%f"
        return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S.%f")
    # JS datepicker format
    return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S")


def _parse_time(value):
    time_str = str(value)
    if "." in time_str:
        return datetime.datetime.strptime(time_str, "%H:%M:%S.%f").time()
    return datetime.datetime.strptime(time_str, "%H:%M:%S").time()


def parse_attr(column, attr_val):
    """
    Parse the supplied `attr_val` so it can be saved in the SQLAlchemy `column`

    :param column: SQLAlchemy column
    :param attr_val: request field value
    :return: processed value
    :raises ValueError: when the value can't be converted to the column type
    """
    if attr_val is None:
        return attr_val

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        # custom column types should handle the conversion themselves
        crudrest.log.debug(exc)
        return attr_val

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return attr_val

    if isinstance(attr_val, python_type) and not (python_type is int and isinstance(attr_val, bool)):
        return attr_val

    if python_type is bool:
        if isinstance(attr_val, str):
            if attr_val.lower() in TRUE_VALUES:
                return True
            if attr_val.lower() in FALSE_VALUES:
                return False
            raise ValueError(f'Invalid boolean "{attr_val}"')
        return bool(attr_val)

    # Parse datetime and date values for some common representations
    if python_type == datetime.datetime:
        return _parse_datetime(attr_val)
    if python_type == datetime.date:
        return datetime.date.fromisoformat(str(attr_val))
    if python_type == datetime.time:
        return _parse_time(attr_val)

    if python_type in (int, float) and attr_val == "":
        return None

    return python_type(attr_val)
