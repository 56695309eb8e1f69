import logging
import os
import sys
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
import crudrest

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"


class CrudRest:
    """Flask extension that prepares an application for crudrest resources.

    Process wide settings are class attributes, they can be overridden with keyword
    arguments or with the flask app config (see config.get_config):

    :param app: flask application
    :param app_db: flask_sqlalchemy extension used by the model backed resources
    :param MAX_PAGE_LIMIT: upper bound of the `limit` query argument
    :param MAX_PAGE_OFFSET: upper bound of the `offset` query argument
    :param DEFAULT_FORMAT: request and response format used when none is negotiated
    """

    MAX_PAGE_LIMIT = 100000
    MAX_PAGE_OFFSET = 2**31
    DEFAULT_FORMAT = "json"
    LOGLEVEL = logging.WARNING

    def __init__(self, app: Flask = None, **kwargs) -> None:
        self.app = app
        self.db = None
        if app is not None:
            self.init_app(app, **kwargs)

    def init_app(self, app: Flask, app_db: SQLAlchemy = None, **kwargs) -> None:
        if not isinstance(app, Flask):  # pragma: no cover
            raise TypeError("'app' should be Flask.")

        # the extension registered with the app takes precedence over the global DB
        self.db = app_db if app_db is not None else app.extensions.get("sqlalchemy", crudrest.DB)
        crudrest.DB = self.db

        # "/users/" and "/users" address the same collection
        app.url_map.strict_slashes = False

        if app.config.get("DEBUG", False):
            log.setLevel(logging.DEBUG)

        for name, value in kwargs.items():
            setattr(CrudRest, name, value)

        @app.teardown_appcontext
        def remove_session(exception=None):  # pylint: disable=unused-argument,unused-variable
            if "sqlalchemy" in app.extensions:
                self.db.session.remove()

    @staticmethod
    def init_logging(loglevel: int = logging.WARNING) -> logging.Logger:
        """
        The package logger writes to stderr, which is captured by the webserver
        """
        logger = logging.getLogger(__name__.split(".")[0])
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
            logger.setLevel(loglevel)
        return logger


def _env_loglevel(default: int = logging.WARNING) -> int:
    value = os.getenv("DEBUG")
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:  # pragma: no cover
        print(f'Invalid LogLevel in DEBUG Environment Variable! "{value}"', file=sys.stderr)
        return logging.INFO


#
# DB and logging initialization
#
DB = SQLAlchemy()
LOGLEVEL = _env_loglevel()
log = CrudRest.init_logging(LOGLEVEL)
