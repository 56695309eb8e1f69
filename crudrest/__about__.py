__version__ = "0.1.0"
__description__ = "crudrest : content negotiated CRUD resources for Flask and SQLAlchemy"
