import pytest
from flask import Flask
from crudrest import DB, RestApi, ResourceConfig, SQLAlchemyBackend, model_resource


class User(DB.Model):
    """
    description: test users
    """

    __tablename__ = "users"
    id = DB.Column(DB.Integer, primary_key=True)
    fullname = DB.Column(DB.String(64), nullable=False)
    email = DB.Column(DB.String(128), unique=True, nullable=False)
    phone = DB.Column(DB.String(32))
    status = DB.Column(DB.String(16), default="active")

    def validation_errors(self):
        if self.email and "@" not in self.email:
            return ["The email field must contain a valid email address."]
        return []


USERS = [
    {"fullname": "Jon Doe", "email": "jon@example.com", "phone": "555-0100", "status": "active"},
    {"fullname": "Jane Roe", "email": "jane@example.com", "phone": "555-0101", "status": "active"},
    {"fullname": "Max Mustermann", "email": "max@example.com", "phone": None, "status": "blocked"},
    {"fullname": "Erika Mustermann", "email": "erika@example.com", "phone": None, "status": "blocked"},
    {"fullname": "Jan Janssens", "email": "jan@example.com", "phone": "555-0104", "status": "active"},
]


def status_selection(exchange):
    status = exchange.request.args("status", sanitize=True)
    return {"status": status} if status else {}


@pytest.fixture
def user_model():
    return User


@pytest.fixture
def app():
    app = Flask("crudrest_tests")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", SQLALCHEMY_TRACK_MODIFICATIONS=False, TESTING=True)
    DB.init_app(app)
    with app.app_context():
        DB.create_all()
        yield app
        DB.session.remove()
        DB.drop_all()


@pytest.fixture
def backend(app):
    return SQLAlchemyBackend(User)


@pytest.fixture
def users(app):
    """
    Store the sample users, returns their ids
    """
    records = [User(**user) for user in USERS]
    DB.session.add_all(records)
    DB.session.commit()
    return [record.id for record in records]


@pytest.fixture
def users_config():
    return ResourceConfig(
        allowed_methods=("get", "post", "put", "patch", "delete"),
        allowed_array_methods=("get", "post", "put", "patch", "delete"),
        excluded_fields=("phone",),
        protected_input_fields={"post": ("id",), "put": ("id",)},
        meta_timestamp=True,
        selection=status_selection,
    )


@pytest.fixture
def api(app, backend, users_config):
    api = RestApi(app, app_db=DB)
    api.expose_resource("users", model_resource(backend, users_config))
    return api


@pytest.fixture
def client(app, api):
    return app.test_client()
