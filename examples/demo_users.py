#!/usr/bin/env python3
#
# Sample "users" resource:
#
#   python3 demo_users.py [HOST] [PORT]
#   curl http://localhost:5000/users
#   curl http://localhost:5000/users?format=csv
#   curl -X POST -H "Content-Type: application/json" -d '{"fullname": "JON DOE", "email": "jon@x.com"}' http://localhost:5000/users
#   curl -X PATCH -H "Content-Type: application/json" -d '{"status": "active"}' "http://localhost:5000/users?status=blocked"
#
import sys
from flask import Flask
from crudrest import DB, RestApi, ResourceConfig, SQLAlchemyBackend, model_resource

db = DB


class User(db.Model):
    """
    description: User description
    """

    __tablename__ = "Users"
    id = db.Column(db.Integer, primary_key=True)
    fullname = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(128), unique=True, nullable=False)
    phone = db.Column(db.String(32))
    status = db.Column(db.String(16), default="active")

    def validation_errors(self):
        if self.email and "@" not in self.email:
            return ["The email field must contain a valid email address."]
        return []


def user_selection(exchange):
    # bulk updates and deletes have to specify the status of the users
    status = exchange.request.args("status", sanitize=True)
    return {"status": status} if status else {}


USERS_CONFIG = ResourceConfig(
    allowed_methods=["get", "post", "put", "patch", "delete"],
    allowed_array_methods=["get", "post", "put", "patch", "delete"],
    excluded_fields=["phone"],
    protected_input_fields={"post": ["id"], "put": ["id"]},
    meta_timestamp=True,
    input_field_processors={"fullname": str.lower},
    output_field_processors={"fullname": str.title},
    selection=user_selection,
)


def create_app(db_uri="sqlite://"):
    app = Flask("crudrest demo")
    app.config.update(SQLALCHEMY_DATABASE_URI=db_uri, DEBUG=True)
    db.init_app(app)
    api = RestApi(app, app_db=db)
    api.expose_resource("users", model_resource(SQLAlchemyBackend(User), USERS_CONFIG))

    with app.app_context():
        db.create_all()
        for i in range(5):
            db.session.add(User(fullname=f"user {i}", email=f"user{i}@example.com", phone=f"555-010{i}"))
        db.session.commit()
    return app


if __name__ == "__main__":
    HOST = sys.argv[1] if len(sys.argv) > 1 else "0.0.0.0"
    PORT = int(sys.argv[2]) if len(sys.argv) > 2 else 5000
    app = create_app()
    print(f"Starting API: http://{HOST}:{PORT}/users")
    app.run(host=HOST, port=PORT)
