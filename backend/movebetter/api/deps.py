"""Request-scoped access to the database session and the datastore client."""
from fastapi import Request


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_backend(request: Request):
    return request.app.state.backend
