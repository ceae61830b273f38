"""In-process datastore: table client, change feed and transactional procedures."""
from .client import APIResponse, BackendClient  # noqa: F401
from .errors import BackendError, ErrorCode  # noqa: F401
from .realtime import ChangeEvent, ChangeFeed, ChangeType  # noqa: F401
