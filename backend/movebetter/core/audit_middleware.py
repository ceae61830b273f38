"""
Audit logging middleware.
Records every request that touches patient health data (patients, schedule, clinical records).
"""
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..models.audit import AuditLog
from .security import decode_access_token

logger = logging.getLogger(__name__)

# Requests under these prefixes are logged
PHI_PATH_PREFIXES = (
    "/api/patients",
    "/api/appointments",
    "/api/medical-records",
    "/api/evolutions",
    "/api/pre-evaluations",
    "/api/treatment-plans",
)

ACTION_MAP = {
    "GET": "view",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


def resource_from_path(path: str):
    """``/api/patients/<id>/...`` -> ("patients", "<id>")"""
    parts = [p for p in path.split("/") if p]
    resource_type = parts[1] if len(parts) >= 2 else "unknown"
    resource_id = parts[2] if len(parts) >= 3 else "collection"
    return resource_type, resource_id


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware that logs access to patient-data endpoints."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        if not path.startswith(PHI_PATH_PREFIXES) or request.method not in ACTION_MAP:
            return response

        user_id = "anonymous"
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_access_token(auth_header[7:])
            if payload:
                user_id = payload.get("sub", "anonymous")

        resource_type, resource_id = resource_from_path(path)
        session_factory = request.app.state.session_factory
        db = session_factory()
        try:
            db.add(AuditLog(
                user_id=user_id,
                action=ACTION_MAP[request.method],
                resource_type=resource_type,
                resource_id=resource_id,
                ip_address=request.client.host if request.client else None,
                request_method=request.method,
                request_path=path,
            ))
            db.commit()
        except Exception as exc:
            db.rollback()
            logger.warning(
                "Audit log write failed for %s %s (user=%s): %s",
                request.method, path, user_id, exc,
            )
        finally:
            db.close()

        return response
