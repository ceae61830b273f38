"""
Role-based permission matrix for MoveBetter.
Staff accounts run the clinic; patient accounts only reach their own app pages.
"""
from fastapi import Depends, HTTPException, status

from ..models.user import UserRole
from .security import get_current_user

# Permission constants
PERM_MANAGE_PATIENTS = "manage_patients"
PERM_MANAGE_SCHEDULE = "manage_schedule"
PERM_MANAGE_CLINICAL_RECORDS = "manage_clinical_records"
PERM_MANAGE_FINANCE = "manage_finance"
PERM_VIEW_REPORTS = "view_reports"
PERM_VIEW_AUDIT_LOGS = "view_audit_logs"

# Role permission matrix
ROLE_PERMISSIONS: dict = {
    UserRole.ADMIN: {
        PERM_MANAGE_PATIENTS,
        PERM_MANAGE_SCHEDULE,
        PERM_MANAGE_CLINICAL_RECORDS,
        PERM_MANAGE_FINANCE,
        PERM_VIEW_REPORTS,
        PERM_VIEW_AUDIT_LOGS,
    },
    UserRole.PATIENT: set(),
}


def has_permission(role: str, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())


def require_permission(permission: str):
    def checker(current_user=Depends(get_current_user)):
        if not has_permission(current_user.role, permission):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return current_user

    return checker
