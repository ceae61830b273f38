"""Authentication endpoints: staff register/login, patient-app login, profile."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.security import create_access_token, get_current_user, get_password_hash, verify_password
from ..datastore.client import BackendClient
from ..datastore.errors import BackendError, ErrorCode
from ..models.user import Profile, UserRole
from ..schemas import LoginRequest, PatientLoginRequest, ProfileResponse, ProfileUpdate, RegisterRequest
from ..utils.formatting import format_cep, format_cpf_cnpj
from .deps import get_backend, get_db

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_for(user: Profile) -> str:
    return create_access_token({"sub": user.id, "email": user.email, "role": user.role})


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    """Create a clinic (admin) account and sign it in."""
    if db.query(Profile).filter(Profile.email == req.email).first():
        raise HTTPException(status_code=400, detail="User already exists")

    user = Profile(
        name=req.name,
        email=req.email,
        hashed_password=get_password_hash(req.password),
        role=UserRole.ADMIN,
        phone=req.phone,
        crefito=req.crefito,
        cpf_cnpj=format_cpf_cnpj(req.cpf) if req.cpf else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {
        "success": True,
        "user": ProfileResponse.model_validate(user).model_dump(),
        "token": _token_for(user),
    }


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(Profile).filter(Profile.email == req.email).first()
    if not user or not user.is_active or not verify_password(req.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {
        "success": True,
        "user": ProfileResponse.model_validate(user).model_dump(),
        "token": _token_for(user),
    }


@router.post("/patient")
def patient_login(req: PatientLoginRequest, backend: BackendClient = Depends(get_backend)):
    """Patient-app login against ``patient_app_access``; the hash never leaves the server."""
    try:
        access = backend.rpc("authenticate_patient", {"email": req.email, "password": req.password}).data
    except BackendError as exc:
        if exc.code == ErrorCode.INVALID_CREDENTIALS:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas")
        raise
    token = create_access_token({
        "sub": access["id"],
        "role": UserRole.PATIENT,
        "patient_id": access["patient_id"],
    })
    return {"success": True, "data": access, "token": token}


@router.get("/me", response_model=ProfileResponse)
def get_me(current_user=Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    req: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("cpf_cnpj"):
        changes["cpf_cnpj"] = format_cpf_cnpj(changes["cpf_cnpj"])
    if changes.get("cep"):
        changes["cep"] = format_cep(changes["cep"])
    for key, value in changes.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    return current_user
