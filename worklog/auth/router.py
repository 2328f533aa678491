from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.models import User
from ..schemas.auth import LoginRequest, TokenResponse, UserCreate, UserOut
from ..services.users import authenticate, create_user
from .policy import Capability
from .security import create_access_token, get_current_user, require_capability


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.identifier, req.password)
    access = create_access_token(str(user.id), role=user.role)
    return TokenResponse(access_token=access, role=user.role)


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/users", response_model=UserOut, status_code=201)
def create_user_account(
    payload: UserCreate,
    db: Session = Depends(get_db),
    _=Depends(require_capability(Capability.USER_MANAGE)),
):
    return create_user(db, payload.username, payload.password, payload.role, payload.full_name, payload.email)
