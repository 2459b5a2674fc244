import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.public import user_public
from ..utils.dependencies import get_current_user
from ..utils.error_handlers import get_error_message, handle_database_error
from ..utils.jwt import create_access_token
from ..utils.security import hash_password, verify_password
from ..utils.validation import validate_email, validate_password, validate_string_field

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


def _token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    name = validate_string_field(payload.name, "Name", max_length=255)
    email = validate_email(payload.email)
    validate_password(payload.password)

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail=get_error_message("email_exists"))

    try:
        hashed = hash_password(payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user = User(name=name, email=email, password=hashed)
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError:
        # Lost a race with a concurrent signup for the same email.
        db.rollback()
        raise HTTPException(status_code=400, detail=get_error_message("email_exists"))
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_database_error(e, "creating user")

    logger.info("User signed up id=%s", user.id)
    return {
        "message": "User created successfully",
        "token": _token_for(user),
        "token_type": "bearer",
        "user": user_public(user),
    }


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    email = validate_email(payload.email)
    if not payload.password:
        raise HTTPException(status_code=400, detail="Password is required")

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password):
        raise HTTPException(status_code=401, detail=get_error_message("invalid_credentials"))

    return {
        "token": _token_for(user),
        "token_type": "bearer",
        "user": user_public(user),
    }


@router.post("/logout")
def logout():
    # Tokens are stateless; the client drops its copy.
    return {"message": "Logged out successfully"}


@router.get("/me")
def me(db: Session = Depends(get_db), user=Depends(get_current_user)):
    current = db.query(User).filter(User.id == int(user["sub"])).first()
    if not current:
        raise HTTPException(status_code=404, detail=get_error_message("user_not_found"))
    return {"user": user_public(current)}
