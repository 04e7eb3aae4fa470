# Signup, email confirmation and login
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from distri.core.logging import get_logger
from distri.core.security import create_access_token
from distri.crud.user_crud import AuthError, authenticate, confirm_email, create_user
from distri.database import get_db
from distri.schemas.auth import ConfirmBody, LoginBody, SignupBody, TokenOut, UserOut

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(body: SignupBody, db: Session = Depends(get_db)) -> UserOut:
    """Unconfirmed account. Email delivery is out of scope: the token is only logged."""
    try:
        user = create_user(db, body.email, body.password)
        db.commit()
    except AuthError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    db.refresh(user)
    logger.info("user_signed_up", user_id=user.id, confirmation_token=user.confirmation_token)
    return UserOut.model_validate(user)


@router.post("/confirm", response_model=UserOut)
def confirm(body: ConfirmBody, db: Session = Depends(get_db)) -> UserOut:
    try:
        user = confirm_email(db, body.token)
        db.commit()
    except AuthError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.message)
    db.refresh(user)
    logger.info("user_confirmed", user_id=user.id)
    return UserOut.model_validate(user)


@router.post("/login", response_model=TokenOut)
def login(body: LoginBody, db: Session = Depends(get_db)) -> TokenOut:
    try:
        user = authenticate(db, body.email, body.password)
    except AuthError as e:
        logger.info("login_refused", email=body.email, status_code=e.status_code)
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return TokenOut(access_token=create_access_token(str(user.id), user.email))
