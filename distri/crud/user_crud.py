# User accounts: signup, email confirmation, credential check

from typing import Dict, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from distri.core.security import generate_confirmation_token, hash_password, verify_password
from distri.models.user import User


class AuthError(Exception):
    """Signup / confirmation / login refused."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_user(db: Session, email: str, password: str) -> User:
    """New unconfirmed account with a fresh confirmation token. Caller commits."""
    email = email.strip().lower()
    if get_user_by_email(db, email):
        raise AuthError("Un compte existe déjà avec cet email", status_code=409)
    user = User(
        email=email,
        password_hash=hash_password(password),
        email_confirmed=False,
        confirmation_token=generate_confirmation_token(),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        raise AuthError("Un compte existe déjà avec cet email", status_code=409) from exc
    return user


def confirm_email(db: Session, token: str) -> User:
    user = db.query(User).filter(User.confirmation_token == token).first()
    if not user:
        raise AuthError("Lien de confirmation invalide ou déjà utilisé", status_code=404)
    user.email_confirmed = True
    user.confirmation_token = None
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthError("Email ou mot de passe incorrect", status_code=401)
    if not user.email_confirmed:
        raise AuthError("Veuillez confirmer votre email avant de vous connecter", status_code=403)
    return user


def get_emails(db: Session, user_ids: Sequence[int]) -> Dict[int, str]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    rows = db.query(User.id, User.email).filter(User.id.in_(ids)).all()
    return {user_id: email for user_id, email in rows}
