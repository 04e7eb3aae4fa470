# FastAPI dependencies: store, clock, dataset, redis-backed services, current user

from datetime import date
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from distri.cache import get_redis
from distri.core import config
from distri.core.logging import get_logger
from distri.core.security import decode_access_token
from distri.crud.interfaces import ParticipationStore
from distri.crud.participation_crud import SqlParticipationStore
from distri.crud.user_crud import get_user
from distri.database import get_db
from distri.integrations.opendatasoft import OpenDataSoftClient
from distri.models.user import User
from distri.services.clock import today_local
from distri.services.dataset import City, StaticDataset
from distri.services.draft_store import DraftStore
from distri.services.iris_service import IrisService

logger = get_logger(__name__)

# tokenUrl must match the login endpoint path
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_today() -> date:
    return today_local()


def get_store(db: Session = Depends(get_db)) -> ParticipationStore:
    return SqlParticipationStore(db)


@lru_cache(maxsize=1)
def get_dataset() -> StaticDataset:
    return StaticDataset.from_dir(config.DATA_DIR)


def get_city(city: str, dataset: StaticDataset = Depends(get_dataset)) -> City:
    found = dataset.find_city(city)
    if found is None:
        raise HTTPException(status_code=404, detail=f"Ville inconnue : {city}")
    return found


def get_geocoder() -> OpenDataSoftClient:
    return OpenDataSoftClient()


def get_iris_service(
    geocoder: OpenDataSoftClient = Depends(get_geocoder),
    cache=Depends(get_redis),
    dataset: StaticDataset = Depends(get_dataset),
) -> IrisService:
    return IrisService(geocoder, cache, dataset)


def get_draft_store(cache=Depends(get_redis)) -> DraftStore:
    return DraftStore(cache)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Bearer JWT -> User row. 401 when the token is invalid or the user is gone."""
    try:
        payload = decode_access_token(token)
        user_id = int(payload.get("sub") or 0)
        if not user_id:
            raise _CREDENTIALS_EXCEPTION
    except (JWTError, ValueError) as exc:
        logger.warning("jwt_decode_failed", error=str(exc))
        raise _CREDENTIALS_EXCEPTION

    user = get_user(db, user_id)
    if user is None:
        logger.warning("jwt_user_not_found", user_id=user_id)
        raise _CREDENTIALS_EXCEPTION
    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.email.lower() != config.ADMIN_EMAIL.lower():
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return current_user
