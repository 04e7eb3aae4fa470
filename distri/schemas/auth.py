# Signup / confirmation / login schemas

from pydantic import BaseModel, ConfigDict, Field, field_validator

from distri.schemas.participation import check_email


class SignupBody(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return check_email(v).lower()


class LoginBody(BaseModel):
    email: str
    password: str


class ConfirmBody(BaseModel):
    token: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    email_confirmed: bool
