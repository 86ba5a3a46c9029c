from pydantic import BaseModel, SecretStr, field_validator

from friendchat.users.schemas import UserPublic


"""
/signup, /login
"""


class UserLoginModel(BaseModel):
    email: str
    password: SecretStr

    @field_validator("email")
    @classmethod
    def validate_email(cls, email: str) -> str:
        email = email.strip()
        if not email:
            raise ValueError("Email is required.")
        return email

    @field_validator("password")
    @classmethod
    def validate_password(cls, password: SecretStr) -> SecretStr:
        if not password.get_secret_value():
            raise ValueError("Password is required.")
        return password


class AuthResponseModel(BaseModel):
    user: UserPublic
    token: str
