from pydantic import BaseModel, Field, model_validator
from typing import Optional
from app.auth import Role, ProfileStatus, User


class LoginRequest(BaseModel):
    email: str
    password: str


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=6)
    confirm_password: Optional[str] = None

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: Role
    profile_status: ProfileStatus
    profile: Optional[dict] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            profile_status=user.profile_status,
            profile=user.profile,
        )


class AuthResponse(BaseModel):
    user: Optional[UserResponse] = None
