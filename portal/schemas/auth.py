from typing import Optional

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str
    role: str = "user"
    id: Optional[str] = None


class RegisterRequest(BaseModel):
    """Body of `POST /auth/register`; field names follow the backend's camelCase contract."""

    firstName: str
    lastName: str
    email: str
    phoneNo: str
    password: str
    gender: str
    sexualOrientation: str = "Straight"
    age: int = 25
    nationality: str = "Kenyan"
    location: str = "Nairobi"
    services: list[str]
