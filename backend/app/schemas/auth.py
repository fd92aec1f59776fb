from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class Credentials(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class SignUpResponse(BaseModel):
    message: str
    user: Optional[Dict[str, Any]] = None


class SignInResponse(BaseModel):
    message: str
    user: Optional[Dict[str, Any]] = None
    session: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    message: str


class UserResponse(BaseModel):
    user: Dict[str, Any]
