# backend/auth/schemas.py

from pydantic import BaseModel, Field


class RegisterSchema(BaseModel):
    username: str = Field(..., min_length=3, max_length=150, pattern=r"^[A-Za-z0-9_.@+-]+$")
    password: str = Field(..., min_length=6, max_length=128)


class LoginSchema(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
