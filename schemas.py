"""
Database Schemas

Define your MongoDB collection schemas here using Pydantic models.
Each Pydantic model represents a collection in your database.
Class name lowercased becomes the collection name.

This app uses one persistent collection:
- Profile: the application's own record about a user, keyed by the
  identity provider's user id

Request bodies are declared with every field optional so the auth gateway
can answer missing fields with its own 400 messages.
"""

from pydantic import BaseModel, Field
from typing import Optional, Union


class Profile(BaseModel):
    id: str = Field(..., description="identity provider user id, immutable")
    name: str
    lastname: str = ""
    email: str
    age: int
    provider: str = Field("email", description="auth provider: email|google|facebook|github")

    def to_public(self) -> dict:
        """Profile payload with the camel-case aliases some clients expect."""
        return {
            "id": self.id,
            "name": self.name,
            "firstName": self.name,
            "lastname": self.lastname,
            "lastName": self.lastname,
            "email": self.email,
            "age": self.age,
            "provider": self.provider,
        }


class SessionIdentity(BaseModel):
    user_id: str
    email: Optional[str] = None


# ---------------------- Request bodies ----------------------

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    confirmPassword: Optional[str] = None
    age: Optional[Union[int, str]] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class SocialLoginRequest(BaseModel):
    idToken: Optional[str] = None
    provider: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    newPassword: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    age: Optional[Union[int, str]] = None
