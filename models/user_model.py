from pydantic import BaseModel, EmailStr


class UserSignup(BaseModel):
    name: str
    email: EmailStr
    password: str


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Session(BaseModel):
    """Authenticated caller, resolved once per request from the bearer token."""
    session_id: str
    user_id: str
    email: str
    name: str
    token: str
