from pydantic import BaseModel


class LoginIn(BaseModel):
    username: str
    password: str


class LoginUser(BaseModel):
    id: int
    username: str
    name: str
    role: str


class LoginOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: LoginUser
