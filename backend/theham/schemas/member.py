from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import datetime
from typing import Optional

class MemberCreate(BaseModel):
    email: EmailStr
    nickname: str = Field(..., min_length=2, max_length=50)
    password: str = Field(..., min_length=8, max_length=72)
    profile_url: Optional[str] = None

class MemberLogin(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
    member_id: int
    nickname: str

class MemberRead(BaseModel):
    id: int
    email: str
    nickname: str
    profile_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
