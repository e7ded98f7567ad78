# portl/schemas/token.py
from typing import Optional

from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    email: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[int] = None  # Standard claim for expiration time

    model_config = {
        "from_attributes": True,
    }
