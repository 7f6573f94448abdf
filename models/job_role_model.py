from pydantic import BaseModel
from typing import List, Literal, Optional


class JobRoleInput(BaseModel):
    title: str
    department: Optional[str] = None
    description: Optional[str] = None
    requirements: List[str] = []
    status: Literal["open", "closed", "draft"] = "open"
