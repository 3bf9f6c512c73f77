from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from models.user import ObjectIdStr

ALLOWED_TASK_UPDATES = ("description", "completed")

# Query values accepted by ?sortBy=<field>_<direction>
SORTABLE_TASK_FIELDS = {
    "description": "description",
    "completed": "completed",
    "created_at": "created_at",
    "createdAt": "created_at",
    "updated_at": "updated_at",
    "updatedAt": "updated_at",
}


class TaskCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1, examples=["Buy burger buns"])
    completed: bool = False


class TaskUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(None, min_length=1)
    completed: bool = None


class TaskPublic(BaseModel):
    id: ObjectIdStr = Field(..., alias="_id")
    description: str
    completed: bool = False
    owner: ObjectIdStr
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True)
