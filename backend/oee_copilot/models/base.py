from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import declarative_base
from datetime import datetime
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


class BaseModel:
    """Base model with common fields."""

    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


# Apply BaseModel to Base
Base = declarative_base(cls=BaseModel)
