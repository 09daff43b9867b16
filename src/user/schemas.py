from uuid import UUID

from pydantic import EmailStr

from src.core.schemas import Base


class UserProfileViewModel(Base):
    id: UUID
    username: str
    email: EmailStr
