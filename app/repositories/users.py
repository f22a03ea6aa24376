"""Read-only user directory."""

from sqlalchemy import select

from app.models.user import User, UserRole
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    model = User

    async def get_admin_emails(self) -> list[str]:
        result = await self.db.execute(select(User.email).where(User.role == UserRole.ADMIN))
        return list(result.scalars().all())
