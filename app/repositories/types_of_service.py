from app.models.type_of_service import TypeOfService
from app.repositories.base import BaseRepository


class TypeOfServiceRepository(BaseRepository):
    model = TypeOfService
