from ..models.doctor import Doctor
from ..models.user import User
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User


class DoctorRepository(BaseRepository[Doctor]):
    model = Doctor
