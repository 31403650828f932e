from models.base_model import Base
from models.user import User
from models.user_session import UserSession

__all__ = ["Base", "User", "UserSession"]
