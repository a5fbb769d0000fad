# users_api/models/user.py
# Модель пользователя: имя, фамилия, email, телефон, хеш пароля, статус ограничения.
from sqlalchemy import Column, Integer, String, DateTime, Enum
from datetime import datetime
from users_api.db.base import Base
import enum


class RestrictionStatus(str, enum.Enum):
    Valido = "Valido"
    Invalido = "Invalido"
    Restringido = "Restringido"

    def restricted(self) -> "RestrictionStatus":
        """Следующее состояние после POST /users/{id}/restrict."""
        if self is RestrictionStatus.Valido:
            return RestrictionStatus.Invalido
        return RestrictionStatus.Restringido


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(20), nullable=False)
    lastname = Column(String(20), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(10), nullable=False)
    password = Column(String(255), nullable=False)
    is_restricted = Column(
        Enum(RestrictionStatus, name="restriction_status"),
        nullable=False,
        default=RestrictionStatus.Valido,
    )
    created_by = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} is_restricted={self.is_restricted}>"
