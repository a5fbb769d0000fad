# users_api/services/users.py
# Операции над пользователями. Каждая операция — одно обращение к БД и один commit.
# Сессия и хешер паролей передаются явно; ошибки домена — исключения из core.errors.
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import ValidationError
from sqlalchemy.orm import Session

from users_api.core.errors import (
    InvalidPasswordError,
    UserNotFoundError,
    UserValidationError,
    validation_error_from,
)
from users_api.core.security import PasswordHasher
from users_api.models.user import RestrictionStatus, User
from users_api.schemas.user import PasswordChange, UserCreate, UserPatch, UserUpdate

logger = logging.getLogger(__name__)

# Столбец id — INTEGER; больших значений в таблице быть не может
MAX_USER_ID = 2**31 - 1
_ID_RE = re.compile(r"[0-9]+")


@dataclass
class Page:
    """Страница пользователей и метаданные пагинации."""

    items: List[User]
    total: int
    current_page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max(math.ceil(self.total / self.per_page), 1)

    @property
    def first_item(self) -> int | None:
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def last_item(self) -> int | None:
        if not self.items:
            return None
        return self.first_item + len(self.items) - 1

    def pagination(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "current_page": self.current_page,
            "last_page": self.last_page,
            "per_page": self.per_page,
            "from": self.first_item,
            "to": self.last_item,
        }


def _validate(schema, payload: Any):
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise validation_error_from(e) from e


def parse_user_id(user_id: int | str) -> int | None:
    """id из пути запроса; None, если такого id в таблице быть не может."""
    if isinstance(user_id, int):
        value = user_id
    elif isinstance(user_id, str) and _ID_RE.fullmatch(user_id):
        value = int(user_id)
    else:
        return None
    if not 1 <= value <= MAX_USER_ID:
        return None
    return value


def _get_or_404(db: Session, user_id: int | str) -> User:
    parsed = parse_user_id(user_id)
    user = db.get(User, parsed) if parsed is not None else None
    if user is None:
        logger.warning(f"User {user_id} not found")
        raise UserNotFoundError(user_id)
    return user


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def _save(db: Session, user: User) -> User:
    _commit(db)
    db.refresh(user)
    return user


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def list_users(db: Session, per_page: int, page: int) -> Page:
    """Страница пользователей, упорядоченных по id."""
    total = db.query(User).count()
    items = (
        db.query(User)
        .order_by(User.id)
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return Page(items=items, total=total, current_page=page, per_page=per_page)


def create_user(db: Session, hasher: PasswordHasher, payload: Any) -> User:
    """
    Регистрирует пользователя со статусом Valido.

    Уникальность email проверяется только здесь; при гонке двух запросов
    срабатывает уникальный индекс БД.
    """
    errors: Dict[str, List[str]] = {}
    data = None
    try:
        data = UserCreate.model_validate(payload)
    except ValidationError as e:
        errors = validation_error_from(e).errors

    # Занятость адреса проверяем даже если другие поля невалидны;
    # адрес хранится без нормализации, поэтому сравниваем исходную строку
    email = payload.get("email") if isinstance(payload, dict) else None
    if isinstance(email, str) and "email" not in errors and _email_taken(db, email):
        errors.setdefault("email", []).append("The email has already been taken.")

    if errors:
        raise UserValidationError(errors)

    user = User(
        name=data.name,
        lastname=data.lastname,
        email=data.email,
        phone=data.phone,
        password=hasher.hash(data.password),
        is_restricted=RestrictionStatus.Valido,
        created_by=data.created_by,
    )
    db.add(user)
    _save(db, user)
    logger.info(f"User {user.id} created by {user.created_by}")
    return user


def get_user(db: Session, user_id: int | str) -> User:
    return _get_or_404(db, user_id)


def update_user(db: Session, hasher: PasswordHasher, user_id: int | str, payload: Any) -> User:
    """Полное обновление: пароль перехешируется всегда."""
    user = _get_or_404(db, user_id)
    data: UserUpdate = _validate(UserUpdate, payload)

    user.name = data.name
    user.lastname = data.lastname
    user.email = data.email
    user.phone = data.phone
    user.password = hasher.hash(data.password)
    if data.is_restricted is not None:
        user.is_restricted = RestrictionStatus(data.is_restricted)

    _save(db, user)
    logger.info(f"User {user.id} updated")
    return user


def patch_user(db: Session, hasher: PasswordHasher, user_id: int | str, payload: Any) -> User:
    """Частичное обновление: меняются только поля, присутствующие в запросе."""
    user = _get_or_404(db, user_id)
    patch: UserPatch = _validate(UserPatch, payload)
    changes = patch.model_dump(exclude_unset=True)

    if "password" in changes:
        changes["password"] = hasher.hash(changes["password"])
    if "is_restricted" in changes:
        changes["is_restricted"] = RestrictionStatus(changes["is_restricted"])
    for field, value in changes.items():
        setattr(user, field, value)

    _save(db, user)
    logger.info(f"User {user.id} patched: {sorted(changes)}")
    return user


def restrict_user(db: Session, user_id: int | str) -> User:
    """Valido -> Invalido, любое другое состояние -> Restringido."""
    user = _get_or_404(db, user_id)
    previous = RestrictionStatus(user.is_restricted)
    user.is_restricted = previous.restricted()
    _save(db, user)
    logger.info(f"User {user.id} restriction: {previous.value} -> {user.is_restricted.value}")
    return user


def delete_user(db: Session, user_id: int | str) -> None:
    user = _get_or_404(db, user_id)
    db.delete(user)
    _commit(db)
    logger.info(f"User {user_id} deleted")


def change_password(db: Session, hasher: PasswordHasher, user_id: int | str, payload: Any) -> User:
    """
    Смена пароля.

    Порядок проверок: существование пользователя (404), текущий пароль (401),
    затем новый пароль (400).
    """
    user = _get_or_404(db, user_id)
    current = payload.get("current_password") if isinstance(payload, dict) else None
    if not isinstance(current, str) or not hasher.verify(current, user.password):
        logger.warning(f"Invalid current password for user {user_id}")
        raise InvalidPasswordError()

    data: PasswordChange = _validate(PasswordChange, payload)
    user.password = hasher.hash(data.new_password)
    _save(db, user)
    logger.info(f"Password changed for user {user.id}")
    return user
