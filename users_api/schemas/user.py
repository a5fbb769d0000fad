# users_api/schemas/user.py
# Pydantic-схемы входных данных и представление пользователя в ответах.
import re
from datetime import datetime
from typing import Annotated, Literal

from email_validator import EmailNotValidError, validate_email
from passlib.utils import MAX_PASSWORD_SIZE
from pydantic import AfterValidator, BaseModel, ConfigDict, StringConstraints, field_validator
from pydantic_core import PydanticCustomError

from users_api.models.user import RestrictionStatus

PHONE_DIGITS = 10
_PHONE_RE = re.compile(r"[0-9]{%d}" % PHONE_DIGITS)

# Через update можно вернуть пользователя в Valido или ограничить его,
# но не выставить Invalido
UpdatableStatus = Literal["Restringido", "Valido"]


def _check_phone(value: str) -> str:
    if not _PHONE_RE.fullmatch(value):
        raise PydanticCustomError(
            "digits",
            "phone must be exactly {digits} digits",
            {"digits": PHONE_DIGITS},
        )
    return value


def _check_email(value: str) -> str:
    # Проверяем только синтаксис; в БД сохраняется адрес в том виде, в каком пришёл
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise PydanticCustomError("email", "value is not a valid email address: {reason}", {"reason": str(e)})
    return value


def _check_password_size(value: str) -> str:
    # Больше MAX_PASSWORD_SIZE байт passlib хешировать откажется
    if len(value.encode("utf-8")) > MAX_PASSWORD_SIZE:
        raise PydanticCustomError(
            "password_too_long",
            "password may not be greater than {max_bytes} bytes",
            {"max_bytes": MAX_PASSWORD_SIZE},
        )
    return value


# Пустая строка и строка из пробелов считаются отсутствующим значением
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=20)]
Email = Annotated[str, AfterValidator(_check_email)]
Phone = Annotated[str, AfterValidator(_check_phone)]
Password = Annotated[str, StringConstraints(min_length=6), AfterValidator(_check_password_size)]


class UserCreate(BaseModel):
    """Тело POST /users."""

    name: Name
    lastname: Name
    email: Email
    phone: Phone
    password: Password
    created_by: int


class UserUpdate(BaseModel):
    """Тело PUT /users/{id}: все поля обязательны, кроме is_restricted."""

    name: Name
    lastname: Name
    email: Email
    phone: Phone
    password: Password
    is_restricted: UpdatableStatus | None = None


class UserPatch(BaseModel):
    """
    Тело PATCH /users/{id}.

    Применяются только переданные поля (model_dump(exclude_unset=True)),
    явный null отклоняется.
    """

    name: Name | None = None
    lastname: Name | None = None
    email: Email | None = None
    phone: Phone | None = None
    password: Password | None = None
    is_restricted: UpdatableStatus | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _reject_null(cls, value):
        # Валидатор не вызывается для полей, которых нет в запросе
        if value is None:
            raise PydanticCustomError("not_null", "field may not be null")
        return value


class PasswordChange(BaseModel):
    """Тело POST /users/{id}/password."""

    current_password: str | None = None
    new_password: Password


class UserOut(BaseModel):
    """Пользователь в ответах API. Хеш пароля не отдаётся никогда."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    lastname: str
    email: str
    phone: str
    is_restricted: RestrictionStatus
    created_by: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
