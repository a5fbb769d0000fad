# users_api/core/errors.py
# Ошибки сервиса пользователей и преобразование ошибок pydantic в карту
# вида {"поле": ["сообщение", ...]}, которую отдаёт API с кодом 400.
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

# Шаблоны сообщений по типу ошибки pydantic; {field} — имя поля,
# остальные плейсхолдеры берутся из ctx ошибки.
MESSAGE_TEMPLATES: Dict[str, str] = {
    "missing": "The {field} field is required.",
    "string_type": "The {field} must be a string.",
    "string_too_short": "The {field} must be at least {min_length} characters.",
    "string_too_long": "The {field} may not be greater than {max_length} characters.",
    "int_type": "The {field} must be an integer.",
    "int_parsing": "The {field} must be an integer.",
    "greater_than_equal": "The {field} must be at least {ge}.",
    "enum": "The selected {field} is invalid.",
    "literal_error": "The selected {field} is invalid.",
    "digits": "The {field} must be {digits} digits.",
    "not_null": "The {field} field may not be null.",
    "email": "The {field} must be a valid email address.",
    "password_too_long": "The {field} may not be greater than {max_bytes} bytes.",
    "json_invalid": "The request body must be valid JSON.",
    "model_type": "The request body must be a JSON object.",
    "dict_type": "The request body must be a JSON object.",
}

# Части loc, которые FastAPI добавляет перед именем поля
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


class UserServiceError(Exception):
    """Базовая ошибка операций над пользователями."""


class UserValidationError(UserServiceError):
    """Входные данные не прошли проверку (HTTP 400)."""

    def __init__(self, errors: Dict[str, List[str]]):
        super().__init__("Error processing request data.")
        self.errors = errors


class UserNotFoundError(UserServiceError):
    """Пользователь с таким id не существует (HTTP 404)."""

    def __init__(self, user_id: int):
        super().__init__("User not found")
        self.user_id = user_id


class InvalidPasswordError(UserServiceError):
    """Текущий пароль не совпал с хешем в БД (HTTP 401)."""

    def __init__(self):
        super().__init__("Current password invalid")


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc if str(part) not in _LOCATION_PREFIXES]
    return ".".join(parts) if parts else "body"


def _error_field(error: Dict[str, Any]) -> str:
    # Для битого JSON loc указывает на позицию в теле, а не на поле
    if error.get("type") == "json_invalid":
        return "body"
    return _field_name(error.get("loc", ()))


def format_error(error: Dict[str, Any]) -> str:
    """Человекочитаемое сообщение для одной ошибки pydantic."""
    field = _error_field(error)
    error_type = error.get("type", "")
    ctx = dict(error.get("ctx") or {})

    # min_length=1 у обрезаемых строк означает пустое значение
    if error_type == "string_too_short" and ctx.get("min_length") == 1:
        error_type = "missing"

    template = MESSAGE_TEMPLATES.get(error_type)
    if template is None:
        return error.get("msg", "Invalid value.")
    try:
        return template.format(field=field, **ctx)
    except (KeyError, IndexError):
        return error.get("msg", "Invalid value.")


def error_map(errors: Iterable[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Группирует ошибки pydantic/FastAPI по полям, сохраняя порядок."""
    grouped: Dict[str, List[str]] = {}
    for error in errors:
        field = _error_field(error)
        message = format_error(error)
        messages = grouped.setdefault(field, [])
        if message not in messages:
            messages.append(message)
    return grouped


def validation_error_from(exc: ValidationError) -> UserValidationError:
    return UserValidationError(error_map(exc.errors()))
