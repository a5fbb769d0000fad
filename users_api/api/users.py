# users_api/api/users.py
# Роуты ресурса /users: список, создание, просмотр, обновление, ограничение,
# удаление и смена пароля. Все ответы — JSON-конверт с полем status.
import logging
from functools import wraps
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from users_api.core import security
from users_api.core.config import settings
from users_api.core.errors import InvalidPasswordError, UserNotFoundError, UserValidationError
from users_api.core.security import PasswordHasher
from users_api.models.user import User
from users_api.schemas.user import UserOut
from users_api.services import users as service

logger = logging.getLogger(__name__)

router = APIRouter()


def get_payload(payload: Any = Body(default=None)) -> Any:
    """
    Тело запроса как есть. Валидация выполняется в сервисе, после проверки
    существования пользователя.
    """
    return {} if payload is None else payload


def envelope(status_code: int, **body: Any) -> JSONResponse:
    """JSON-ответ, дублирующий HTTP-код в поле status."""
    body["status"] = status_code
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def serialize(user: User) -> Dict[str, Any]:
    return UserOut.model_validate(user).model_dump(mode="json")


def user_operation(error_message: str):
    """
    Переводит ошибки сервиса в ответы API.

    Ошибки домена дают 400/401/404, всё остальное — 500 с текстом исключения.
    """
    def decorator(endpoint):
        @wraps(endpoint)
        def wrapper(*args, **kwargs):
            try:
                return endpoint(*args, **kwargs)
            except UserValidationError as e:
                return envelope(status.HTTP_400_BAD_REQUEST, message=str(e), errors=e.errors)
            except UserNotFoundError as e:
                return envelope(status.HTTP_404_NOT_FOUND, message=str(e))
            except InvalidPasswordError as e:
                return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": str(e)})
            except Exception as e:
                logger.error(f"{error_message}: {e}", exc_info=True)
                return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, message=error_message, error=str(e))
        return wrapper
    return decorator


@router.get("")
@user_operation("An error occurred while fetching users")
def list_users(
    per_page: int = Query(default=settings.DEFAULT_PER_PAGE, ge=1),
    page: int = Query(default=1, ge=1),
    db: Session = Depends(security.get_db),
):
    """Список пользователей с пагинацией."""
    result = service.list_users(db, per_page=per_page, page=page)
    if not result.items:
        return envelope(status.HTTP_200_OK, message="No users were found")
    return envelope(
        status.HTTP_200_OK,
        data=[serialize(user) for user in result.items],
        pagination=result.pagination(),
    )


@router.post("")
@user_operation("An error occurred while creating a new user")
def create_user(
    payload: Any = Depends(get_payload),
    db: Session = Depends(security.get_db),
    hasher: PasswordHasher = Depends(security.get_password_hasher),
):
    """Создание пользователя со статусом Valido."""
    user = service.create_user(db, hasher, payload)
    if not user:
        return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, message="Error creating user")
    return envelope(status.HTTP_201_CREATED, message="User created successfully", user=serialize(user))


# user_id в путях — строка: нечисловой или слишком большой id даёт 404,
# как и любой отсутствующий в таблице (см. services.users.parse_user_id)
@router.get("/{user_id}")
@user_operation("An error occurred while retrieving the user")
def get_user(user_id: str, db: Session = Depends(security.get_db)):
    user = service.get_user(db, user_id)
    return JSONResponse(status_code=status.HTTP_200_OK, content=serialize(user))


@router.put("/{user_id}")
@user_operation("An error occurred while uploading the user")
def update_user(
    user_id: str,
    payload: Any = Depends(get_payload),
    db: Session = Depends(security.get_db),
    hasher: PasswordHasher = Depends(security.get_password_hasher),
):
    """Полное обновление: все поля обязательны, пароль перехешируется."""
    user = service.update_user(db, hasher, user_id, payload)
    return envelope(status.HTTP_200_OK, message="User uploaded successfully", User=serialize(user))


@router.patch("/{user_id}")
@user_operation("An error occurred while uploading the user")
def patch_user(
    user_id: str,
    payload: Any = Depends(get_payload),
    db: Session = Depends(security.get_db),
    hasher: PasswordHasher = Depends(security.get_password_hasher),
):
    """Частичное обновление только переданных полей."""
    user = service.patch_user(db, hasher, user_id, payload)
    return envelope(status.HTTP_200_OK, message="User uploaded successfully", User=serialize(user))


@router.api_route("/{user_id}/restrict", methods=["POST", "PATCH"])
@user_operation("An error occurred restricted user")
def restrict_user(user_id: str, db: Session = Depends(security.get_db)):
    service.restrict_user(db, user_id)
    return envelope(status.HTTP_200_OK, message="User restricted successfully")


@router.delete("/{user_id}")
@user_operation("An error occurred while deleting the user")
def delete_user(user_id: str, db: Session = Depends(security.get_db)):
    service.delete_user(db, user_id)
    return envelope(status.HTTP_200_OK, message="User deleted successfully")


@router.post("/{user_id}/password")
@user_operation("An error occurred while change the password")
def change_password(
    user_id: str,
    payload: Any = Depends(get_payload),
    db: Session = Depends(security.get_db),
    hasher: PasswordHasher = Depends(security.get_password_hasher),
):
    """Смена пароля по текущему паролю."""
    service.change_password(db, hasher, user_id, payload)
    return envelope(status.HTTP_200_OK, message="Password is valid!", correct=True)
