# users_api/core/security.py
# Хеширование паролей и зависимости FastAPI для доступа к БД.
from passlib.context import CryptContext
from users_api.core.config import settings
from users_api.db.session import SessionLocal

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


class PasswordHasher:
    """
    Хешер паролей, который передаётся в операции сервиса явно,
    вместо обращения к глобальному контексту.
    """

    def __init__(self, context: CryptContext = pwd_context):
        self._context = context

    def hash(self, plain: str) -> str:
        return self._context.hash(plain)

    def verify(self, plain: str | None, digest: str | None) -> bool:
        # Пустой пароль или отсутствующий хеш никогда не совпадают
        if not plain or not digest:
            return False
        try:
            return self._context.verify(plain, digest)
        except ValueError:
            # Хеш в БД не распознан passlib
            return False


password_hasher = PasswordHasher()


def get_password_hasher() -> PasswordHasher:
    """Зависимость для получения хешера паролей в эндпоинтах."""
    return password_hasher


def get_db():
    """Зависимость для получения сессии БД в эндпоинтах."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
