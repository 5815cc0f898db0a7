# src/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений, автоматический retry, транзакции и трансляция ошибок драйвера.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncGenerator, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool, Record

from src.common.constants import TypeMsg
from src.common.logger import log_error, log_info, log_warning
from src.core.exceptions import PersistenceFailure, ValidationError

T = TypeVar("T")

# Произвольный ключ advisory-лока для миграции
SCHEMA_LOCK_KEY = 815_2024

CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    ConnectionRefusedError,
    OSError,
)


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Декоратор для автоматического ретрая при ошибках подключения.
    После последней неудачной попытки поднимает PersistenceFailure.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды), растёт линейно
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: BaseException | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except CONNECTION_ERRORS as e:
                    last_error = e
                    if attempt < max_attempts:
                        await log_info(
                            f"Ошибка подключения к БД (попытка {attempt}/{max_attempts}): {e}",
                            type_msg=TypeMsg.WARNING,
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        await log_error(f"Не удалось выполнить запрос к БД после {max_attempts} попыток: {e}")

            raise PersistenceFailure(
                "База данных недоступна",
                details={"reason": str(last_error), "attempts": max_attempts},
            ) from last_error

        return wrapper  # type: ignore

    return decorator


@asynccontextmanager
async def translate_db_errors(operation: str) -> AsyncGenerator[None, None]:
    """
    Переводит ошибки asyncpg в доменные исключения.

    ForeignKeyViolation означает ссылку на несуществующую сущность
    и превращается в ValidationError; остальные ошибки драйвера в PersistenceFailure.
    """
    try:
        yield
    except asyncpg.ForeignKeyViolationError as e:
        raise ValidationError(
            f"{operation}: ссылка на несуществующую запись",
            details={"constraint": getattr(e, "constraint_name", None)},
        ) from e
    except asyncpg.PostgresError as e:
        await log_error(f"{operation}: ошибка PostgreSQL: {e}")
        raise PersistenceFailure(f"{operation}: ошибка сохранения", details={"reason": str(e)}) from e


def rows_affected(status: str) -> int:
    """Количество строк из статуса команды asyncpg ('DELETE 42')."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class DatabaseManager:
    """
    Менеджер подключений к PostgreSQL.
    Живёт столько же, сколько процесс-компонент: создаётся в lifespan приложения.
    """

    def __init__(self, retry_attempts: int = 3, retry_delay: float = 1.0) -> None:
        self._pool: Pool | None = None
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise RuntimeError("Пул соединений не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @retry_on_connection_error(max_attempts=3, delay=1.0)
    async def connect(
        self,
        dsn: str | None = None,
        min_size: int = 5,
        max_size: int = 20,
        command_timeout: int = 60,
    ) -> None:
        """
        Создаёт пул соединений к PostgreSQL.

        Args:
            dsn: DSN строка подключения (если None, берётся из конфига)
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            command_timeout: Таймаут команд (секунды)
        """
        if self._pool is not None:
            return

        if dsn is None:
            from src.config import settings
            dsn = settings.database.dsn
            min_size = settings.database.DB_MIN_POOL_SIZE
            max_size = settings.database.DB_MAX_POOL_SIZE
            command_timeout = settings.database.DB_COMMAND_TIMEOUT

        await log_info("Подключение к PostgreSQL...", type_msg=TypeMsg.INFO)

        self._pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
        )

        await log_info("Подключение к PostgreSQL установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Соединение с PostgreSQL закрыто", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для получения соединения из пула.

        Example:
            async with db.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM shipments")
        """
        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для транзакции.
        Commit при успехе, rollback при любом исключении.

        Example:
            async with db.transaction() as conn:
                await conn.execute("UPDATE shipments ...")
                await conn.execute("INSERT INTO shipment_events ...")
        """
        async with self.pool.acquire() as connection:
            async with connection.transaction():
                yield connection

    async def _call(self, method: str, query: str, *args: Any, **kwargs: Any) -> Any:
        """Выполняет метод соединения с ретраем по настройкам менеджера."""
        @retry_on_connection_error(max_attempts=self.retry_attempts, delay=self.retry_delay)
        async def run() -> Any:
            async with self.acquire() as conn:
                return await getattr(conn, method)(query, *args, **kwargs)

        return await run()

    async def execute(self, query: str, *args: Any) -> str:
        """Выполняет SQL без возврата данных; возвращает статус команды."""
        return await self._call("execute", query, *args)

    async def fetch(self, query: str, *args: Any) -> list[Record]:
        """Выполняет SQL и возвращает все строки."""
        return await self._call("fetch", query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Record | None:
        """Выполняет SQL и возвращает одну строку или None."""
        return await self._call("fetchrow", query, *args)

    async def fetchval(self, query: str, *args: Any, column: int = 0) -> Any:
        """Выполняет SQL и возвращает одно значение."""
        return await self._call("fetchval", query, *args, column=column)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к БД.

        Returns:
            True если подключение работает
        """
        try:
            result = await self.fetchval("SELECT 1")
            return result == 1
        except Exception as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False


async def init_db(db: DatabaseManager | None = None) -> DatabaseManager:
    """
    Создаёт и подключает DatabaseManager по настройкам из конфигурации.
    При DB_APPLY_SCHEMA применяет migrations/init.sql.
    """
    from src.config import settings

    if db is None:
        db = DatabaseManager(
            retry_attempts=settings.database.DB_RETRY_ATTEMPTS,
            retry_delay=settings.database.DB_RETRY_DELAY,
        )

    await db.connect(
        dsn=settings.database.dsn,
        min_size=settings.database.DB_MIN_POOL_SIZE,
        max_size=settings.database.DB_MAX_POOL_SIZE,
        command_timeout=settings.database.DB_COMMAND_TIMEOUT,
    )
    await log_info(
        f"PostgreSQL подключён: {settings.database.DB_HOST}:{settings.database.DB_PORT}/{settings.database.DB_NAME}",
        type_msg=TypeMsg.INFO,
    )

    if settings.database.DB_APPLY_SCHEMA:
        await apply_schema(db)

    return db


async def apply_schema(db: DatabaseManager) -> None:
    """Применяет migrations/init.sql под advisory-локом (скрипт идемпотентен)."""
    from src.config.loader import get_project_root

    schema_path = get_project_root() / "migrations" / "init.sql"
    if not schema_path.exists():
        await log_error(f"Файл схемы БД не найден: {schema_path}")
        return

    schema_sql = schema_path.read_text(encoding="utf-8")

    await log_info("Применение схемы БД...", type_msg=TypeMsg.INFO)
    try:
        async with db.transaction() as conn:
            await conn.execute("SELECT pg_advisory_xact_lock($1)", SCHEMA_LOCK_KEY)
            await conn.execute(schema_sql)
    except (asyncpg.DeadlockDetectedError, asyncpg.DuplicateObjectError) as e:
        # Гонка нескольких процессов при старте: схему уже применил соседний процесс
        await log_warning(f"Игнорируем ошибку инициализации схемы: {e}")
        return

    await log_info("Схема БД успешно применена", type_msg=TypeMsg.INFO)


async def close_db(db: DatabaseManager | None) -> None:
    """Закрывает подключение к базе данных."""
    if db is None:
        return
    await db.disconnect()
    await log_info("PostgreSQL отключён", type_msg=TypeMsg.INFO)
