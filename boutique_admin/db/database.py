"""
Конфигурация базы данных.

Содержит обертку над движком SQLAlchemy с явным жизненным циклом
(открывается при старте приложения, закрывается при остановке)
и dependency для получения сессии.
"""

import logging
from typing import Any, Generator, Optional

from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


class Database:
    """
    Доступ к базе данных.

    Создается явно при сборке приложения и передается в обработчики через
    app.state, вместо глобального клиента на уровне модуля.

    Attributes:
        url: URL подключения
        engine: Движок SQLAlchemy (None до вызова connect)
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.url = url
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def connect(self) -> None:
        """Создает движок и фабрику сессий. Повторный вызов ничего не делает."""
        if self.engine is not None:
            return

        kwargs = dict(self.engine_kwargs)
        if not self.url.startswith("sqlite"):
            kwargs.setdefault("pool_pre_ping", True)  # Проверка соединения перед использованием

        self.engine = create_engine(self.url, echo=self.echo, **kwargs)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )
        logger.info(f"Database engine created for {self.engine.url.render_as_string(hide_password=True)}")

    def dispose(self) -> None:
        """Закрывает все соединения пула."""
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info("Database engine disposed")

    def create_all(self) -> None:
        """Создает все таблицы (используется init_db.py и тестами)."""
        from boutique_admin.db.models import Base

        self.connect()
        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency для получения сессии базы данных.

    Yields:
        Session: Сессия SQLAlchemy

    Note:
        Автоматически закрывает сессию после использования
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
