# agenda/core/calendar/base.py
"""
Abstract base for event stores.
All methods are asynchronous.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .schemas import Event, EventIn


class EventStoreError(Exception):
    """Хранилище недоступно или отклонило запрос."""


class BaseEventStore(ABC):
    """
    Асинхронный интерфейс хранилища событий.

    Реализация обязана изолировать данные по ``user_id`` и возвращать
    выборки по окну строго по возрастанию ``start_time``.
    """

    # Имя хранилища (например, 'sql', 'memory')
    name: str

    @abstractmethod
    async def list_events(self, user_id: str, start_dt: datetime, end_dt: datetime) -> List[Event]:
        """
        Возвращает базовые записи пользователя, у которых начало лежит в окне.

        Args:
            user_id (str): ID пользователя.
            start_dt (datetime): Начало окна (UTC, включительно).
            end_dt (datetime): Конец окна (UTC, включительно).

        Returns:
            List[Event]: Записи по возрастанию ``start_time`` (при равенстве - по id).

        Raises:
            EventStoreError: При ошибке хранилища.
        """
        ...

    @abstractmethod
    async def get_event(self, user_id: str, event_id: str) -> Optional[Event]:
        ...

    @abstractmethod
    async def search_events(self, user_id: str, query: str, limit: int = 5) -> List[Event]:
        """
        Поиск базовых записей пользователя по подстроке заголовка (без учёта регистра).

        Returns:
            List[Event]: Не больше ``limit`` записей по возрастанию ``start_time``.
        """
        ...

    @abstractmethod
    async def add_event(self, user_id: str, data: EventIn) -> Event:
        """
        Создаёт новую базовую запись и возвращает её с присвоенным ID.

        Raises:
            EventStoreError: При ошибке хранилища.
        """
        ...

    @abstractmethod
    async def update_event(self, user_id: str, event_id: str, data: EventIn) -> Optional[Event]:
        """
        Полностью перезаписывает поля записи.

        Returns:
            Optional[Event]: Обновлённая запись или None, если такой нет у пользователя.
        """
        ...

    @abstractmethod
    async def delete_event(self, user_id: str, event_id: str) -> bool:
        """
        Удаляет запись по ID.

        Returns:
            bool: True, если запись была найдена и удалена.
        """
        ...


__all__ = ["EventStoreError", "BaseEventStore"]
