import abc
from datetime import datetime
from typing import List, Tuple

from sqlalchemy import delete, select

from covid_result.adapters.orm import to_notify, viewed_result
from covid_result.domain import model


class AbstractNotificationRepository(abc.ABC):
    def add(self, request: model.NotificationRequest) -> None:
        self._add(request)

    def purge_expired(self, before: datetime) -> int:
        return self._purge_expired(before)

    def list_active(self, since: datetime) -> List[Tuple[str, str, str]]:
        """Distinct (specimen_id, notification_telephone, preferred_language) requested after since."""
        return self._list_active(since)

    @abc.abstractmethod
    def _add(self, request: model.NotificationRequest):
        raise NotImplementedError

    @abc.abstractmethod
    def _purge_expired(self, before: datetime) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def _list_active(self, since: datetime) -> List[Tuple[str, str, str]]:
        raise NotImplementedError


class AbstractViewedResultRepository(abc.ABC):
    def add(self, viewed: model.ViewedResult) -> None:
        self._add(viewed)

    def purge_expired(self, before: datetime) -> int:
        return self._purge_expired(before)

    def list_recent(self, since: datetime) -> List[Tuple[str, datetime]]:
        return self._list_recent(since)

    @abc.abstractmethod
    def _add(self, viewed: model.ViewedResult):
        raise NotImplementedError

    @abc.abstractmethod
    def _purge_expired(self, before: datetime) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    def _list_recent(self, since: datetime) -> List[Tuple[str, datetime]]:
        raise NotImplementedError


class SqlAlchemyNotificationRepository(AbstractNotificationRepository):
    def __init__(self, session):
        self.session = session

    def _add(self, request):
        self.session.add(request)

    def _purge_expired(self, before):
        result = self.session.execute(
            delete(to_notify).where(to_notify.c.request_time < before)
        )
        return result.rowcount

    def _list_active(self, since):
        rows = self.session.execute(
            select(
                to_notify.c.specimen_id,
                to_notify.c.notification_telephone,
                to_notify.c.preferred_language,
            )
            .distinct()
            .where(to_notify.c.request_time > since)
        )
        return [tuple(row) for row in rows]


class SqlAlchemyViewedResultRepository(AbstractViewedResultRepository):
    def __init__(self, session):
        self.session = session

    def _add(self, viewed):
        self.session.add(viewed)

    def _purge_expired(self, before):
        result = self.session.execute(
            delete(viewed_result).where(viewed_result.c.viewed_time < before)
        )
        return result.rowcount

    def _list_recent(self, since):
        rows = self.session.execute(
            select(viewed_result.c.specimen_id, viewed_result.c.viewed_time)
            .where(viewed_result.c.viewed_time > since)
            .order_by(viewed_result.c.viewed_time)
        )
        return [tuple(row) for row in rows]
