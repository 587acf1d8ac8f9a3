# agency/services/realtime_service.py
import json
from typing import Callable

import redis
from redis.exceptions import RedisError

from agency.utils.settings import REDIS_URL
from agency.utils.logging import get_logger

logger = get_logger(__name__)


def project_channel(project_id: str, table: str) -> str:
    return f"project:{project_id}:{table}"


class ProjectChangeBus:
    """
    Powiadomienia o zmianach w tabelach projektu (redis pub/sub).
    Subskrybent nie dostaje patchy, tylko sygnal zeby przeladowac liste.
    Czyta GET /projects/{id}/changes/{table} (ProjectService.wait_for_change).
    """

    def __init__(self, client: redis.Redis):
        self.redis = client

    @classmethod
    def from_url(cls, url: str | None = None) -> "ProjectChangeBus":
        return cls(redis.Redis.from_url(url or REDIS_URL, decode_responses=True))

    def publish(self, project_id: str, table: str, event: str, row_id: str | None = None) -> None:
        message = json.dumps(
            {"table": table, "event": event, "project_id": project_id, "row_id": row_id}
        )
        try:
            self.redis.publish(project_channel(project_id, table), message)
        except RedisError as e:
            # zapis juz poszedl, brak powiadomienia nie cofa operacji
            logger.warning(f"Nie udalo sie opublikowac zmiany {table}/{event} dla projektu {project_id}: {e}")

    def subscribe(self, project_id: str, table: str, reload: Callable[[], None]) -> "ProjectSubscription":
        return ProjectSubscription(self.redis, project_id, table, reload)


class ProjectSubscription:
    def __init__(self, client: redis.Redis, project_id: str, table: str, reload: Callable[[], None]):
        self.channel = project_channel(project_id, table)
        self.reload = reload
        self.pubsub = client.pubsub(ignore_subscribe_messages=True)
        self.pubsub.subscribe(self.channel)

    def poll(self, timeout: float = 1.0) -> bool:
        """Jedna wiadomosc -> pelny reload. Zwraca True gdy byl reload."""
        message = self.pubsub.get_message(timeout=timeout)
        if not message or message.get("type") != "message":
            return False
        logger.info(f"Zmiana na kanale {self.channel}, przeladowanie")
        self.reload()
        return True

    def close(self):
        self.pubsub.unsubscribe(self.channel)
        self.pubsub.close()
