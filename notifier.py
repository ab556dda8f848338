# notifier.py
# Каналы уведомлений в реальном времени: по одному каналу на анкету.
# Экземпляр создается в create_app и передается явно, глобального реестра нет.
# Транспорт (websocket, SSE и т.п.) подключается через callback при join.

import logging
import threading
from collections import defaultdict

logger = logging.getLogger(__name__)

QUESTIONNAIRE_UPDATED = 'questionnaireUpdated'
RESPONSE_SUBMITTED = 'responseSubmitted'
EVENTS = (QUESTIONNAIRE_UPDATED, RESPONSE_SUBMITTED)


def channel_for(questionnaire_id):
    return f'questionnaire:{questionnaire_id}'


class ChannelNotifier:
    def __init__(self):
        # {канал: {connection_id: callback}}
        self._channels = defaultdict(dict)
        self._lock = threading.Lock()

    def join(self, questionnaire_id, connection_id, callback):
        """Подписка идемпотентна: повторный join заменяет callback."""
        with self._lock:
            self._channels[channel_for(questionnaire_id)][connection_id] = callback

    def leave(self, questionnaire_id, connection_id):
        with self._lock:
            channel = channel_for(questionnaire_id)
            members = self._channels.get(channel)
            if members is None:
                return
            members.pop(connection_id, None)
            if not members:
                del self._channels[channel]

    def disconnect(self, connection_id):
        """Соединение закрылось - убираем его из всех каналов."""
        with self._lock:
            for channel in list(self._channels):
                self._channels[channel].pop(connection_id, None)
                if not self._channels[channel]:
                    del self._channels[channel]

    def subscribers(self, questionnaire_id):
        with self._lock:
            return set(self._channels.get(channel_for(questionnaire_id), {}))

    def publish(self, channel, event):
        if event not in EVENTS:
            raise ValueError(f'Unknown event: {event!r}')

        with self._lock:
            members = list(self._channels.get(channel, {}).items())

        dead_connections = []
        for connection_id, callback in members:
            try:
                callback(channel, event)
            except Exception:
                logger.exception('Failed to deliver %s to %s on %s', event, connection_id, channel)
                dead_connections.append(connection_id)

        for connection_id in dead_connections:
            self.disconnect(connection_id)

        logger.debug('Published %s to %s (%d subscribers)', event, channel, len(members) - len(dead_connections))
        return len(members) - len(dead_connections)

    def notify_questionnaire_updated(self, questionnaire_id):
        return self.publish(channel_for(questionnaire_id), QUESTIONNAIRE_UPDATED)

    def notify_response_submitted(self, questionnaire_id):
        return self.publish(channel_for(questionnaire_id), RESPONSE_SUBMITTED)
