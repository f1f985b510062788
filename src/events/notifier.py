# src/events/notifier.py
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List

from src.utils.logging import get_logger

logger = get_logger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], None]


class NotifierNotConnectedError(Exception):
    """연결되지 않은 알림 채널로 이벤트를 보내려고 할 때"""
    pass


class INotifier(ABC):
    """
    태스크/댓글 변경을 실시간으로 알리는 아웃바운드 채널.
    연결/해제 수명은 애플리케이션 조립 지점(create_app, serve)이 관리합니다.
    """

    @abstractmethod
    def connect(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        """이벤트를 발행합니다. 연결 전이면 NotifierNotConnectedError."""
        pass


class InProcessNotifier(INotifier):
    """같은 프로세스의 구독자 콜백으로 이벤트를 전달하는 구현."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._connected = False
        self._lock = threading.Lock()

    def connect(self) -> None:
        self._connected = True
        logger.info("Notifier connected")

    def close(self) -> None:
        with self._lock:
            self._subscribers.clear()
        self._connected = False
        logger.info("Notifier closed")

    @property
    def is_connected(self) -> bool:
        return self._connected

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """구독자를 등록하고, 구독 해제 함수를 반환합니다."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)
        return unsubscribe

    def emit(self, event: str, payload: Dict[str, Any]) -> None:
        if not self._connected:
            raise NotifierNotConnectedError(f"Cannot emit '{event}': notifier is not connected.")
        with self._lock:
            subscribers = list(self._subscribers)
        logger.debug("emit %s to %d subscriber(s)", event, len(subscribers))
        for callback in subscribers:
            try:
                callback(event, payload)
            except Exception:
                # 구독자 오류가 요청 처리까지 실패시키지 않도록 기록만 합니다.
                logger.exception("Subscriber failed while handling '%s'", event)
