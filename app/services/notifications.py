"""
Service: notifications.py
- Canal de notifications "toast" : les erreurs d'écriture asynchrones et les annonces admin
  y sont publiées au lieu de bloquer l'action qui les a déclenchées.
- Tampon borné en mémoire (deque) + diffusion WS vers les consoles admin connectées.
"""
from __future__ import annotations

import logging
from collections import deque
from threading import RLock
from typing import Deque, List, Optional

from app.config.settings import settings
from app.models.event import Notice, NoticeLevel
from app.services.ws_manager import ws_broadcast_admin_safe

logger = logging.getLogger(__name__)


class NotificationCenter:
    def __init__(self, maxlen: int = 200) -> None:
        self._lock = RLock()
        self._notices: Deque[Notice] = deque(maxlen=maxlen)

    def notify(
        self,
        title: str,
        description: str = "",
        level: NoticeLevel = "info",
        game_id: Optional[str] = None,
    ) -> Notice:
        notice = Notice(level=level, title=title, description=description, game_id=game_id)
        with self._lock:
            self._notices.append(notice)
        if level == "destructive":
            logger.warning("%s: %s", title, description, extra={"game_id": game_id})
        ws_broadcast_admin_safe(game_id, "toast", notice.model_dump())
        return notice

    def recent(self, game_id: Optional[str] = None, limit: int = 50) -> List[Notice]:
        """Dernières notifications (filtrées par partie si `game_id`), plus récentes en dernier."""
        with self._lock:
            items = [n for n in self._notices if game_id is None or n.game_id in (None, game_id)]
        return items[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._notices.clear()


NOTICES = NotificationCenter(maxlen=settings.NOTICE_BUFFER_SIZE)
