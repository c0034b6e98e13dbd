"""Bounded per-user chat history kept in process memory.

Gives the model short-term context across calls. Nothing is persisted; a
restart forgets everything.
"""

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 20
# Shared key for planning calls that are not tied to a learner
SYSTEM_USER = "system"


class ConversationMemory:
    def __init__(self, max_size: int = DEFAULT_MAX_SIZE):
        self.max_size = max_size
        self._memory: dict[str, list[dict]] = {}

    @staticmethod
    def _key(user_id) -> str:
        # Route params arrive as str, request bodies as int
        return str(user_id)

    def history(self, user_id) -> list[dict]:
        """Role/content messages ready to splice into a chat request."""
        return [
            {"role": m["role"], "content": m["content"]}
            for m in self._memory.get(self._key(user_id), [])
        ]

    def append(self, user_id, prompt: str, reply: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        entries = self._memory.setdefault(self._key(user_id), [])
        entries.append({"role": "user", "content": prompt, "timestamp": now})
        entries.append({"role": "assistant", "content": reply, "timestamp": now})
        if len(entries) > self.max_size:
            del entries[: len(entries) - self.max_size]

    def clear_user(self, user_id) -> None:
        self._memory.pop(self._key(user_id), None)
        logger.info("Cleared memory for user %s", user_id)

    def clear_all(self) -> None:
        self._memory.clear()
        logger.info("Cleared all user memory")

    def size(self, user_id) -> int:
        return len(self._memory.get(self._key(user_id), []))

    def stats(self) -> dict:
        user_stats = []
        total = 0
        for user_id, entries in self._memory.items():
            user_stats.append({
                "userId": user_id,
                "exchanges": len(entries),
                "lastExchange": entries[-1]["timestamp"] if entries else "unknown",
            })
            total += len(entries)
        return {"totalUsers": len(self._memory), "totalExchanges": total, "userStats": user_stats}

    def trim(self, user_id, max_size: int | None = None) -> None:
        key = self._key(user_id)
        entries = self._memory.get(key, [])
        limit = max_size or self.max_size
        if len(entries) > limit:
            self._memory[key] = entries[-limit:]
            logger.info("Trimmed memory for user %s from %d to %d entries", user_id, len(entries), limit)
