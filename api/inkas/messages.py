import asyncio
from typing import Any, Awaitable, Callable, List

import requests

from inkas.config import TG_BOT_TOKEN, TG_CHUNK_DELAY, TG_MESSAGE_MAX_LENGTH, logger

# room for the " (12/34)" suffix added to multi-part messages
_CHUNK_SUFFIX_RESERVE = 12


class NotificationError(Exception):
    pass


def split_message_into_chunks(message: str, max_length: int = TG_MESSAGE_MAX_LENGTH) -> List[str]:
    """Split by lines so that no line is broken unless it alone exceeds max_length."""
    chunks: List[str] = []
    current = ""
    for line in (message or "").split("\n"):
        if len(current) + len(line) + 1 > max_length:
            if current:
                chunks.append(current.strip())
                current = ""
            if len(line) > max_length:
                for i in range(0, len(line), max_length):
                    chunks.append(line[i:i + max_length])
            else:
                current = line
        else:
            current = f"{current}\n{line}" if current else line
    if current:
        chunks.append(current.strip())
    return [c for c in chunks if c]


class TelegramSink:
    """Sends text through the Telegram Bot API."""

    def __init__(self, token: str = TG_BOT_TOKEN, timeout: float = 10):
        self.token = token
        self.timeout = timeout

    def ready(self) -> bool:
        return bool(self.token)

    def _send_sync(self, chat_id: str, text_msg: str) -> None:
        if not self.token:
            raise NotificationError("missing bot token")
        try:
            r = requests.post(
                f"https://api.telegram.org/bot{self.token}/sendMessage",
                json={"chat_id": str(chat_id), "text": str(text_msg), "disable_web_page_preview": True},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotificationError(str(e)) from e
        if not r.ok:
            logger.warning("tg_send failed chat_id=%s status=%s text=%s", str(chat_id), r.status_code, (r.text or "")[:200])
            raise NotificationError(f"telegram status {r.status_code}")
        logger.info("tg_send ok chat_id=%s", str(chat_id))

    async def send(self, chat_id: str, text_msg: str) -> None:
        await asyncio.to_thread(self._send_sync, chat_id, text_msg)


async def send_chunked_message(
    sink,
    chat_id: str,
    message: str,
    *,
    max_length: int = TG_MESSAGE_MAX_LENGTH,
    delay: float = TG_CHUNK_DELAY,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> int:
    """Send a long text as an ordered series of messages. Returns the number of chunks."""
    limit = max_length
    if len(message or "") > max_length:
        limit = max(1, max_length - _CHUNK_SUFFIX_RESERVE)
    chunks = split_message_into_chunks(message, limit)

    for i, chunk in enumerate(chunks):
        info = f" ({i + 1}/{len(chunks)})" if len(chunks) > 1 else ""
        try:
            await sink.send(chat_id, chunk + info)
        except Exception:
            logger.error("message chunk %s/%s to chat %s failed", i + 1, len(chunks), chat_id)
            raise
        if i < len(chunks) - 1:
            await sleep(delay)
    return len(chunks)
