#!/usr/bin/env python3
"""Delivers alert text to a Telegram chat; reports failure instead of raising."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError

from constants import C_GREEN, C_RESET, DEFAULT_TELEGRAM_TIMEOUT

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Thin wrapper around ``telegram.Bot.send_message`` with a dry-run mode."""

    def __init__(
        self,
        token: Optional[str],
        chat_id: Optional[str],
        *,
        dry_run: bool = False,
        timeout: float = DEFAULT_TELEGRAM_TIMEOUT,
        bot: Optional[Bot] = None,
    ) -> None:
        if not dry_run and not (token and chat_id):
            raise ValueError("Telegram token and chat id are required unless running in dry-run mode.")
        self.chat_id = chat_id
        self.dry_run = dry_run
        self.timeout = timeout
        self._bot = bot if bot is not None else (Bot(token) if token and not dry_run else None)
        self._initialized = bot is not None

    async def send(self, text: str) -> bool:
        """Returns True once Telegram accepted the message, False on any delivery failure."""
        if self.dry_run:
            print(f"{C_GREEN}[DRY-RUN]{C_RESET} {text}")
            return True

        try:
            if not self._initialized:
                await self._bot.initialize()
                self._initialized = True
            await self._bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
                read_timeout=self.timeout,
                write_timeout=self.timeout,
                connect_timeout=self.timeout,
            )
        except (TelegramError, asyncio.TimeoutError) as exc:
            logger.error("Telegram delivery failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        if self._bot is not None and self._initialized:
            try:
                await self._bot.shutdown()
            except TelegramError as exc:
                logger.warning("Telegram shutdown failed: %s", exc)
            self._initialized = False
