#!/usr/bin/env python3
"""
Точка входа Referent: HTTP сервер с разбором статей и генерацией
"""

import asyncio
import logging
import signal
import sys

from config import load_config
from utils.logging_config import setup_logging
from web.server import ReferentServer

logger = logging.getLogger(__name__)

# Глобальная переменная для обработчика сигналов
_server = None


def signal_handler(signum, frame):
    """Обработчик сигналов для корректного завершения"""
    logger.info(f"Получен сигнал {signum}, начинается завершение...")
    if _server:
        _server.shutdown_event.set()


async def main():
    global _server

    config = load_config()
    setup_logging(config)

    logger.info("=" * 60)
    logger.info("Запуск Referent")
    logger.info("=" * 60)

    _server = ReferentServer(config)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    await _server.run()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Прервано пользователем")
    except ValueError as e:
        # ошибки валидации конфигурации
        logger.error(f"Критическая ошибка: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
