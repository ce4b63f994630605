#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ProtocolWall - точка входа
Запуск REST API стены протоколов через uvicorn

Версия: 2.0.0
"""

import argparse
import logging
import sys

from dashboard.app import run_dashboard
from dashboard.config import settings
from utils.logger import setup_logger

logger = logging.getLogger(__name__)

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Запуск ProtocolWall API')
    parser.add_argument('--host', default=settings.DASHBOARD_HOST, help='Host для запуска')
    parser.add_argument('--port', type=int, default=settings.DASHBOARD_PORT, help='Port для запуска')
    parser.add_argument('--reload', action='store_true', help='Автоперезагрузка')
    return parser.parse_args(argv)

def main(argv=None) -> int:
    """Главная функция запуска API"""
    args = parse_args(argv)
    setup_logger(settings.LOG_FILE, settings.LOG_LEVEL)

    try:
        run_dashboard(host=args.host, port=args.port, reload=args.reload or settings.DEBUG)
    except Exception as e:
        logger.error(f"💥 Фатальная ошибка: {e}")
        return 1
    return 0

# ===== ТОЧКА ВХОДА =====

if __name__ == "__main__":
    sys.exit(main())
