import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from ...config.config import Config
from ..service import KnockerService
from ...utils.log_setup import setup_logging


SERVICE_ACTIONS = ('start', 'stop', 'status', 'knock')


async def _service_status(service: KnockerService) -> bool:
    installed = await service.is_installed()
    active = await service.is_active()
    print(f"knocker CLI: {'installed' if installed else 'not installed'}")
    print(f"{service.unit}: {'active' if active else 'inactive'}")
    return active


def run_service(action: str, config_path: Optional[Path] = None, unit: Optional[str] = None) -> int:
    """
    Control knocker.service.

    Exit code 0 on success; for 'status', 0 only when the service is active.
    """
    try:
        config = Config.load(config_path)
        config.apply_cli_overrides({'unit': unit})

        log_level = os.environ.get('KNOCKER_MONITOR_LOG_LEVEL', config.logging.level)
        setup_logging(log_level, Path(config.logging.file) if config.logging.file else None)

        service = KnockerService(config)

        if action == 'status':
            return 0 if asyncio.run(_service_status(service)) else 3

        if action == 'start':
            ok = asyncio.run(service.start())
            message = f"Started {service.unit}" if ok else f"Failed to start {service.unit}"
        elif action == 'stop':
            ok = asyncio.run(service.stop())
            message = f"Stopped {service.unit}" if ok else f"Failed to stop {service.unit}"
        elif action == 'knock':
            ok = asyncio.run(service.trigger_knock())
            message = "Knock triggered successfully" if ok else "Failed to trigger knock"
        else:
            print(f"Unknown service action: {action}", file=sys.stderr)
            return 2

        print(message, file=sys.stdout if ok else sys.stderr)
        return 0 if ok else 1

    except Exception as e:
        logging.error(f"Service command error: {e}")
        return 1
