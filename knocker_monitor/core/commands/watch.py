import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...config.config import Config
from ..events import Event, EventKind
from ..monitor import KnockerMonitor
from ...utils.formatting import FormattingUtils
from ...utils.log_setup import setup_logging
from .status import render_status


def format_watch_line(event: Event, output_format: str = 'text') -> str:
    """Format one live event for the watch output."""
    if output_format == 'json':
        return json.dumps(event.to_dict(), default=str)
    return FormattingUtils.format_event(event)


async def watch_events(config: Config, output_format: str = 'text',
                       kinds: Optional[List[EventKind]] = None,
                       duration: Optional[float] = None) -> None:
    """
    Run the monitor and print events as they arrive.

    Args:
        config: Application configuration
        output_format: 'text' or 'json'
        kinds: Only print these event kinds (all when empty)
        duration: Stop after this many seconds; run until cancelled when None
    """
    monitor = KnockerMonitor(config)

    def on_event(event: Event):
        print(format_watch_line(event, output_format), flush=True)

    if kinds:
        for kind in kinds:
            monitor.subscribe(kind, on_event)
    else:
        monitor.subscribe_all(on_event)

    async with monitor:
        if output_format == 'text':
            print(render_status(monitor.get_state()), flush=True)
        else:
            print(json.dumps({'state': monitor.get_state().to_dict()}), flush=True)

        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


def run_watch(config_path: Optional[Path] = None, output_format: str = 'text',
              kinds: Optional[List[str]] = None, duration: Optional[float] = None,
              cli_options: Optional[Dict[str, Any]] = None) -> int:
    """
    Follow the Knocker journal and print events until interrupted.
    """
    try:
        config = Config.load(config_path)
        config.apply_cli_overrides(cli_options or {})

        log_level = os.environ.get('KNOCKER_MONITOR_LOG_LEVEL', config.logging.level)
        setup_logging(log_level, Path(config.logging.file) if config.logging.file else None)

        selected = [EventKind(kind) for kind in kinds] if kinds else None
        asyncio.run(watch_events(config, output_format, selected, duration))
        return 0

    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logging.error(f"Watch error: {e}")
        return 1
