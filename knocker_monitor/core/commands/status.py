import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ...config.config import Config
from ..backlog import BacklogLoader
from ..events import StateSnapshot
from ..journal import create_source
from ..state_reducer import fold
from ...parsers.entry_parser import EntryParser
from ...utils.formatting import FormattingUtils
from ...utils.log_setup import setup_logging


async def collect_status(config: Config) -> StateSnapshot:
    """
    Build the current snapshot from the journal backlog alone.
    """
    loader = BacklogLoader(create_source(config), config.journal.unit, EntryParser(config))
    events = await loader.load(config.journal.backlog_size)
    return fold(events)


def render_status(state: StateSnapshot, output_format: str = 'text') -> str:
    """
    Render a snapshot in the requested output format.
    """
    if output_format == 'json':
        return FormattingUtils.format_json(state.to_dict())
    if output_format == 'yaml':
        return yaml.dump(state.to_dict(), default_flow_style=False, sort_keys=False).rstrip()

    lines = ["Knocker status"]
    for label, text in FormattingUtils.snapshot_lines(state).items():
        lines.append(f"  {label + ':':<11}{text}")
    return "\n".join(lines)


def run_status(config_path: Optional[Path] = None, output_format: str = 'text',
               output_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None) -> int:
    """
    Print the Knocker state derived from the journal backlog.
    """
    try:
        config = Config.load(config_path)
        config.apply_cli_overrides(cli_options or {})

        log_level = os.environ.get('KNOCKER_MONITOR_LOG_LEVEL', config.logging.level)
        setup_logging(log_level, Path(config.logging.file) if config.logging.file else None)

        state = asyncio.run(collect_status(config))
        output = render_status(state, output_format)

        if output_path:
            with open(output_path, 'w') as f:
                f.write(output + "\n")
        else:
            print(output)

        return 0

    except Exception as e:
        logging.error(f"Status error: {e}")
        return 1
