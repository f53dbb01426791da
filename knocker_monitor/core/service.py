"""
Service management for knocker.service and the knocker CLI.
"""

import asyncio
import logging
import shutil
from typing import List, Tuple

from ..config.settings import Settings


class KnockerService:
    """
    Thin wrapper around ``systemctl --user`` and ``knocker``.

    Every operation reports success as a boolean and never raises.
    """

    def __init__(self, config=None, unit: str = None, user_mode: bool = None, knocker_command: str = None):
        """
        Initialize the service wrapper.

        Args:
            config: Application configuration (optional)
            unit: systemd unit, overriding the configuration
            user_mode: Use the user service manager, overriding the configuration
            knocker_command: knocker executable, overriding the configuration
        """
        service_config = getattr(config, 'service', None)
        self.unit = unit or getattr(service_config, 'unit', Settings.DEFAULT_UNIT)
        self.user_mode = user_mode if user_mode is not None else getattr(service_config, 'user_mode', True)
        self.knocker_command = knocker_command or getattr(service_config, 'knocker_command', Settings.KNOCKER_COMMAND)
        self.logger = logging.getLogger(__name__)

    def _systemctl(self, *args: str) -> List[str]:
        argv = [Settings.SYSTEMCTL_COMMAND]
        if self.user_mode:
            argv.append('--user')
        argv.extend(args)
        return argv

    async def is_installed(self) -> bool:
        """Check if the knocker CLI is on PATH."""
        return shutil.which(self.knocker_command) is not None

    async def is_active(self) -> bool:
        """Check if the service is active."""
        success, stdout, _ = await self._exec(self._systemctl('is-active', self.unit))
        return success and stdout.strip() == 'active'

    async def start(self) -> bool:
        """Start the service."""
        success, _, stderr = await self._exec(self._systemctl('start', self.unit))
        if not success:
            self.logger.error(f"Failed to start {self.unit}: {stderr.strip()}")
        return success

    async def stop(self) -> bool:
        """Stop the service."""
        success, _, stderr = await self._exec(self._systemctl('stop', self.unit))
        if not success:
            self.logger.error(f"Failed to stop {self.unit}: {stderr.strip()}")
        return success

    async def trigger_knock(self) -> bool:
        """Trigger a manual knock."""
        success, _, stderr = await self._exec([self.knocker_command, 'knock'])
        if not success:
            self.logger.error(f"Failed to trigger knock: {stderr.strip()}")
        return success

    async def _exec(self, argv: List[str]) -> Tuple[bool, str, str]:
        """
        Run a command and collect its output.

        Args:
            argv: Command and arguments

        Returns:
            Tuple of (success, stdout, stderr)
        """
        self.logger.debug(f"Running: {' '.join(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await process.communicate()
        except OSError as e:
            self.logger.error(f"Could not run {argv[0]}: {e}")
            return False, '', str(e)

        return (process.returncode == 0,
                stdout.decode('utf-8', errors='replace'),
                stderr.decode('utf-8', errors='replace'))
