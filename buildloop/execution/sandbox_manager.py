"""ProjectSandboxManager: maps projects to their live sandbox.

Decides reuse vs. recreate, resyncs the last file snapshot into fresh
sandboxes, persists the sandbox reference and its expiry, and forgets
references that are past expiry. Lives on the Worker.

Reads and writes of a project's sandbox reference are not atomic; callers
must serialize runs per project.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone

from ..storage.history import HistoryStore
from ..storage.models import utcnow
from .environment import EnvironmentProvider, ExecutionEnvironment
from .types import SandboxInfo

logger = logging.getLogger(__name__)

# Default cleanup sweep interval: 10 minutes.
DEFAULT_SWEEP_INTERVAL_S = 10 * 60

# Default sandbox lifetime, matching E2B's own idle timeout: 5 minutes.
DEFAULT_SANDBOX_TIMEOUT_S = 5 * 60

DEFAULT_TEMPLATE = "mragent-nextjs-test-2"

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*(m|h|d)$")


def parse_duration(s: str) -> float:
    """Parse a human-readable duration string to seconds.

    Supports: ``'5m'``, ``'1h'``, ``'24h'``, ``'3d'``.

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the format is invalid.
    """
    match = _DURATION_RE.match(s.strip())
    if not match:
        raise ValueError(f'Invalid duration: "{s}". Expected format: "5m", "1h", "3d", etc.')
    value = float(match.group(1))
    unit = match.group(2)
    if unit == "m":
        return value * 60
    elif unit == "h":
        return value * 3600
    elif unit == "d":
        return value * 86400
    raise ValueError(f'Unknown duration unit: "{unit}"')


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def is_active_sandbox(
    sandbox_id: str | None, expires_at: datetime | None, now: datetime | None = None
) -> bool:
    """Optimistic liveness estimate from the stored reference alone.

    True iff an id is stored and ``now`` is strictly before the stored
    expiry. Never contacts the sandbox.
    """
    if not sandbox_id or expires_at is None:
        return False
    current = _naive_utc(now) if now is not None else utcnow()
    return current < _naive_utc(expires_at)


async def sync_files_to_sandbox(sandbox: ExecutionEnvironment, files: dict[str, str]) -> None:
    """Rewrite every file of a snapshot into a sandbox, in snapshot order.

    Errors are logged and re-raised: a fresh sandbox without its files is
    not usable for iterative development.
    """
    try:
        logger.info("Syncing %d files to sandbox %s", len(files), sandbox.sandbox_id)
        for path, content in files.items():
            await sandbox.write_file(path, content)
        logger.info("File synchronization completed")
    except Exception as exc:
        logger.error("Error syncing files to sandbox: %s", exc)
        raise


class ProjectSandboxManager:
    """Manages the project → sandbox mapping across runs."""

    def __init__(
        self,
        history: HistoryStore,
        environments: EnvironmentProvider,
        template: str = DEFAULT_TEMPLATE,
        sandbox_timeout_s: float = DEFAULT_SANDBOX_TIMEOUT_S,
    ) -> None:
        self._history = history
        self._environments = environments
        self._template = template
        self._sandbox_timeout_s = sandbox_timeout_s

        # Handles opened by this process, keyed by sandbox id
        self._sandboxes: dict[str, ExecutionEnvironment] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    # -- Public API --

    async def get_or_create_project_sandbox(
        self,
        project_id: str,
        previous_files: dict[str, str] | None = None,
    ) -> SandboxInfo:
        """Return a live sandbox for a project.

        - Stored reference still within its expiry: reconnect and reuse it
          (no resync). A failed reconnect falls through to creation.
        - Otherwise: create a new sandbox, resync ``previous_files`` and
          persist the new reference with a fresh expiry.
        """
        ref = await self._history.read_project_sandbox_ref(project_id)

        if is_active_sandbox(ref.sandbox_id, ref.expires_at):
            try:
                existing = await self._environments.connect(ref.sandbox_id)
                self._sandboxes[ref.sandbox_id] = existing
                logger.info("Reusing existing sandbox: %s", ref.sandbox_id)
                return SandboxInfo(sandbox_id=ref.sandbox_id, is_reused=True)
            except Exception as exc:
                logger.warning("Failed to connect to existing sandbox %s: %s", ref.sandbox_id, exc)

        # The stored sandbox is being replaced; drop any handle we hold for it
        if ref.sandbox_id:
            self._sandboxes.pop(ref.sandbox_id, None)

        sandbox = await self._environments.create(self._template)
        logger.info("Created new sandbox: %s", sandbox.sandbox_id)

        if previous_files:
            await sync_files_to_sandbox(sandbox, previous_files)

        expires_at = utcnow() + timedelta(seconds=self._sandbox_timeout_s)
        await self._history.write_project_sandbox_ref(project_id, sandbox.sandbox_id, expires_at)
        self._sandboxes[sandbox.sandbox_id] = sandbox

        return SandboxInfo(sandbox_id=sandbox.sandbox_id, is_reused=False)

    async def get_sandbox(self, sandbox_id: str) -> ExecutionEnvironment:
        """Return a handle to a sandbox, reconnecting if this process has none."""
        sandbox = self._sandboxes.get(sandbox_id)
        if sandbox is None:
            sandbox = await self._environments.connect(sandbox_id)
            self._sandboxes[sandbox_id] = sandbox
        return sandbox

    async def cleanup_expired_sandboxes(self, now: datetime | None = None) -> int:
        """Forget sandbox references that are past their expiry.

        Only local tracking is cleared; expired sandboxes are torn down by
        the remote side on its own. Idempotent.

        Returns:
            Number of project references cleared.
        """
        current = _naive_utc(now) if now is not None else utcnow()
        expired = await self._history.find_expired_sandbox_projects(current)

        for project in expired:
            logger.info("Cleaning up expired sandbox tracking for %s", project.active_sandbox_id)
            await self._history.clear_project_sandbox_ref(project.id)
            if project.active_sandbox_id:
                self._sandboxes.pop(project.active_sandbox_id, None)

        logger.info("Cleaned up %d expired sandboxes", len(expired))
        return len(expired)

    def start_sweep(self, interval_s: float = DEFAULT_SWEEP_INTERVAL_S) -> None:
        """Start the periodic cleanup of expired sandbox references."""
        self.stop_sweep()
        self._sweep_task = asyncio.create_task(self._sweep_loop(interval_s))

    def stop_sweep(self) -> None:
        """Stop the periodic sweep."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            self._sweep_task = None

    # -- Private helpers --

    async def _sweep_loop(self, interval_s: float) -> None:
        """Background task that periodically clears expired references."""
        try:
            while True:
                await asyncio.sleep(interval_s)
                try:
                    await self.cleanup_expired_sandboxes()
                except Exception as exc:
                    logger.warning("Sweep error: %s", exc)
        except asyncio.CancelledError:
            pass
