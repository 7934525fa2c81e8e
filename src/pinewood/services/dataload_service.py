"""Bulk data load — replays a SQL dump from the scorekeeping station.

Learn: The track laptop runs its own copy of the database during a race
and periodically posts a dump. The dump is piped into the `mysql` client
(multi-statement SQL is not something the async driver executes), with a
short timeout so a bad dump can't hold a worker.
"""

import asyncio

import structlog

from pinewood.config import settings
from pinewood.errors import PinewoodError

logger = structlog.get_logger()


class DataLoadError(PinewoodError):
    """The mysql client failed, timed out, or could not be started."""


async def load_sql(sql: str) -> None:
    """Pipe `sql` into the mysql client. Raises DataLoadError on failure."""
    cmd = [
        settings.mysql_command,
        "--database",
        settings.db_name,
        f"-u{settings.db_user}",
        f"-p{settings.db_password}",
    ]
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error("pinewood.dataload_spawn_failed", error=str(e))
        raise DataLoadError(f"Could not run {settings.mysql_command}: {e}")

    try:
        _, stderr = await asyncio.wait_for(
            proc.communicate(sql.encode("utf-8")),
            timeout=settings.dataload_timeout_seconds,
        )
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.error("pinewood.dataload_timeout", timeout=settings.dataload_timeout_seconds)
        raise DataLoadError("Data load timed out")

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        logger.error("pinewood.dataload_failed", returncode=proc.returncode, error=message)
        raise DataLoadError(message or f"mysql exited with {proc.returncode}")

    logger.info("pinewood.dataload_complete", size=len(sql))
