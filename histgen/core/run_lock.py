"""
Run lock guarding a cache directory against concurrent generator runs.
"""
import asyncio
import fcntl
import logging
import os
import time
from pathlib import Path

from .exceptions import RunLockError


class RunLock:
    """
    Exclusive file lock inside the cache directory.

    Cache-validity bookkeeping assumes a single writer, so a second run
    against the same cache waits up to ``timeout`` seconds and then fails.
    """

    LOCK_FILE_NAME = ".histgen.lock"

    def __init__(self, cache_dir: Path, timeout: float = 0):
        """
        Initialize run lock.

        Args:
            cache_dir: Cache directory to guard
            timeout: Seconds to wait for the lock before failing
        """
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout
        self.lock_file_path = self.cache_dir / self.LOCK_FILE_NAME
        self.lock_file = None
        self.logger = logging.getLogger(__name__)

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.release()
        return False

    async def acquire(self):
        """
        Acquire the lock.

        Raises:
            RunLockError: If the lock cannot be acquired within timeout
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        start_time = time.time()

        while True:
            self.lock_file = open(self.lock_file_path, 'a')
            try:
                fcntl.flock(self.lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                self.lock_file.close()
                self.lock_file = None

                elapsed = time.time() - start_time
                if elapsed >= self.timeout:
                    raise RunLockError(
                        f"Cache directory {self.cache_dir} is locked by another run"
                    )

                self.logger.debug(
                    f"Run lock held by another process, retrying... "
                    f"({elapsed:.1f}s / {self.timeout}s)"
                )
                await asyncio.sleep(0.5)
                continue

            self.lock_file.truncate(0)
            self.lock_file.write(f"{os.getpid()}\n")
            self.lock_file.flush()
            self.logger.debug(f"Run lock acquired: {self.lock_file_path}")
            return

    async def release(self):
        if not self.lock_file:
            return

        fcntl.flock(self.lock_file.fileno(), fcntl.LOCK_UN)
        self.lock_file.close()
        self.lock_file = None

        if self.lock_file_path.exists():
            self.lock_file_path.unlink()

        self.logger.debug("Run lock released")
