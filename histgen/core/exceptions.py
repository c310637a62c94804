"""
Error taxonomy for histgen.

Every fatal condition raised by the engine derives from HistgenError so the
CLI can report it and exit non-zero. Expected "skip this release" situations
are not exceptions; they travel as StageResult.skip values.
"""


class HistgenError(Exception):
    """Base class for all fatal histgen errors"""


class ConfigurationError(HistgenError):
    """Invalid or incomplete configuration"""


class DownloadError(HistgenError):
    """A download failed after exhausting all retries"""


class IntegrityError(HistgenError):
    """Downloaded content does not match its expected hash"""

    def __init__(self, url: str, expected: str, actual: str):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Failed to download {url}: invalid hash\n"
            f"    Expected: {expected}\n"
            f"    Actual: {actual}"
        )


class ConsistencyError(HistgenError):
    """Inputs or history disagree in a way that cannot be continued from"""


class StageError(HistgenError):
    """A pipeline stage failed to produce its artifact"""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"Stage '{stage}' failed: {message}")


class PipelineError(HistgenError):
    """A release could not be generated"""


class PushError(HistgenError):
    """The remote rejected a push"""


class RunLockError(HistgenError):
    """Another run holds the cache directory"""
