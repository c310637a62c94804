import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, replace

from ..core.exceptions import ConfigurationError
from ..core.models import CommitIdentity


DEFAULT_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"

DEFAULT_DECOMPILE_ARGS = [
    "-din=1", "-rbr=1", "-dgs=1", "-asc=1", "-rsy=1", "-iec=1",
    "-jvn=1", "-jpr=1", "-isl=0", "-iib=1", "-bsm=1", "-dcl=1",
]


@dataclass
class HttpConfig:
    """HTTP client configuration"""
    connect_timeout: float = 5.0
    read_timeout: float = 5.0
    max_retries: int = 5
    retry_delay: float = 1.0
    manifest_url: str = DEFAULT_MANIFEST_URL


@dataclass
class CredentialsConfig:
    """Remote authentication.

    A GitHub App is used when ``github_installation_repo`` is set; its
    private key is read from the ``github_app_key_env`` variable. Otherwise
    a static token from ``token`` or the ``token_env`` variable is used, if
    any.
    """
    token: Optional[str] = None
    token_env: str = "HISTGEN_GIT_TOKEN"
    username: str = "x-access-token"
    github_app_id: Optional[str] = None
    github_installation_repo: Optional[str] = None
    github_app_key_env: str = "GITHUB_APP_KEY"
    github_api_url: str = "https://api.github.com"


@dataclass
class GitConfig:
    """Commit identity, push batching and remote credentials"""
    committer_name: str = "histgen"
    committer_email: str = "histgen@localhost"
    checkpoint_message: str = "Initial commit"
    push_batch_size: int = 10
    push_every: int = 10
    remote_name: str = "origin"
    credentials: CredentialsConfig = field(default_factory=CredentialsConfig)

    @property
    def identity(self) -> CommitIdentity:
        return CommitIdentity(self.committer_name, self.committer_email)


@dataclass
class ToolsConfig:
    """Command lines of the external transformation tools.

    ``{name}`` placeholders are substituted per invocation. An argument that
    is exactly ``{decompile_args}`` expands to the ``decompile_args`` list.
    """
    merge: List[str] = field(default_factory=lambda: [
        "java", "-jar", "tools/mergetool.jar",
        "--client", "{client}", "--server", "{server}", "--output", "{output}",
        "--whitelist-map", "{mappings}", "--ann", "API", "--keep-data", "--skip-meta",
    ])
    rename: List[str] = field(default_factory=lambda: [
        "java", "-jar", "tools/renamer.jar",
        "--input", "{input}", "--output", "{output}", "--map", "{mappings}",
        "--cfg", "{libraries_cfg}",
        "--ann-fix", "--ids-fix", "--src-fix", "--record-fix", "--strip-sigs",
    ])
    decompile: List[str] = field(default_factory=lambda: [
        "java", "-jar", "tools/decompiler.jar",
        "{decompile_args}", "-log=ERROR", "-cfg", "{libraries_cfg}", "{input}", "{output}",
    ])
    decompile_args: List[str] = field(default_factory=lambda: list(DEFAULT_DECOMPILE_ARGS))


@dataclass
class CacheConfig:
    """Cache behaviour"""
    partial: bool = False
    lock_timeout: float = 0


@dataclass
class GlobalConfig:
    """Configuration threaded explicitly through a generator run"""
    http: HttpConfig = field(default_factory=HttpConfig)
    git: GitConfig = field(default_factory=GitConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GlobalConfig':
        """Create GlobalConfig from dictionary"""
        try:
            git_data = dict(data.get('git') or {})
            credentials = CredentialsConfig(**(git_data.pop('credentials', None) or {}))
            return cls(
                http=HttpConfig(**data.get('http', {})),
                git=GitConfig(credentials=credentials, **git_data),
                tools=ToolsConfig(**data.get('tools', {})),
                cache=CacheConfig(**data.get('cache', {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Invalid global config: {e}") from e

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'GlobalConfig':
        """Load GlobalConfig from YAML file"""
        path = Path(yaml_path)
        if not path.exists():
            # Return default config if file doesn't exist
            return cls.default()

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def default(cls) -> 'GlobalConfig':
        """Return default configuration"""
        return cls()

    def with_committer(self, committer: Optional[str]) -> 'GlobalConfig':
        """Return a copy using a ``"name email"`` committer override"""
        if not committer:
            return self
        parts = committer.split(" ")
        if len(parts) != 2:
            raise ConfigurationError("Committer should be in the format 'name email'")
        git = replace(self.git, committer_name=parts[0], committer_email=parts[1])
        return replace(self, git=git)

    def with_github_app(self, app_id: Optional[str], installation_repo: Optional[str]) -> 'GlobalConfig':
        """Return a copy authenticating as a GitHub App installed on ``owner/repo``"""
        if not installation_repo:
            return self
        if not app_id:
            raise ConfigurationError("A GitHub installation repository requires a GitHub App id")
        if len(installation_repo.split("/")) != 2:
            raise ConfigurationError("GitHub installation repository should be in the format 'owner/repo'")
        credentials = replace(
            self.git.credentials,
            github_app_id=app_id,
            github_installation_repo=installation_repo,
        )
        return replace(self, git=replace(self.git, credentials=credentials))

    def with_partial_cache(self, partial: bool) -> 'GlobalConfig':
        if not partial:
            return self
        return replace(self, cache=replace(self.cache, partial=True))


def load_global_config(config_path: Optional[str] = None) -> GlobalConfig:
    """
    Load global configuration from YAML file.
    If no path provided, looks for histgen.yaml in standard locations.
    """
    if config_path:
        return GlobalConfig.from_yaml(config_path)

    search_paths = [
        Path("./histgen.yaml"),
        Path("./config/histgen.yaml"),
        Path.home() / ".config" / "histgen" / "histgen.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return GlobalConfig.from_yaml(str(path))

    return GlobalConfig.default()
