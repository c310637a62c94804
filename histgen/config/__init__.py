from .global_config_loader import (
    GlobalConfig,
    HttpConfig,
    GitConfig,
    CredentialsConfig,
    ToolsConfig,
    CacheConfig,
    load_global_config,
)
from .branch_config import BranchConfig
from .resources import ResourceLayout, RESOURCE_LAYOUT, ENGINE_IDENTITY

__all__ = [
    'GlobalConfig',
    'HttpConfig',
    'GitConfig',
    'CredentialsConfig',
    'ToolsConfig',
    'CacheConfig',
    'load_global_config',
    'BranchConfig',
    'ResourceLayout',
    'RESOURCE_LAYOUT',
    'ENGINE_IDENTITY',
]
