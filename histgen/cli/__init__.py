from .generate_cli import cli

__all__ = ['cli']
