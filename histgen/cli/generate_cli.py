#!/usr/bin/env python3
"""
histgen CLI

Generates a git history with one commit per upstream release.
"""

import asyncio
import click
import logging
import sys
from pathlib import Path

from ..cache.record import CacheRecord
from ..config.branch_config import BranchConfig
from ..config.global_config_loader import load_global_config
from ..core.enums import BranchState, BranchType
from ..core.exceptions import HistgenError
from ..core.models import BranchSpec
from ..generator import GenerateOptions, Generator


def _cli_spec(start_ver, target_ver, releases_only):
    """Branch spec from command-line bounds, or None to use the branch config"""
    if not (start_ver or target_ver or releases_only):
        return None
    return BranchSpec(
        type=BranchType.RELEASE if releases_only else BranchType.ALL,
        start=start_ver,
        end=target_ver,
    )


@click.group()
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Set the logging level')
@click.pass_context
def cli(ctx, global_config, log_level):
    """histgen - regenerate release history into git"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    ctx.ensure_object(dict)
    ctx.obj['global_config_path'] = global_config


@cli.command()
@click.option('--output', required=True, type=click.Path(file_okay=False, path_type=Path),
              help='Output git repository')
@click.option('--cache', 'cache_dir', default='./cache', type=click.Path(file_okay=False, path_type=Path),
              help='Cache directory')
@click.option('--extra-mappings', type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Directory with mapping overrides laid out as <type>/<id>/maps/{client,server}.txt')
@click.option('--start-ver', help='Oldest version to generate')
@click.option('--target-ver', help='Newest version to generate')
@click.option('--branch', help='Branch to generate on (defaults to the current branch)')
@click.option('--branch-config', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with per-branch version specs')
@click.option('--releases-only', is_flag=True, help='Only generate release versions')
@click.option('--start-over', is_flag=True, help='Recreate the branch from scratch')
@click.option('--start-over-if-required', is_flag=True,
              help='Recreate the branch only if its checkpoint does not match')
@click.option('--remote', help='Remote repository URL')
@click.option('--checkout', is_flag=True, help='Check out the branch from the remote before generating')
@click.option('--push', is_flag=True, help='Push generated commits to the remote')
@click.option('--github-app-id', help='GitHub App id used to authenticate against the remote')
@click.option('--github-installation-repo',
              help="Repository the GitHub App is installed on, as 'owner/repo'; the key is read from GITHUB_APP_KEY")
@click.option('--committer', help="Commit identity as 'name email'")
@click.option('--partial-cache', is_flag=True, help='Delete client and server jars once merged')
@click.option('--include', 'includes', multiple=True, help='Only materialize generated paths matching this glob')
@click.option('--exclude', 'excludes', multiple=True, help='Skip generated paths matching this glob')
@click.pass_context
def generate(ctx, output, cache_dir, extra_mappings, start_ver, target_ver, branch, branch_config,
             releases_only, start_over, start_over_if_required, remote, checkout, push, github_app_id,
             github_installation_repo, committer, partial_cache, includes, excludes):
    """Generate the release history on a branch"""
    logger = logging.getLogger(__name__)

    if start_over and start_over_if_required:
        raise click.UsageError("--start-over and --start-over-if-required are mutually exclusive")
    if (checkout or push) and not remote:
        raise click.UsageError("--checkout and --push require --remote")
    if github_installation_repo and not github_app_id:
        raise click.UsageError("--github-installation-repo requires --github-app-id")
    if github_installation_repo and not remote:
        raise click.UsageError("--github-installation-repo requires --remote")

    try:
        config = (load_global_config(ctx.obj['global_config_path'])
                  .with_committer(committer)
                  .with_partial_cache(partial_cache)
                  .with_github_app(github_app_id, github_installation_repo))
        branches = BranchConfig.from_yaml(branch_config) if branch_config else BranchConfig.default()

        options = GenerateOptions(
            output=output,
            cache_dir=cache_dir,
            extra_mappings=extra_mappings,
            branch=branch,
            spec=_cli_spec(start_ver, target_ver, releases_only),
            start_over=start_over,
            start_over_if_required=start_over_if_required,
            remote=remote,
            checkout=checkout,
            push=push,
            includes=list(includes),
            excludes=list(excludes),
        )
        summary = asyncio.run(Generator(config, options, branches).run())
    except HistgenError as e:
        logger.error(f"Generation failed: {e}")
        sys.exit(1)

    if summary.state == BranchState.MISMATCH:
        logger.warning(f"Branch {summary.branch} left unchanged")


@cli.command('show-record')
@click.argument('record_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
def show_record(record_file):
    """Print the entries of a stage cache record"""
    record = CacheRecord.read(record_file)
    if not len(record):
        click.echo("No entries")
        return
    for key, value in record.items():
        click.echo(f"{key}: {value}")


if __name__ == "__main__":
    cli()
