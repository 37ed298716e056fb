"""new command — register a request for the local HEAD."""

from __future__ import annotations

import logging

import click
from rich.console import Console

console = Console()
logger = logging.getLogger(__name__)


@click.command("new")
@click.option("--branch", "-b", default=None, help="Branch to compare with. Guessed from local history if omitted.")
@click.option(
    "--filter",
    "-f",
    "filter_names",
    multiple=True,
    help="Name of a configured test filter. Repeat to select several.",
)
@click.pass_context
def new_cmd(ctx, branch: str | None, filter_names: tuple[str, ...]):
    """Trigger verification builds of HEAD and record the baseline to compare them with.

    \b
    The reference commit is, in order:
      1. the last reference used for --branch, if Jenkins still has a build of it
      2. the commit nearest to HEAD that a reference build of a branch carries
    """
    from faildiff_core.branches import BranchTracker, RootBuildIndex
    from faildiff_core.filters import FilterResolver
    from faildiff_core.git import GitRepo
    from faildiff_core.jobs import JobManager
    from faildiff_core.model import BranchName, Request, RootName
    from faildiff_core.registrar import RequestManager

    config = ctx.obj["config"]
    client = ctx.obj["client"]
    workspace = ctx.obj["workspace"]

    job_groups = JobManager(config, client, ctx.obj["config_path"]).try_load(no_cache=ctx.obj["no_cache"])
    if job_groups is None:
        logger.error("No usable job group; check reference_jobs and on_demand_jobs in the configuration")
        ctx.exit(1)
    workspace.update_job_groups(job_groups)

    resolver = FilterResolver(config, job_groups, filter_names)
    root_names = [RootName(name) for name in config["root_names"]]
    scan_limit = config["commit_scan_limit"]
    commits = GitRepo().get_last_commits(scan_limit)
    if len(commits) < 2:
        logger.error("No local commits to test: HEAD needs at least one parent to use as a reference")
        ctx.exit(1)

    index = RootBuildIndex(client)
    tracker = BranchTracker(workspace.branch_references, index, scan_limit)

    reference_commit = None
    if branch:
        branch_name = BranchName(branch)
        root_diffs = resolver.get_root_diffs(root_names, branch_name)
        if not root_diffs:
            logger.error("No verification job for branch %s matches filters %s", branch_name, resolver.filter_names)
            ctx.exit(1)
        reference_commit = tracker.try_find_ref_commit(
            commits, sorted({d.reference_job for d in root_diffs}), branch_name
        )
        candidates = [branch_name]
    else:
        candidates = None

    if reference_commit is None:
        guess = tracker.try_guess_branch(commits, root_names, resolver, branches=candidates)
        if guess is None:
            ctx.exit(1)
        root_diffs, branch_name, reference_commit = guess.root_diffs, guess.branch, guess.commit

    request = Request.create(
        head_commit=commits[0],
        reference_commit=reference_commit,
        branch=branch_name,
        filters=resolver.filter_names,
    )
    RequestManager(workspace, client, config, index).register(request, root_diffs)

    console.print(
        f"[green]Registered request {request.id[:8]}:[/green] {len(request.runs)} build(s) of "
        f"{request.head_commit.short()} against {branch_name} at {reference_commit.short()}"
    )
    for run in request.runs:
        console.print(f"  {run.reference}")
