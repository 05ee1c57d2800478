#!/usr/bin/env python3
"""
Monitor GitHub CI status for a commit and exit when it settles.

Polls the combined commit status and the check runs through the GitHub
CLI (``gh api``) until CI passes, fails or the timeout elapses.

Exit codes:
    0 - CI passed
    1 - CI failed
    2 - Timeout
    3 - Error (git or gh unavailable, unparsable remote)
"""

import argparse
import json
import re
import subprocess
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

EXIT_PASSED = 0
EXIT_FAILED = 1
EXIT_TIMEOUT = 2
EXIT_ERROR = 3

DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_POLL_INTERVAL_SECONDS = 15.0

GITHUB_REMOTE = re.compile(r"github\.com[:/](.+?)/(.+?)(\.git)?$")

Runner = Callable[[Sequence[str]], str]


class MonitorError(Exception):
    """Unrecoverable problem: missing tool or unreadable repository."""


class CommandFailed(Exception):
    """A command ran but exited non-zero."""


def run_command(args: Sequence[str]) -> str:
    """Run *args* and return stripped stdout."""
    try:
        result = subprocess.run(list(args), capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise MonitorError(f"{args[0]} is not installed") from e
    if result.returncode != 0:
        raise CommandFailed(result.stderr.strip() or f"{' '.join(args)} exited with {result.returncode}")
    return result.stdout.strip()


def parse_github_remote(url: str) -> Tuple[str, str]:
    """``(owner, repo)`` from an https or ssh GitHub remote URL."""
    match = GITHUB_REMOTE.search(url.strip())
    if not match:
        raise MonitorError(f"Could not parse GitHub repository from remote URL: {url}")
    return match.group(1), match.group(2)


def resolve_commit(runner: Runner) -> str:
    try:
        return runner(["git", "rev-parse", "HEAD"])
    except CommandFailed as e:
        raise MonitorError(f"Error getting latest commit SHA: {e}") from e


def resolve_repository(runner: Runner) -> Tuple[str, str]:
    try:
        remote = runner(["git", "config", "--get", "remote.origin.url"])
    except CommandFailed as e:
        raise MonitorError(f"Error getting repository info: {e}") from e
    return parse_github_remote(remote)


@dataclass
class CIResult:
    state: str
    checks: List[Dict[str, Any]] = field(default_factory=list)


def evaluate_status(status: Dict[str, Any], check_runs: List[Dict[str, Any]]) -> CIResult:
    """Combine the commit status and check runs into success, failure or pending."""
    state = status.get("state")

    if state == "success" and all(c.get("conclusion") in ("success", None) for c in check_runs):
        return CIResult("success", check_runs)

    failed = [c for c in check_runs if c.get("conclusion") == "failure"]
    if state == "failure" or failed:
        return CIResult("failure", failed)

    if state == "pending" or any(c.get("status") in ("in_progress", "queued") for c in check_runs):
        return CIResult("pending", check_runs)

    return CIResult("pending")


def check_ci_status(owner: str, repo: str, sha: str, runner: Runner) -> CIResult:
    base = f"repos/{owner}/{repo}/commits/{sha}"
    status = json.loads(runner(["gh", "api", f"{base}/status"]))
    checks = json.loads(runner(["gh", "api", f"{base}/check-runs"]))
    return evaluate_status(status, checks.get("check_runs") or [])


def monitor(
    sha: str,
    owner: str,
    repo: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    runner: Runner = run_command,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    silent: bool = False,
) -> int:
    """Poll until CI settles; returns the process exit code."""

    def log(message: str):
        if not silent:
            print(message)

    short_sha = sha[:7]
    log(f"Monitoring CI for commit {short_sha}...")
    log(f"Repository: {owner}/{repo}")
    log(f"Timeout: {timeout:g}s | Poll interval: {poll_interval:g}s\n")

    start = clock()
    last_state: Optional[str] = None

    while clock() - start < timeout:
        try:
            result = check_ci_status(owner, repo, sha, runner)
        except (CommandFailed, ValueError) as e:
            print(f"Error checking CI status: {e}", file=sys.stderr)
            sleep(poll_interval)
            continue

        elapsed = round(clock() - start)
        if result.state != last_state:
            if result.state == "pending":
                log(f"CI is running... ({elapsed}s elapsed)")
            last_state = result.state

        if result.state == "success":
            log(f"\nCI PASSED! ({elapsed}s total)")
            if result.checks:
                log(f"   Successful checks: {', '.join(c.get('name', '?') for c in result.checks)}")
            return EXIT_PASSED

        if result.state == "failure":
            log(f"\nCI FAILED! ({elapsed}s total)")
            if result.checks:
                log("   Failed checks:")
                for check in result.checks:
                    log(f"   - {check.get('name', '?')}: {check.get('conclusion')}")
                    title = (check.get("output") or {}).get("title")
                    if title:
                        log(f"     {title}")
            return EXIT_FAILED

        sleep(poll_interval)

    elapsed = round(clock() - start)
    log(f"\nCI monitoring timed out after {elapsed}s")
    log("   The workflow may still be running. Check manually at:")
    log(f"   https://github.com/{owner}/{repo}/commit/{sha}/checks")
    return EXIT_TIMEOUT


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Wait for GitHub CI on a commit to pass or fail.")
    parser.add_argument("sha", nargs="?", default=None, help="Commit SHA (default: HEAD)")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="Max seconds to wait")
    parser.add_argument("--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL_SECONDS, help="Seconds between checks")
    parser.add_argument("--silent", action="store_true", help="Suppress progress output")
    return parser.parse_args(argv)


def main(
    argv: Optional[Sequence[str]] = None,
    runner: Runner = run_command,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    args = _parse_args(argv)
    try:
        sha = args.sha or resolve_commit(runner)
        owner, repo = resolve_repository(runner)
        return monitor(
            sha,
            owner,
            repo,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            runner=runner,
            sleep=sleep,
            clock=clock,
            silent=args.silent,
        )
    except MonitorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
