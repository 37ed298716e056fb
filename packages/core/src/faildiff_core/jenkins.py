"""Thin client over the Jenkins JSON API.

Only the handful of endpoints faildiff needs are wrapped. Every request
carries a timeout; HTTP errors are raised as ``requests.HTTPError`` and are
never retried here.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

import requests

from faildiff_core.errors import ConfigError, TriggerError
from faildiff_core.model import Build, FailedTest, JobName

logger = logging.getLogger(__name__)

BUILD_FIELDS = "id,number,result,timestamp,duration,building,changeSets[items[commitId]]"
FAILED_STATUSES = ("FAILED", "REGRESSION")


def parse_user_token(user_token: str) -> tuple[str, str]:
    """Split ``user:token`` into the basic-auth pair."""
    user, sep, token = user_token.partition(":")
    if not sep or not user or not token:
        raise ConfigError("User token must have the form 'user:token'")
    return user, token


class JenkinsClient:
    def __init__(
        self,
        url: str,
        user_token: str | None = None,
        session: requests.Session | None = None,
        build_count: int = 100,
        queue_attempts: int = 30,
        queue_delay: float = 2.0,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not url:
            raise ConfigError("Jenkins url is not configured")
        self.url = url.rstrip("/")
        self._session = session or requests.Session()
        if user_token:
            self._session.auth = parse_user_token(user_token)
        self._build_count = build_count
        self._queue_attempts = queue_attempts
        self._queue_delay = queue_delay
        self._timeout = timeout
        self._sleep = sleep

    def close(self) -> None:
        self._session.close()

    def _get(self, url: str, params: dict | None = None) -> dict:
        logger.debug("GET %s", url)
        response = self._session.get(url, params=params, timeout=self._timeout)
        response.raise_for_status()
        return response.json()

    def _job_url(self, job: JobName) -> str:
        return f"{self.url}/{job.url_path}"

    def get_job_names(self, folders: Iterable[str] = ()) -> list[JobName]:
        """Top-level jobs plus the branch jobs of each multibranch folder (``folder/branch``)."""
        tree = {"tree": "jobs[name]"}
        names = [JobName(job["name"]) for job in self._get(f"{self.url}/api/json", tree).get("jobs") or []]
        for folder in folders:
            payload = self._get(f"{self._job_url(JobName(folder))}/api/json", tree)
            names.extend(JobName(f"{folder}/{job['name']}") for job in payload.get("jobs") or [])
        logger.debug("Found %d job(s)", len(names))
        return names

    def get_builds(self, job: JobName) -> list[Build]:
        """The last ``build_count`` builds of ``job``, newest first."""
        payload = self._get(
            f"{self._job_url(job)}/api/json", {"tree": f"builds[{BUILD_FIELDS}]{{0,{self._build_count}}}"}
        )
        builds = []
        for entry in payload.get("builds") or []:
            # Jenkins reports result=null until a build finishes.
            if entry.get("building") and entry.get("result") is None:
                entry = {**entry, "result": "NOT_BUILT"}
            builds.append(Build.from_json(entry))
        return builds

    def get_failed_tests(self, job: JobName, build_number: int) -> list[FailedTest]:
        payload = self._get(f"{self._job_url(job)}/{build_number}/testReport/api/json")
        return [
            FailedTest.from_json(case)
            for suite in payload.get("suites") or []
            for case in suite.get("cases") or []
            if case.get("status") in FAILED_STATUSES
        ]

    def _crumb_headers(self) -> dict[str, str]:
        response = self._session.get(f"{self.url}/crumbIssuer/api/json", timeout=self._timeout)
        if response.status_code == 404:
            logger.debug("CSRF protection disabled, no crumb needed")
            return {}
        response.raise_for_status()
        crumb = response.json()
        return {crumb["crumbRequestField"]: crumb["crumb"]}

    def trigger_build(self, job: JobName, params: dict[str, str]) -> int:
        """Queue a parameterised build of ``job`` and wait for its build number."""
        logger.info("Triggering %s with %s", job, params)
        response = self._session.post(
            f"{self._job_url(job)}/buildWithParameters",
            params=params,
            headers=self._crumb_headers(),
            timeout=self._timeout,
        )
        response.raise_for_status()
        location = response.headers.get("Location", "")
        if "/queue/item/" not in location:
            raise TriggerError(f"Jenkins did not return a queue location when triggering {job}")

        queue_url = location.rstrip("/") + "/api/json"
        for _ in range(self._queue_attempts):
            self._sleep(self._queue_delay)
            executable = self._get(queue_url).get("executable")
            if executable and executable.get("number") is not None:
                number = executable["number"]
                logger.info("Triggered %s #%d", job, number)
                return number
        raise TriggerError(f"Timed out waiting for {job} to leave the queue")
