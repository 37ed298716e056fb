"""Jenkins credential resolution.

Resolution order (stops at first success):
  1. --user-token option ("user:token")
  2. FAILDIFF_USER_TOKEN environment variable ("user:token")
  3. JENKINS_USER and JENKINS_TOKEN environment variables, as set up for
     other Jenkins tooling
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def resolve_user_token(cli_value: str | None = None) -> str | None:
    """Return a ``user:token`` string or None if no source provides one."""
    if cli_value:
        return cli_value

    token = os.environ.get("FAILDIFF_USER_TOKEN")
    if token:
        return token

    user, api_token = os.environ.get("JENKINS_USER"), os.environ.get("JENKINS_TOKEN")
    if user and api_token:
        logger.debug("Using JENKINS_USER/JENKINS_TOKEN credentials")
        return f"{user}:{api_token}"

    return None
