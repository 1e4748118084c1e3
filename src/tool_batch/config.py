# config.py
# Runtime settings, read from the environment after loading .env.
#
#   TOOL_BATCH_LOG_LEVEL     root log level for the CLI            (INFO)
#   TOOL_BATCH_HTTP_TIMEOUT  per-request timeout of the session    (10 s)
#   TOOL_BATCH_STEP_TIMEOUT  upper bound on one step, unset = none
#   TOOL_BATCH_USER_AGENT    User-Agent sent by the browser session

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_USER_AGENT = "tool-batch/0.1"


class Settings(BaseModel):
    log_level: str = "INFO"
    http_timeout_s: float = Field(default=10.0, gt=0)
    step_timeout_s: float | None = Field(default=None, gt=0)
    user_agent: str = DEFAULT_USER_AGENT


def load_settings(env_file: str | None = None) -> Settings:
    """Load .env (without overriding the real environment) and build Settings."""
    load_dotenv(env_file)
    step_timeout = os.getenv("TOOL_BATCH_STEP_TIMEOUT", "").strip()
    return Settings(
        log_level=os.getenv("TOOL_BATCH_LOG_LEVEL", "INFO").strip().upper(),
        http_timeout_s=float(os.getenv("TOOL_BATCH_HTTP_TIMEOUT", "10")),
        step_timeout_s=float(step_timeout) if step_timeout else None,
        user_agent=os.getenv("TOOL_BATCH_USER_AGENT", DEFAULT_USER_AGENT),
    )
