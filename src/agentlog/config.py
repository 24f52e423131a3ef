"""Configuration for session export and conversion."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Export/convert settings with env override support."""

    projects_dir: Path = Path.home() / ".claude" / "projects"
    output_root: Path = Path("./session-exports")
    tool_result_max_lines: int = Field(default=100, ge=1)
    top_n: int = Field(default=10, ge=0)

    model_config = {
        "env_prefix": "AGENTLOG_",
        "env_file": ".env",
        "extra": "ignore",
    }
