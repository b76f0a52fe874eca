"""Runtime configuration for devflow commands."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from devflow.errors import ConfigurationError

DEFAULT_AGENT_COMMAND_TEMPLATE = (
    "claude -p --output-format stream-json --verbose "
    "--permission-mode acceptEdits -- {prompt}"
)
DEFAULT_FILE_TOKEN = "{file}"
DEFAULT_CONCURRENCY = 5
DEFAULT_LLM_ENDPOINT = "https://api.openai.com/v1/chat/completions"


@dataclass(slots=True)
class AgentSettings:
    """AI coding-agent CLI invocation settings."""

    command_template: str = DEFAULT_AGENT_COMMAND_TEMPLATE
    concurrency: int = DEFAULT_CONCURRENCY
    timeout_seconds: int = 0
    file_token: str = DEFAULT_FILE_TOKEN


@dataclass(slots=True)
class LlmSettings:
    """Chat-completion endpoint settings."""

    endpoint: str = DEFAULT_LLM_ENDPOINT
    api_key: str = ""
    model: str = "gpt-4o-mini"
    timeout_seconds: float = 60.0
    max_diff_chars: int = 20_000


@dataclass(slots=True)
class GitSettings:
    """Repository scanning and release settings."""

    scan_root: Path = Path()
    scan_depth: int = 2
    default_base_branch: str = "main"
    tag_prefix: str = "v"
    fetch_before_status: bool = False


@dataclass(slots=True)
class VaultSettings:
    """Azure Key Vault import settings."""

    vault_name: str = ""
    dotnet_project: str = ""


@dataclass(slots=True)
class BuildSettings:
    """Build remediation loop settings."""

    project: str = ""
    max_iterations: int = 3
    max_error_lines: int = 40


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    agent: AgentSettings = field(default_factory=AgentSettings)
    llm: LlmSettings = field(default_factory=LlmSettings)
    git: GitSettings = field(default_factory=GitSettings)
    vault: VaultSettings = field(default_factory=VaultSettings)
    build: BuildSettings = field(default_factory=BuildSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local development."""

        return cls(
            agent=AgentSettings(
                command_template=os.getenv(
                    "DEVFLOW_AGENT_COMMAND_TEMPLATE",
                    DEFAULT_AGENT_COMMAND_TEMPLATE,
                ),
                concurrency=_env_int("DEVFLOW_FANOUT_CONCURRENCY", DEFAULT_CONCURRENCY),
                timeout_seconds=_env_int("DEVFLOW_FANOUT_TIMEOUT_SECONDS", 0),
                file_token=os.getenv("DEVFLOW_FANOUT_FILE_TOKEN", DEFAULT_FILE_TOKEN),
            ),
            llm=LlmSettings(
                endpoint=os.getenv("DEVFLOW_LLM_ENDPOINT", DEFAULT_LLM_ENDPOINT),
                api_key=os.getenv("DEVFLOW_LLM_API_KEY", os.getenv("OPENAI_API_KEY", "")),
                model=os.getenv("DEVFLOW_LLM_MODEL", "gpt-4o-mini"),
                timeout_seconds=_env_float("DEVFLOW_LLM_TIMEOUT_SECONDS", 60.0),
                max_diff_chars=_env_int("DEVFLOW_LLM_MAX_DIFF_CHARS", 20_000),
            ),
            git=GitSettings(
                scan_root=Path(os.getenv("DEVFLOW_GIT_SCAN_ROOT", ".")),
                scan_depth=_env_int("DEVFLOW_GIT_SCAN_DEPTH", 2),
                default_base_branch=os.getenv("DEVFLOW_GIT_BASE_BRANCH", "main"),
                tag_prefix=os.getenv("DEVFLOW_RELEASE_TAG_PREFIX", "v"),
                fetch_before_status=_env_bool("DEVFLOW_GIT_FETCH", default=False),
            ),
            vault=VaultSettings(
                vault_name=os.getenv("DEVFLOW_KEYVAULT_NAME", ""),
                dotnet_project=os.getenv("DEVFLOW_DOTNET_PROJECT", ""),
            ),
            build=BuildSettings(
                project=os.getenv(
                    "DEVFLOW_BUILD_PROJECT",
                    os.getenv("DEVFLOW_DOTNET_PROJECT", ""),
                ),
                max_iterations=_env_int("DEVFLOW_BUILD_MAX_ITERATIONS", 3),
                max_error_lines=_env_int("DEVFLOW_BUILD_MAX_ERROR_LINES", 40),
            ),
        )

    def validate_for_fanout(self) -> None:
        """Raise configuration error if the agent settings cannot drive a fan-out run."""

        if self.agent.concurrency <= 0:
            raise ValueError("DEVFLOW_FANOUT_CONCURRENCY must be a positive integer.")
        if self.agent.timeout_seconds < 0:
            raise ValueError("DEVFLOW_FANOUT_TIMEOUT_SECONDS must be >= 0.")
        if not self.agent.file_token:
            raise ValueError("DEVFLOW_FANOUT_FILE_TOKEN must not be empty.")
        if "{prompt}" not in self.agent.command_template:
            raise ValueError("DEVFLOW_AGENT_COMMAND_TEMPLATE must include {prompt}.")

    def validate_for_llm(self) -> None:
        """Raise configuration error if the chat-completion endpoint is unusable."""

        parsed = urlparse(self.llm.endpoint)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid DEVFLOW_LLM_ENDPOINT: "
                f"{self.llm.endpoint!r}. Expected an absolute http(s) URL.",
            )
        if not self.llm.api_key:
            raise ValueError("DEVFLOW_LLM_API_KEY (or OPENAI_API_KEY) is required.")
        if self.llm.timeout_seconds <= 0:
            raise ValueError("DEVFLOW_LLM_TIMEOUT_SECONDS must be > 0.")

    def validate_for_build(self) -> None:
        if self.build.max_iterations <= 0:
            raise ValueError("DEVFLOW_BUILD_MAX_ITERATIONS must be a positive integer.")
        if "{prompt}" not in self.agent.command_template:
            raise ValueError("DEVFLOW_AGENT_COMMAND_TEMPLATE must include {prompt}.")


def load_settings() -> Settings:
    """Read settings from the environment, reporting bad values as configuration errors."""

    try:
        return Settings.from_env()
    except ValueError as error:
        raise ConfigurationError(str(error)) from error


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid float value for {name}: {raw!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
