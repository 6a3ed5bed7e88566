"""Application configuration. All env vars defined here with defaults."""

from typing import Optional

from pydantic_settings import BaseSettings


class StepflowConfig(BaseSettings):
    # ── App ──
    app_name: str = "stepflow"
    debug: bool = False
    log_level: str = "INFO"
    audit_log_enabled: bool = True              # LoggingSink emits to the stepflow.audit logger

    # ── Workflow limits ──
    default_max_steps: int = 100                # used by WorkflowBuilder when unset
    default_retry_base_delay_ms: int = 1000
    default_step_timeout_ms: Optional[int] = None   # applied when a step declares none

    # ── LLM (litellm) ──
    default_llm_model: str = "anthropic/claude-sonnet-4-20250514"
    llm_api_base: Optional[str] = None          # e.g. http://localhost:11434 for ollama
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.7

    # ── HTTP call steps ──
    http_timeout_seconds: float = 30.0

    model_config = {"env_prefix": "STEPFLOW_", "env_file": ".env", "extra": "ignore"}


config = StepflowConfig()
