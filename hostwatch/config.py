"""Global configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class HostwatchSettings(BaseSettings):
    log_level: str = "INFO"
    dashboard_host: str = "127.0.0.1"
    dashboard_port: int = 8430

    # Command execution
    command_timeout_seconds: float = 30.0
    drain_grace_seconds: float = 2.0
    max_output_bytes: int = 1_000_000

    # Bounded in-memory logs
    audit_capacity: int = 100
    alert_capacity: int = 100

    # Process table
    search_limit: int = 50
    default_process_limit: int = 100

    # Metrics sampling
    cpu_sample_window_seconds: float = 1.0
    poll_interval_seconds: float = 5.0
    poll_evaluate_alerts: bool = True

    # Alert thresholds (percent, no range validation)
    cpu_threshold: float = 80.0
    memory_threshold: float = 85.0
    disk_threshold: float = 90.0

    model_config = {"env_prefix": "HOSTWATCH_"}


settings = HostwatchSettings()
