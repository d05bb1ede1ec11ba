"""Configuration management using Pydantic Settings"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from SAVERFLOW_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="SAVERFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service
    service_name: str = "saverflow-engine"
    log_level: str = "INFO"

    # Forecast simulation
    horizon_days: int = 90
    simulation_count: int = 500
    simulation_workers: int = 1
    seed_multiplier: int = 12345
    seed_offset: int = 67890
    daily_mean_scale: float = 0.1
    daily_std_scale: float = 0.5
    std_dev_floor: float = 20.0
    recurrence_variance_scale: float = 0.2

    # Savings
    user_buffer: float = 500.0
    risk_tolerance: Literal["conservative", "moderate", "aggressive"] = "moderate"

    # Risk and anomaly thresholds
    low_balance_threshold: float = 500.0
    low_balance_critical: float = 200.0
    large_bill_multiplier: float = 3.0
    large_bill_balance_share: float = 0.3
    large_bill_floor: float = 500.0
    runway_alert_days: int = 14
    spending_spike_sigma: float = 2.0
    concentration_threshold: float = 0.85
    concentration_min_total: float = 1000.0
    outlier_z_threshold: float = 2.5
    frequency_spike_multiplier: float = 3.0
    new_merchant_window_days: int = 30
    new_merchant_min_amount: float = 50.0
    time_anomaly_min_hours: float = 6.0
    max_risk_alerts: int = 5
    max_anomalies: int = 10


settings = Settings()
