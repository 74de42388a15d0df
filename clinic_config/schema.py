"""
PipelineConfig schema.

Every tunable the scrape pipeline consults: bounded waits, batch size,
proxy routing, and downstream ledger details.  Built once per invocation
by ``clinic_config.loader`` and passed down by constructor injection;
no component reads environment variables or module constants for these.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for one batch invocation."""

    # Anti-bot interstitial
    challenge_timeout_ms: int = 120_000
    challenge_recheck_timeout_ms: int = 20_000
    challenge_poll_min_ms: int = 1_000
    challenge_poll_max_ms: int = 2_000

    # Portal waits
    navigation_timeout_ms: int = 60_000
    element_timeout_ms: int = 15_000
    row_result_timeout_ms: int = 30_000
    typing_delay_ms: int = 100

    # Batch
    batch_limit: int = 5
    inter_job_delay_ms: int = 2_000
    phase_max_attempts: int = 2

    # Browser
    headless: bool = True
    use_proxy: bool = False
    proxy_server: str | None = None
    block_heavy_resources: bool = True
    diagnostics_dir: str | None = None

    # Ingestion
    trace_max_chars: int = 4_000
    qr_payment_keyword: str = "QRIS"
    timezone: str = "Asia/Jakarta"

    def __post_init__(self) -> None:
        from clinic_kernel.exceptions import ConfigurationError

        if self.batch_limit < 1:
            raise ConfigurationError("batch_limit", "must be at least 1")
        if self.phase_max_attempts < 1:
            raise ConfigurationError("phase_max_attempts", "must be at least 1")
        if self.challenge_poll_min_ms > self.challenge_poll_max_ms:
            raise ConfigurationError(
                "challenge_poll_min_ms", "must not exceed challenge_poll_max_ms",
            )
        if self.trace_max_chars < 1:
            raise ConfigurationError("trace_max_chars", "must be at least 1")
        if self.use_proxy and not self.proxy_server:
            raise ConfigurationError("proxy_server", "required when use_proxy is set")
