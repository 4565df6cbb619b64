"""Configuration for gavel, loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

from gavel.comparator import ExtraLinePolicy, ShortLinePolicy
from gavel.executor import SandboxLimits
from gavel.reporter import ConsoleReporter, HttpReporter, HttpReporterConfig, Reporter


@dataclass
class Config:
    report_url: str = ""  # empty -> print results to stdout
    report_timeout: float = 10.0  # seconds
    work_dir: str | None = None  # None -> system temp dir
    keep_scratch: bool = False
    compile_timeout: float = 30.0  # seconds
    memory_headroom_kb: int = 16 * 1024
    output_limit_kb: int = 64 * 1024
    poll_interval_ms: int = 5
    recheck_address_space_kb: int = 4 * 1024 * 1024  # 0 -> never re-run crashed cases
    run_as_uid: int | None = None
    run_as_gid: int | None = None
    extra_lines: ExtraLinePolicy = ExtraLinePolicy.STRICT
    short_lines: ShortLinePolicy = ShortLinePolicy.PREFIX
    verbose: bool = True

    def sandbox_limits(self) -> SandboxLimits:
        return SandboxLimits(
            memory_headroom_kb=self.memory_headroom_kb,
            output_limit_kb=self.output_limit_kb,
            poll_interval_ms=self.poll_interval_ms,
            recheck_address_space_kb=self.recheck_address_space_kb,
            run_as_uid=self.run_as_uid,
            run_as_gid=self.run_as_gid,
        )

    def create_reporter(self) -> Reporter:
        """HTTP reporter when a report URL is configured, console otherwise."""
        if self.report_url:
            return HttpReporter(
                HttpReporterConfig(base_url=self.report_url, timeout=self.report_timeout)
            )
        return ConsoleReporter()

    @classmethod
    def from_env(cls, **overrides) -> Config:
        kwargs: dict = {}
        env_map: dict[str, tuple[str, type]] = {
            "GAVEL_REPORT_URL": ("report_url", str),
            "GAVEL_REPORT_TIMEOUT": ("report_timeout", float),
            "GAVEL_WORK_DIR": ("work_dir", str),
            "GAVEL_COMPILE_TIMEOUT": ("compile_timeout", float),
            "GAVEL_MEMORY_HEADROOM_KB": ("memory_headroom_kb", int),
            "GAVEL_OUTPUT_LIMIT_KB": ("output_limit_kb", int),
            "GAVEL_POLL_INTERVAL_MS": ("poll_interval_ms", int),
            "GAVEL_RECHECK_ADDRESS_SPACE_KB": ("recheck_address_space_kb", int),
            "GAVEL_RUN_AS_UID": ("run_as_uid", int),
            "GAVEL_RUN_AS_GID": ("run_as_gid", int),
            "GAVEL_EXTRA_LINES": ("extra_lines", ExtraLinePolicy),
            "GAVEL_SHORT_LINES": ("short_lines", ShortLinePolicy),
        }
        for env_var, (field_name, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val is not None:
                try:
                    kwargs[field_name] = conv(val)
                except ValueError:
                    raise ValueError(f"invalid value for {env_var}: {val!r}") from None
        # GAVEL_KEEP_SCRATCH: "1" or "true" keeps the workspace after judging
        keep = os.environ.get("GAVEL_KEEP_SCRATCH")
        if keep is not None:
            kwargs["keep_scratch"] = keep.lower() in ("1", "true", "yes")
        quiet = os.environ.get("GAVEL_QUIET")
        if quiet is not None:
            kwargs["verbose"] = quiet.lower() in ("0", "false", "no")
        kwargs.update(overrides)
        config = cls(**kwargs)
        config.validate()
        return config

    def validate(self) -> None:
        if self.compile_timeout <= 0:
            raise ValueError("compile_timeout must be positive")
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.memory_headroom_kb < 0 or self.output_limit_kb <= 0:
            raise ValueError("memory_headroom_kb and output_limit_kb must not be negative")
        if self.recheck_address_space_kb < 0:
            raise ValueError("recheck_address_space_kb must not be negative")
