"""Configuration management for fleetvm."""

import getpass
import os
from datetime import timedelta
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .providers.base import CreateOpts


class Config:
    """Application configuration loaded from .env files."""

    def __init__(self, project_dir: Optional[Path] = None):
        """Initialize config from .env and the process environment."""
        self.project_dir = project_dir or Path.cwd()

        load_dotenv(self.project_dir / ".env")

        # Providers to register, in order
        providers = os.getenv("FLEETVM_PROVIDERS", "local")
        self.providers = [p.strip().lower() for p in providers.split(",") if p.strip()]

        # Seconds to wait for concurrent dispatch; unset waits forever
        timeout = os.getenv("FLEETVM_DISPATCH_TIMEOUT", "").strip()
        self.dispatch_timeout = float(timeout) if timeout else None

        self.local_user = os.getenv("FLEETVM_LOCAL_USER") or _current_user()
        self.default_lifetime_hours = float(os.getenv("FLEETVM_DEFAULT_LIFETIME_HOURS", "12"))

    def validate(self) -> List[str]:
        """Validate configuration fields."""
        errors = []

        if not self.providers:
            errors.append("FLEETVM_PROVIDERS must name at least one provider")
        if self.dispatch_timeout is not None and self.dispatch_timeout <= 0:
            errors.append("FLEETVM_DISPATCH_TIMEOUT must be positive")
        if self.default_lifetime_hours <= 0:
            errors.append("FLEETVM_DEFAULT_LIFETIME_HOURS must be positive")
        if not self.local_user:
            errors.append("FLEETVM_LOCAL_USER could not be determined")

        return errors

    def create_opts(self) -> CreateOpts:
        """Default creation options."""
        return CreateOpts(
            lifetime=timedelta(hours=self.default_lifetime_hours),
            vm_providers=list(self.providers),
        )


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "root"
