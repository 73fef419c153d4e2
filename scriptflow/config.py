"""Configuration management for scriptflow."""

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Configuration for scriptflow."""

    # Directory holding the ff_*.js / ff_*.sh step scripts
    scripts_dir: Path = field(default_factory=lambda: Path("./js"))

    # Where per-step temp configs are written
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    # Final output filename, relative to the pipeline config directory
    output_filename: str = "output.mp4"

    # Delete intermediate files after a run
    tidy: bool = True

    # Per-step timeout in seconds (None = wait forever)
    step_timeout: Optional[float] = None

    # Interpreters for step scripts
    node_bin: str = "node"
    bash_bin: str = "bash"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        load_dotenv()

        scripts_dir = os.getenv("SCRIPTFLOW_SCRIPTS_DIR")
        temp_dir = os.getenv("SCRIPTFLOW_TEMP_DIR")
        timeout = os.getenv("SCRIPTFLOW_STEP_TIMEOUT")

        return cls(
            scripts_dir=Path(scripts_dir) if scripts_dir else Path("./js"),
            temp_dir=Path(temp_dir) if temp_dir else Path(tempfile.gettempdir()),
            output_filename=os.getenv("SCRIPTFLOW_OUTPUT", "output.mp4"),
            tidy=_env_bool("SCRIPTFLOW_TIDY", True),
            step_timeout=float(timeout) if timeout else None,
            node_bin=os.getenv("SCRIPTFLOW_NODE", "node"),
            bash_bin=os.getenv("SCRIPTFLOW_BASH", "bash"),
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of warnings."""
        warnings = []

        if not self.scripts_dir.is_dir():
            warnings.append(f"Scripts directory not found: {self.scripts_dir}")

        if shutil.which(self.node_bin) is None:
            warnings.append(f"{self.node_bin} not found on PATH - .js steps will fail")

        if shutil.which("ffmpeg") is None:
            warnings.append("ffmpeg not found on PATH - steps will fail")

        if self.step_timeout is not None and self.step_timeout <= 0:
            warnings.append("SCRIPTFLOW_STEP_TIMEOUT must be positive - ignoring")
            self.step_timeout = None

        return warnings

    def ensure_dirs(self) -> None:
        """Create required directories."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
