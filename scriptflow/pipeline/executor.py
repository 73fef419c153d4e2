"""Step executors: how a single resolved step is actually run."""

import json
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol, TYPE_CHECKING

from scriptflow.utils import StepExecutionError

if TYPE_CHECKING:
    from scriptflow.config import Config

logger = logging.getLogger(__name__)


@dataclass
class StepOutcome:
    """What a step executor reports back for one step."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class StepExecutor(Protocol):
    """Runs one step. The run driver only depends on this interface."""

    def execute(self, step_type: str, parameters: dict[str, Any], working_dir: Path) -> StepOutcome:
        ...


class ScriptStepExecutor:
    """Runs a step through its ff_* wrapper script.

    Each step's parameters are written to a temporary JSON config and the
    script is started as ``node <scripts>/<step>.js -C <file>`` (or
    ``bash <scripts>/<step>.sh -C <file>`` when there is no .js version)
    from the pipeline's config directory.
    """

    def __init__(self, config: Optional["Config"] = None):
        """Initialize executor.

        Args:
            config: Configuration object
        """
        if config is None:
            from scriptflow.config import Config
            config = Config.from_env()
        self.config = config

    def find_script(self, step_type: str) -> list[str]:
        """Build the interpreter + script part of the command for a step type.

        Raises:
            StepExecutionError: If neither a .js nor a .sh script exists
        """
        scripts_dir = self.config.scripts_dir.resolve()
        js_script = scripts_dir / f"{step_type}.js"
        sh_script = scripts_dir / f"{step_type}.sh"

        if js_script.is_file():
            return [self.config.node_bin, str(js_script)]
        if sh_script.is_file():
            return [self.config.bash_bin, str(sh_script)]

        raise StepExecutionError(
            step_type,
            f"Script not found: {step_type} (checked {js_script} and {sh_script})",
        )

    def write_step_config(self, step_type: str, parameters: dict[str, Any]) -> Path:
        """Write a step's parameters to a temporary config file."""
        self.config.ensure_dirs()
        fd, name = tempfile.mkstemp(
            prefix=f"temp_config_{step_type}_",
            suffix=".json",
            dir=self.config.temp_dir,
        )
        with os.fdopen(fd, "w") as f:
            json.dump(parameters, f, indent=2)
        return Path(name)

    def execute(self, step_type: str, parameters: dict[str, Any], working_dir: Path) -> StepOutcome:
        """Run a step script and wait for it to finish.

        Args:
            step_type: Step type id (script name)
            parameters: Step parameters, written to the script's config
            working_dir: Directory relative paths resolve against

        Returns:
            StepOutcome with the script's exit code and captured output

        Raises:
            StepExecutionError: If the script is missing, cannot be started or times out
        """
        command = self.find_script(step_type)
        config_path = self.write_step_config(step_type, parameters)
        command += ["-C", str(config_path)]

        env = dict(os.environ)
        env["SCRIPTFLOW_CONFIG_DIR"] = str(working_dir)

        logger.debug(f"Running {' '.join(command)} in {working_dir}")

        try:
            result = subprocess.run(
                command,
                cwd=working_dir,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.config.step_timeout,
            )
        except subprocess.TimeoutExpired:
            raise StepExecutionError(step_type, f"{step_type} timed out after {self.config.step_timeout}s")
        except OSError as e:
            raise StepExecutionError(step_type, f"Could not start {command[0]}: {e}")
        finally:
            if self.config.tidy:
                config_path.unlink(missing_ok=True)

        if result.stdout:
            logger.debug(f"{step_type} stdout:\n{result.stdout.rstrip()}")

        return StepOutcome(exit_code=result.returncode, stdout=result.stdout, stderr=result.stderr)
