"""Resolved pipeline step: one entry of a materialized step config."""

import re
from dataclasses import dataclass, field
from typing import Any

from scriptflow.utils import ConfigurationError, is_empty

_TRAILING_DIGITS = re.compile(r"\d+$")


def step_type_for_key(step_key: str) -> str:
    """Step type id for a config key ("ff_scale2" -> "ff_scale")."""
    return _TRAILING_DIGITS.sub("", step_key)


@dataclass
class ResolvedStep:
    """A single executable step in a materialized pipeline.

    Parameters are flat and already bound: connected inputs hold the
    upstream file name, aliases like ``xpixels`` are already ``x``.
    """

    step_key: str
    step_type: str
    parameters: dict[str, Any] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self):
        """Validate step after initialization."""
        if not self.step_key:
            raise ValueError("step_key is required")
        if not self.step_type:
            self.step_type = step_type_for_key(self.step_key)

    @property
    def display_name(self) -> str:
        return self.step_key

    def runnable_parameters(self) -> dict[str, Any]:
        """Parameters handed to the step script, with unset values dropped."""
        return {k: v for k, v in self.parameters.items() if v is not None}

    def to_config_entry(self) -> dict[str, Any]:
        """Serialize step as the value of its config key.

        Returns:
            Dictionary with description first, then parameters
        """
        entry: dict[str, Any] = {}
        if self.description:
            entry["description"] = self.description
        entry.update(self.parameters)
        return entry

    @classmethod
    def from_config_entry(cls, step_key: str, entry: Any) -> "ResolvedStep":
        """Create step from one key/value pair of a pipeline config file.

        Args:
            step_key: Config key (step type, possibly with a numeric suffix)
            entry: Mapping of parameters, may include ``description``

        Returns:
            ResolvedStep instance

        Raises:
            ConfigurationError: If entry is not a mapping
        """
        if entry is None:
            entry = {}
        if not isinstance(entry, dict):
            raise ConfigurationError(
                f"Step {step_key} must be an object of parameters, got {type(entry).__name__}"
            )

        parameters = {k: v for k, v in entry.items() if k != "description" and v is not None}
        return cls(
            step_key=step_key,
            step_type=step_type_for_key(step_key),
            parameters=parameters,
            description=entry.get("description") or "",
        )

    @classmethod
    def from_string(cls, spec: str) -> "ResolvedStep":
        """Parse step from string specification.

        Format: step_type:key=value,key=value

        Examples:
            "ff_flip" -> ResolvedStep("ff_flip", "ff_flip", {})
            "ff_scale:width=1280" -> ResolvedStep("ff_scale", "ff_scale", {"width": 1280})

        Args:
            spec: Step specification string

        Returns:
            ResolvedStep instance
        """
        step_type, _, rest = spec.partition(":")
        step_type = step_type.strip()
        if not step_type:
            raise ConfigurationError(f"Missing step type in {spec!r}")

        params = {}
        for pair in rest.split(","):
            if "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            params[key.strip()] = _parse_value(value.strip())

        return cls(step_key=step_type, step_type=step_type_for_key(step_type), parameters=params)

    def __str__(self) -> str:
        """String representation."""
        if self.parameters:
            param_str = ",".join(f"{k}={v}" for k, v in self.parameters.items())
            return f"{self.step_type}:{param_str}"
        return self.step_type


def _parse_value(value: str) -> Any:
    """Parse a string value to appropriate type.

    Args:
        value: String value

    Returns:
        Parsed value (int, float, bool, or string)
    """
    # Boolean
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False

    # Integer
    try:
        return int(value)
    except ValueError:
        pass

    # Float
    try:
        return float(value)
    except ValueError:
        pass

    # String
    return value


def parse_steps_string(steps_str: str) -> list[ResolvedStep]:
    """Parse multiple steps from comma-separated string.

    Format: step1,step2:param=value,param=value,step3

    A comma-separated token without ``=`` (or with ``type:`` in front of its
    first ``=``) starts a new step; ``key=value`` tokens belong to the step
    before them.

    Args:
        steps_str: Steps specification string

    Returns:
        List of ResolvedStep instances
    """
    specs: list[str] = []

    for token in steps_str.split(","):
        token = token.strip()
        if not token:
            continue
        head = token.split("=", 1)[0]
        if "=" not in token or ":" in head:
            specs.append(token)
        elif specs:
            specs[-1] += "," + token
        else:
            raise ConfigurationError(f"Parameter {token!r} has no step before it")

    return [ResolvedStep.from_string(spec) for spec in specs]
