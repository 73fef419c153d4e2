"""Step definition types for the pipeline system."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def _has_placeholder(value: Any) -> bool:
    return isinstance(value, str) and "<" in value and ">" in value


def _check_text(spec: "ParameterSpec", value: Any) -> Optional[str]:
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return None
    return f"{spec.name} must be text, got {type(value).__name__}"


def _check_number(spec: "ParameterSpec", value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return f"{spec.name} must be a number, got a boolean"
    if isinstance(value, (int, float)) or _has_placeholder(value):
        return None
    try:
        float(value)
    except (TypeError, ValueError):
        return f"{spec.name} must be a number, got {value!r}"
    return None


def _check_select(spec: "ParameterSpec", value: Any) -> Optional[str]:
    if not spec.options or _has_placeholder(value) or str(value) in spec.options:
        return None
    return f"{spec.name} must be one of {', '.join(spec.options)}, got {value!r}"


def _check_boolean(spec: "ParameterSpec", value: Any) -> Optional[str]:
    if isinstance(value, bool) or _has_placeholder(value):
        return None
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return None
    return f"{spec.name} must be true or false, got {value!r}"


class ParameterKind(str, Enum):
    """Kind of value a step parameter accepts."""

    STRING = "string"
    NUMBER = "number"
    FILE = "file"
    SELECT = "select"
    BOOLEAN = "boolean"

    def check(self, spec: "ParameterSpec", value: Any) -> Optional[str]:
        """Return an error message if ``value`` is not acceptable, else None."""
        return _CHECKS[self](spec, value)


_CHECKS = {
    ParameterKind.STRING: _check_text,
    ParameterKind.FILE: _check_text,
    ParameterKind.NUMBER: _check_number,
    ParameterKind.SELECT: _check_select,
    ParameterKind.BOOLEAN: _check_boolean,
}


class OutputNaming(Enum):
    """How a step's produced filename is inferred for downstream binding."""

    PASS_THROUGH = "pass_through"  # raw file reference, its own filepath
    INDEXED_PREFIX = "indexed_prefix"  # "{index}_{output}"
    DEFAULT_OUTPUT_FIELD = "default_output_field"  # "output" or "{step_id}.mp4"


@dataclass(frozen=True)
class ParameterSpec:
    """A named parameter of a step type."""

    name: str
    kind: ParameterKind = ParameterKind.STRING
    default: Any = None
    options: tuple[str, ...] = ()
    required: bool = False
    dynamic: bool = False
    dynamic_pattern: Optional[str] = None  # e.g. "input%d"
    max_dynamic: Optional[int] = None
    description: str = ""
    key: Optional[str] = None  # field name in the script config, if different

    @property
    def config_key(self) -> str:
        return self.key or self.name

    def slot_name(self, number: int) -> str:
        """Name of the dynamic slot with the given number."""
        pattern = self.dynamic_pattern or f"{re.sub(r'[0-9]+$', '', self.name)}%d"
        return pattern.replace("%d", str(number))

    def slot_number(self, name: str) -> Optional[int]:
        """Return the slot number if ``name`` is one of this parameter's dynamic slots."""
        if not self.dynamic:
            return None
        pattern = self.dynamic_pattern or f"{re.sub(r'[0-9]+$', '', self.name)}%d"
        prefix, _, suffix = pattern.partition("%d")
        match = re.fullmatch(re.escape(prefix) + r"(\d+)" + re.escape(suffix), name)
        return int(match.group(1)) if match else None

    def check(self, value: Any) -> Optional[str]:
        """Validate a non-empty value against this parameter's kind."""
        return self.kind.check(self, value)


@dataclass(frozen=True)
class OutputSpec:
    """A named output socket of a step type."""

    name: str
    data_kind: str = "video"


@dataclass(frozen=True)
class StepDefinition:
    """Static description of a step type: its parameters and outputs."""

    step_id: str
    name: str
    category: str
    description: str = ""
    parameters: tuple[ParameterSpec, ...] = ()
    outputs: tuple[OutputSpec, ...] = (OutputSpec("video"),)
    naming: OutputNaming = OutputNaming.DEFAULT_OUTPUT_FIELD
    executable: bool = True
    _by_name: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        """Validate definition after initialization."""
        if not self.step_id:
            raise ValueError("step_id is required")
        by_name = {}
        for spec in self.parameters:
            if spec.name in by_name:
                raise ValueError(f"Duplicate parameter {spec.name!r} in step {self.step_id}")
            by_name[spec.name] = spec
        # frozen dataclass, so bypass __setattr__ for the lookup cache
        object.__setattr__(self, "_by_name", by_name)

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]

    @property
    def output_names(self) -> list[str]:
        return [o.name for o in self.outputs]

    def parameter(self, name: str) -> Optional[ParameterSpec]:
        """Look up a declared parameter by name."""
        return self._by_name.get(name)

    def dynamic_base(self, name: str) -> Optional[ParameterSpec]:
        """Find the dynamic parameter whose numbered slots include ``name``.

        Declared parameters are never slots, so ``input1`` on a step that
        declares ``input1`` returns None.
        """
        if name in self._by_name:
            return None
        for spec in self.parameters:
            if spec.slot_number(name) is not None:
                return spec
        return None

    def accepts_input(self, name: str) -> bool:
        """Check whether ``name`` is a declared parameter or a dynamic slot."""
        return name in self._by_name or self.dynamic_base(name) is not None

    def default_parameters(self) -> dict[str, Any]:
        """Return parameter defaults for a freshly created node.

        Returns:
            Dictionary of parameter names to default values
        """
        return {p.name: p.default for p in self.parameters if p.default is not None}


# Step category constants
CATEGORY_INPUT = "input"  # raw files, downloads
CATEGORY_SIZE = "size"  # scale, crop, pad, rotate, flip
CATEGORY_EFFECTS = "effects"  # blur, sharpen, colour, lut
CATEGORY_COMPOSITION = "composition"  # overlay, stack, watermark, text, subtitles, audio
CATEGORY_FORMAT = "format"  # convert, transcode, social media
CATEGORY_TIMING = "timing"  # cut, fps, middle, grouptime
CATEGORY_ASSEMBLY = "assembly"  # concat, append, transition
CATEGORY_UTILITIES = "utilities"  # image, kenburns, thumbnail, proxy
CATEGORY_CUSTOM = "custom"  # raw ffmpeg parameters

ALL_CATEGORIES = [
    CATEGORY_INPUT,
    CATEGORY_SIZE,
    CATEGORY_EFFECTS,
    CATEGORY_COMPOSITION,
    CATEGORY_FORMAT,
    CATEGORY_TIMING,
    CATEGORY_ASSEMBLY,
    CATEGORY_UTILITIES,
    CATEGORY_CUSTOM,
]
