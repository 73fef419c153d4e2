"""Keyword placeholders substituted into step parameters before each step runs.

Supported placeholders:

    <ENV_NAME>                  environment variable, underscores shown as spaces
    <FOLDER_NAME>               name of the config folder
    <FOLDER_TITLE>              folder name with underscores shown as spaces
    <DATE_fmt>                  current date/time, tokens %d %m %y %Y %A %B %H %M %S
    <RANDOM_VIDEO>              random .mp4/.mov in the config folder
    <RANDOM_VIDEO_FILTER_sub>   same, restricted to names containing "sub"
    <RANDOM_COLOUR>             random palette colour, new each step
    <RANDOM_CONTRAST_COLOUR>    light or dark colour readable on <RANDOM_COLOUR>
    <CONSTANT_RANDOM_COLOUR>    random palette colour, fixed for the whole run
    <CONSTANT_CONTRAST_COLOUR>  contrast colour for <CONSTANT_RANDOM_COLOUR>
    <CALC_expr>                 arithmetic result, e.g. <CALC_1920/2>

Anything else in angle brackets is left as it is.
"""

import json
import logging
import os
import random
import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from scriptflow.pipeline.expressions import ExpressionError, evaluate, format_number

logger = logging.getLogger(__name__)

# Tailwind palette, 11 shades per colour family
PALETTE = tuple("""
#f8fafc #f1f5f9 #e2e8f0 #cbd5e1 #94a3b8 #64748b #475569 #334155 #1e293b #0f172a #020617
#f9fafb #f3f4f6 #e5e7eb #d1d5db #9ca3af #6b7280 #4b5563 #374151 #1f2937 #111827 #030712
#fafafa #f4f4f5 #e4e4e7 #d4d4d8 #a1a1aa #71717a #52525b #3f3f46 #27272a #18181b #09090b
#fafafa #f5f5f5 #e5e5e5 #d4d4d4 #a3a3a3 #737373 #525252 #404040 #262626 #171717 #0a0a0a
#fafaf9 #f5f5f4 #e7e5e4 #d6d3d1 #a8a29e #78716c #57534e #44403c #292524 #1c1917 #0c0a09
#fef2f2 #fee2e2 #fecaca #fca5a5 #f87171 #ef4444 #dc2626 #b91c1c #991b1b #7f1d1d #450a0a
#fff7ed #ffedd5 #fed7aa #fdba74 #fb923c #f97316 #ea580c #c2410c #9a3412 #7c2d12 #431407
#fffbeb #fef3c7 #fde68a #fcd34d #fbbf24 #f59e0b #d97706 #b45309 #92400e #78350f #451a03
#fefce8 #fef9c3 #fef08a #fde047 #facc15 #eab308 #ca8a04 #a16207 #854d0e #713f12 #422006
#f7fee7 #ecfccb #d9f99d #bef264 #a3e635 #84cc16 #65a30d #4d7c0f #3f6212 #365314 #1a2e05
#f0fdf4 #dcfce7 #bbf7d0 #86efac #4ade80 #22c55e #16a34a #15803d #166534 #14532d #052e16
#ecfdf5 #d1fae5 #a7f3d0 #6ee7b7 #34d399 #10b981 #059669 #047857 #065f46 #064e3b #022c22
#f0fdfa #ccfbf1 #99f6e4 #5eead4 #2dd4bf #14b8a6 #0d9488 #0f766e #115e59 #134e4a #042f2e
#ecfeff #cffafe #a5f3fc #67e8f9 #22d3ee #06b6d4 #0891b2 #0e7490 #155e75 #164e63 #083344
#f0f9ff #e0f2fe #bae6fd #7dd3fc #38bdf8 #0ea5e9 #0284c7 #0369a1 #075985 #0c4a6e #082f49
#eff6ff #dbeafe #bfdbfe #93c5fd #60a5fa #3b82f6 #2563eb #1d4ed8 #1e40af #1e3a8a #172554
#eef2ff #e0e7ff #c7d2fe #a5b4fc #818cf8 #6366f1 #4f46e5 #4338ca #3730a3 #312e81 #1e1b4b
#f5f3ff #ede9fe #ddd6fe #c4b5fd #a78bfa #8b5cf6 #7c3aed #6d28d9 #5b21b6 #4c1d95 #2e1065
#faf5ff #f3e8ff #e9d5ff #d8b4fe #c084fc #a855f7 #9333ea #7e22ce #6b21a8 #581c87 #3b0764
#fdf4ff #fae8ff #f5d0fe #f0abfc #e879f9 #d946ef #c026d3 #a21caf #86198f #701a75 #4a044e
#fdf2f8 #fce7f3 #fbcfe8 #f9a8d4 #f472b6 #ec4899 #db2777 #be185d #9d174d #831843 #500724
#fff1f2 #ffe4e6 #fecdd3 #fda4af #fb7185 #f43f5e #e11d48 #be123c #9f1239 #881337 #4c0519
""".split())

LIGHT_COLOUR = "#fafafa"
DARK_COLOUR = "#171717"

RANDOM_VIDEO_EXTENSIONS = {".mp4", ".mov"}

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_ENV = re.compile(r"<ENV_([^<>]*)>")
_DATE = re.compile(r"<DATE_([^<>]*)>")
_DATE_TOKEN = re.compile(r"%[dmyYABHMS]")
_RANDOM_VIDEO_FILTER = re.compile(r"<RANDOM_VIDEO_FILTER_([^<>]*)>")
_CALC = re.compile(r"<CALC_([^<>]*)>")


def contrast_colour(colour: str) -> str:
    """Pick the light or dark colour that reads well on ``colour``.

    Uses perceived brightness (0.299R + 0.587G + 0.114B): above 128 gets
    the dark colour, otherwise the light one.
    """
    hex_value = colour.lstrip("#")
    r, g, b = (int(hex_value[i:i + 2], 16) for i in (0, 2, 4))
    brightness = (r * 299 + g * 587 + b * 114) / 1000
    return DARK_COLOUR if brightness > 128 else LIGHT_COLOUR


@dataclass(frozen=True)
class RunContext:
    """Values fixed for the duration of one run."""

    config_dir: Path
    constant_colour: str
    constant_contrast: str

    @classmethod
    def create(cls, config_dir: Path | str, seed: Optional[int] = None) -> "RunContext":
        """Create context for a new run.

        Args:
            config_dir: Directory the pipeline config lives in
            seed: Picks the constant colour (process id + start time if None)
        """
        if seed is None:
            seed = os.getpid() + int(time.time() * 1000)
        colour = PALETTE[seed % len(PALETTE)]
        return cls(
            config_dir=Path(config_dir).resolve(),
            constant_colour=colour,
            constant_contrast=contrast_colour(colour),
        )


class KeywordSubstituter:
    """Replaces keyword placeholders in step parameters.

    One substituter serves a whole run; the constant colours come from its
    RunContext, everything random is re-picked on every call.
    """

    def __init__(
        self,
        context: RunContext,
        environ: Optional[Mapping[str, str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.context = context
        self.environ = os.environ if environ is None else environ
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()

    def substitute(self, text: str, escape: Callable[[str], str] = str) -> str:
        """Replace every recognised placeholder in ``text``.

        Args:
            text: Text containing placeholders
            escape: Applied to each substituted value (e.g. JSON string escaping)

        Returns:
            Text with placeholders replaced
        """
        if "<" not in text:
            return text

        folder = self.context.config_dir.name
        text = _ENV.sub(lambda m: escape(self.environ.get(m.group(1), "").replace("_", " ")), text)
        text = text.replace("<FOLDER_NAME>", escape(folder))
        text = text.replace("<FOLDER_TITLE>", escape(folder.replace("_", " ")))

        now = self.clock()
        text = _DATE.sub(lambda m: escape(self._format_date(m.group(1), now)), text)

        if "<RANDOM_VIDEO>" in text:
            videos = self._videos()
            if videos:
                text = text.replace("<RANDOM_VIDEO>", escape(self.rng.choice(videos)))
            else:
                logger.warning(f"No videos in {self.context.config_dir} for <RANDOM_VIDEO>")

        text = _RANDOM_VIDEO_FILTER.sub(lambda m: self._random_filtered(m, escape), text)

        colour = self.rng.choice(PALETTE)
        text = text.replace("<RANDOM_COLOUR>", colour)
        text = text.replace("<RANDOM_CONTRAST_COLOUR>", contrast_colour(colour))
        text = text.replace("<CONSTANT_RANDOM_COLOUR>", self.context.constant_colour)
        text = text.replace("<CONSTANT_CONTRAST_COLOUR>", self.context.constant_contrast)

        return _CALC.sub(self._calculate, text)

    def substitute_parameters(self, parameters: dict[str, Any]) -> dict[str, Any]:
        """Substitute placeholders anywhere in a step's parameters.

        The parameters are serialized to JSON, substituted with JSON string
        escaping and parsed back, so substituted values can contain quotes.
        """
        text = json.dumps(parameters, ensure_ascii=False)
        return json.loads(self.substitute(text, escape=lambda s: json.dumps(s, ensure_ascii=False)[1:-1]))

    @staticmethod
    def _format_date(fmt: str, now: datetime) -> str:
        values = {
            "%d": f"{now.day:02d}",
            "%m": f"{now.month:02d}",
            "%y": f"{now.year % 100:02d}",
            "%Y": str(now.year),
            "%A": _WEEKDAYS[now.weekday()],
            "%B": _MONTHS[now.month - 1],
            "%H": f"{now.hour:02d}",
            "%M": f"{now.minute:02d}",
            "%S": f"{now.second:02d}",
        }
        return _DATE_TOKEN.sub(lambda m: values[m.group(0)], fmt)

    def _videos(self, contains: str = "") -> list[str]:
        config_dir = self.context.config_dir
        if not config_dir.is_dir():
            return []
        return [
            str(config_dir / p.name)
            for p in sorted(config_dir.iterdir())
            if p.suffix.lower() in RANDOM_VIDEO_EXTENSIONS and contains in p.name
        ]

    def _random_filtered(self, match: re.Match, escape: Callable[[str], str]) -> str:
        videos = self._videos(match.group(1))
        if not videos:
            logger.warning(f"No videos matching {match.group(1)!r} in {self.context.config_dir}")
            return match.group(0)
        return escape(self.rng.choice(videos))

    @staticmethod
    def _calculate(match: re.Match) -> str:
        try:
            return format_number(evaluate(match.group(1)))
        except ExpressionError as e:
            logger.warning(f"Leaving {match.group(0)} unchanged: {e}")
            return match.group(0)
