"""scriptflow - Pipeline orchestration for ff_* video wrapper scripts."""

__version__ = "0.1.0"

from scriptflow.config import Config
from scriptflow.utils import ScriptflowError

__all__ = ["Config", "ScriptflowError", "__version__"]
