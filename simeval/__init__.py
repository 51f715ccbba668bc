"""SimEval: Caching evaluation of noisy simulation oracles."""

import warnings

from simeval.estimates import EstimatedResponse, ResponseMap
from simeval.evaluation import EvaluationRequest, Evaluator, ModelInputs, Solution
from simeval.settings import Settings, active_settings
from simeval.solutions import Solutions

# Show deprecation warnings
warnings.filterwarnings("default", category=DeprecationWarning, module="simeval")


def infer_version() -> str:  # pragma: no cover
    """Determine the package version from the installation metadata."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(__name__)
    except PackageNotFoundError:
        # If the package is not installed, the version cannot be determined
        return "unknown"


__version__ = infer_version()
__all__ = [
    "__version__",
    "EstimatedResponse",
    "EvaluationRequest",
    "Evaluator",
    "ModelInputs",
    "ResponseMap",
    "Settings",
    "Solution",
    "Solutions",
    "active_settings",
]

del infer_version
