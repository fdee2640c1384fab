"""admit: config admission gate with deterministic execution fingerprints."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("admit")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from admit.api import AdmissionDecision, check_path, evaluate_admission
from admit.codes import ExitCode
from admit.kernel.environ import EnvSnapshot
from admit.kernel.schema import Schema, SchemaError

__all__ = [
    "__version__",
    "AdmissionDecision",
    "EnvSnapshot",
    "ExitCode",
    "Schema",
    "SchemaError",
    "check_path",
    "evaluate_admission",
]
