"""IO utilities: case loader, case and results exporters."""

from .case_loader import CaseLoader
from .case_exporter import CaseExporter, ResultsExporter
from .case import Case

__all__ = [
    "CaseLoader",
    "CaseExporter",
    "ResultsExporter",
    "Case",
]
