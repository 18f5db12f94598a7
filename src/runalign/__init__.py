"""Multi-run alignment, merge, downsampling and annotation engine."""

from runalign.models import AxisKey, MergedFrame, Run, Sample
from runalign.pipeline import ChartResult, process_chart_data, run_chart_request
from runalign.worker import ChartWorker, WorkerPool

__version__ = "0.1.0"

__all__ = [
    "AxisKey",
    "ChartResult",
    "ChartWorker",
    "MergedFrame",
    "Run",
    "Sample",
    "WorkerPool",
    "__version__",
    "process_chart_data",
    "run_chart_request",
]
