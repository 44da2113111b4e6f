# Tools module
from .rss_tool import RSSTool, extract_lead_image
from .worker_pool import WorkerPool

__all__ = [
    "RSSTool",
    "extract_lead_image",
    "WorkerPool",
]
