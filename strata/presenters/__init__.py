"""
Output presenters for strata builds.
"""

from .build_report import BuildReportPresenter
from .console import ConsolePresenter
from .pipeline_renderer import PipelineRenderer

__all__ = ["BuildReportPresenter", "ConsolePresenter", "PipelineRenderer"]
