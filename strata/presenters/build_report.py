"""
Build report presenter for displaying build results.

Handles all output formatting for build results.
"""

from ..core.interfaces.presenter import IPresenter
from ..core.models.build import BuildResult, StageOutcome, StageState
from .formatting import format_duration, format_exit_code, format_hash_prefix


class BuildReportPresenter:
    """
    Formats and displays build reports.

    One row per planned stage, so stages that never ran (skipped) read
    differently from stages that ran and failed and from cache hits.
    """

    HEADERS = ["Stage", "State", "Source", "Fingerprint", "Duration"]

    def __init__(self, presenter: IPresenter) -> None:
        """
        Initialize report presenter.

        Args:
            presenter: Base presenter for output
        """
        self._out = presenter

    def show_report(self, result: BuildResult, quiet: bool = False) -> None:
        """
        Display a build report.

        Args:
            result: Result of a build request
            quiet: If True, only failures are shown
        """
        if quiet and result.succeeded:
            return

        self._out.print("")
        self._out.print("=" * 60)
        self._out.print("STRATA Build " + ("Complete" if result.succeeded else "Failed"))
        self._out.print("=" * 60)
        self._out.print(f"Target: {result.target}")
        self._out.print(f"Duration: {format_duration(result.duration)}")
        self._out.print("")

        self._out.print_table(
            self.HEADERS, [self._row(result.stages[name]) for name in result.plan]
        )
        self._out.print("")

        if result.succeeded:
            self._out.print_success(
                f"{result.target} built: {len(result.executed_stages)} executed, "
                f"{len(result.cached_stages)} from cache"
            )
            return

        if result.failed_stage:
            failed = result.stages[result.failed_stage]
            self._out.print_error(f"Stage '{result.failed_stage}' failed")
            self._out.print(f"Exit status: {format_exit_code(failed.exit_status)}")
            if failed.error:
                self._out.print(f"Reason: {failed.error}")
        if result.skipped_stages:
            self._out.print_warning(
                "Not started (dependency failed): " + ", ".join(result.skipped_stages)
            )

    def _row(self, outcome: StageOutcome) -> list[str]:
        state = StageState(outcome.state)
        if outcome.cache_hit:
            source = "cache"
        elif StageState.RUNNING in outcome.transitions:
            source = "executed"
        else:
            source = "-"
        return [
            outcome.name,
            state.value,
            source,
            format_hash_prefix(outcome.fingerprint),
            format_duration(outcome.duration) if outcome.duration is not None else "-",
        ]
