"""
Unit tests for BuildPlanner.
"""

import pytest

from strata.core.exceptions import UnknownStageError
from strata.core.models import Stage
from strata.services.graph import DependencyGraph
from strata.services.planning import BuildPlanner


@pytest.fixture
def planner(maven_stages) -> BuildPlanner:
    return BuildPlanner(DependencyGraph.from_stages(maven_stages))


class TestBuildPlanner:
    """Tests for BuildPlanner.plan."""

    def test_plan_test_target(self, planner):
        """Only the ancestors of the target are planned."""
        plan = planner.plan("test")

        assert plan.target == "test"
        assert plan.names == ["base", "pom", "source", "test"]

    def test_plan_dependency_check(self, planner):
        """Sibling branches are not part of the plan."""
        assert planner.plan("dependency_check").names == ["base", "pom", "dependency_check"]

    def test_plan_root(self, planner):
        """A root target plans only itself."""
        assert planner.plan("base").names == ["base"]

    def test_plan_is_repeatable(self, planner):
        """Planning has no side effects."""
        assert planner.plan("package").names == planner.plan("package").names

    def test_shared_dependency_planned_once(self, maven_stages):
        """A stage reachable along several paths appears once, before its dependents."""
        runtime = Stage(
            name="runtime",
            parent="test",
            commands=[
                {"instruction": "COPY", "argument": "/app/target/app.jar .", "from_stage": "package"}
            ],
        )
        planner = BuildPlanner(DependencyGraph.from_stages([*maven_stages, runtime]))

        names = planner.plan("runtime").names

        assert sorted(names) == ["base", "package", "pom", "runtime", "source", "test"]
        assert len(names) == len(set(names))
        for stage in maven_stages + [runtime]:
            for dep in stage.dependencies:
                if stage.name in names:
                    assert names.index(dep) < names.index(stage.name)
        assert names[-1] == "runtime"

    def test_unknown_target(self, planner):
        """Planning an unknown target raises UnknownStageError."""
        with pytest.raises(UnknownStageError) as exc_info:
            planner.plan("deploy")

        assert exc_info.value.stage_name == "deploy"

    def test_missing_dependency(self):
        """A required stage that was never defined fails planning."""
        graph = DependencyGraph.from_stages(
            [Stage(name="base", base="scratch"), Stage(name="test", parent="source")]
        )

        with pytest.raises(UnknownStageError) as exc_info:
            BuildPlanner(graph).plan("test")

        assert exc_info.value.stage_name == "source"
        assert exc_info.value.context["required_by"] == "test"

    def test_plan_carries_stage_definitions(self, planner, maven_stages):
        """Planned stages are the graph's stage objects."""
        plan = planner.plan("package")

        assert plan.get("package") == maven_stages[-1]
        assert plan.get("test") is None
        assert len(plan) == 4
