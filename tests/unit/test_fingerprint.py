"""
Unit tests for FingerprintService.

A fingerprint must change whenever any input of the stage or its
ancestors changes, and must not change for anything else.
"""

from pathlib import Path

import pytest

from strata.core.models import Artifact, Stage
from strata.hashing import TreeHasher
from strata.services.cache import FingerprintService


def _artifact(fingerprint: str, name: str | None = None) -> Artifact:
    return Artifact(
        id=f"art-{fingerprint[:8]}",
        stage=name,
        fingerprint=fingerprint,
        content_digest=fingerprint,
        path=Path("/tmp/unused"),
        created_at=1.0,
    )


PARENT = _artifact("aa" * 32, "base")


@pytest.fixture
def service(context_dir) -> FingerprintService:
    return FingerprintService(TreeHasher("sha256"), context_dir=context_dir)


class TestFingerprint:
    """Tests for FingerprintService.fingerprint."""

    def test_deterministic(self, service):
        """Equal inputs give equal fingerprints."""
        stage = Stage(name="test", parent="source", commands=["mvn test"])

        assert service.fingerprint(stage, PARENT) == service.fingerprint(stage, PARENT)

    def test_parent_change_propagates(self, service):
        """A different parent artifact gives a different fingerprint."""
        stage = Stage(name="test", parent="source", commands=["mvn test"])

        assert service.fingerprint(stage, PARENT) != service.fingerprint(
            stage, _artifact("bb" * 32, "base")
        )

    def test_commands_are_inputs(self, service):
        """Changing or reordering commands changes the fingerprint."""
        first = Stage(name="test", parent="source", commands=["mvn compile", "mvn test"])
        reordered = Stage(name="test", parent="source", commands=["mvn test", "mvn compile"])
        edited = Stage(name="test", parent="source", commands=["mvn compile", "mvn verify"])

        keys = {service.fingerprint(s, PARENT) for s in (first, reordered, edited)}

        assert len(keys) == 3

    def test_stage_name_is_not_an_input(self, service):
        """Two stages doing the same work on the same parent share a key."""
        a = Stage(name="a", parent="base", commands=["make"])
        b = Stage(name="b", parent="base", commands=["make"])

        assert service.fingerprint(a, PARENT) == service.fingerprint(b, PARENT)

    def test_declared_build_args_are_inputs(self, service):
        """Overrides of declared args change the fingerprint."""
        stage = Stage(
            name="pom", parent="base", commands=["mvn -v"], args={"MAVEN_OPTS": "-Xmx1g"}
        )

        default = service.fingerprint(stage, PARENT)
        explicit_default = service.fingerprint(stage, PARENT, build_args={"MAVEN_OPTS": "-Xmx1g"})
        overridden = service.fingerprint(stage, PARENT, build_args={"MAVEN_OPTS": "-Xmx2g"})

        assert default == explicit_default
        assert default != overridden

    def test_undeclared_build_args_are_ignored(self, service):
        """Args the stage does not declare cannot influence it."""
        stage = Stage(name="pom", parent="base", commands=["mvn -v"])

        assert service.fingerprint(stage, PARENT) == service.fingerprint(
            stage, PARENT, build_args={"JAVA_VERSION": "11"}
        )

    def test_context_file_change(self, service, context_dir):
        """Editing a copied context file changes the fingerprint."""
        stage = Stage(
            name="source",
            parent="pom",
            commands=[{"instruction": "COPY", "argument": "app/src src"}],
        )
        before = service.fingerprint(stage, PARENT)

        (context_dir / "app" / "src" / "main" / "Main.java").write_text("class Main { int x; }\n")

        assert service.fingerprint(stage, PARENT) != before

    def test_unrelated_context_change_ignored(self, service, context_dir):
        """Files the stage does not copy are not inputs."""
        stage = Stage(
            name="source",
            parent="pom",
            commands=[{"instruction": "COPY", "argument": "app/src src"}],
        )
        before = service.fingerprint(stage, PARENT)

        (context_dir / "README.md").write_text("docs\n")
        (context_dir / "app" / "pom.xml").write_text("<project/>\n")

        assert service.fingerprint(stage, PARENT) == before

    def test_inherited_env_wins_over_stage_arg(self, service, context_dir):
        """COPY sources expand with ENV over ARG, as the executor does."""
        parent = PARENT.model_copy(update={"env": {"SETTINGS": "maven-settings.xml"}})
        stage = Stage(
            name="pom",
            parent="base",
            args={"SETTINGS": "app/pom.xml"},
            commands=[{"instruction": "COPY", "argument": "${SETTINGS} /root/.m2/settings.xml"}],
        )
        before = service.fingerprint(stage, parent)

        (context_dir / "app" / "pom.xml").write_text("<project><version>2</version></project>\n")
        assert service.fingerprint(stage, parent) == before

        (context_dir / "maven-settings.xml").write_text("<settings><offline>true</offline></settings>\n")
        assert service.fingerprint(stage, parent) != before

    def test_missing_context_source_still_fingerprints(self, service, context_dir):
        """A missing COPY source is recorded; creating it changes the key."""
        stage = Stage(
            name="docs",
            parent="pom",
            commands=[{"instruction": "COPY", "argument": "docs /docs"}],
        )
        missing = service.fingerprint(stage, PARENT)

        (context_dir / "docs").mkdir()

        assert service.fingerprint(stage, PARENT) != missing

    def test_copy_from_dependency_is_an_input(self, service):
        """The fingerprint of a COPY --from artifact feeds the key."""
        stage = Stage(
            name="runtime",
            parent="base",
            commands=[
                {"instruction": "COPY", "argument": "/app/target/app.jar .", "from_stage": "package"}
            ],
        )

        one = service.fingerprint(stage, PARENT, dependencies={"package": _artifact("cc" * 32)})
        two = service.fingerprint(stage, PARENT, dependencies={"package": _artifact("dd" * 32)})

        assert one != two

    def test_missing_dependency_artifact(self, service):
        """A COPY --from stage without an artifact is a KeyError."""
        stage = Stage(
            name="runtime",
            parent="base",
            commands=[{"instruction": "COPY", "argument": "/out out", "from_stage": "package"}],
        )

        with pytest.raises(KeyError):
            service.fingerprint(stage, PARENT)

    def test_algorithm_is_part_of_the_key(self, context_dir):
        """Switching hash algorithms never reuses old keys."""
        stage = Stage(name="test", parent="source", commands=["mvn test"])
        sha = FingerprintService(TreeHasher("sha256"), context_dir=context_dir)
        blake = FingerprintService(TreeHasher("blake3"), context_dir=context_dir)

        assert sha.fingerprint(stage, PARENT) != blake.fingerprint(stage, PARENT)
