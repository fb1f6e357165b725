"""
Happy path test fixtures.

Provides a Maven-style project, a multi-stage build file for it and local
directories standing in for the maven and openjdk base images. The fake
``mvn`` is a shell script, so every stage runs real commands.
"""

from pathlib import Path

import pytest

from strata import BuildService, load_buildfile, load_settings

MVN_SCRIPT = """\
#!/bin/sh
# Minimal stand-in for mvn: the last argument is the goal
for goal in "$@"; do :; done
case "$goal" in
  test)
    if grep -q FAIL src/main/*.java; then
      echo "Tests run: 1, Failures: 1" >&2
      exit 1
    fi
    ls src/main > test-results.txt
    ;;
  package)
    mkdir -p target && cat src/main/*.java > target/app.jar
    ;;
  *:check)
    echo "proxy=$MAVEN_OPTS" > dependency-check-report.txt
    ;;
  *)
    echo "unknown goal $goal" >&2
    exit 2
    ;;
esac
"""

BUILDFILE = """\
# Use these versions:
ARG JAVA_VERSION=8
ARG MAVEN_VERSION=3.5

FROM maven:${MAVEN_VERSION}-jdk-${JAVA_VERSION} as pom
COPY maven-settings.xml /root/.m2/settings.xml

WORKDIR /app
COPY app/pom.xml pom.xml
ARG HTTP_PROXY_HOST=""
ARG HTTP_PROXY_PORT=80
ENV MAVEN_OPTS="-Dhttp.proxyHost=${HTTP_PROXY_HOST} -Dhttp.proxyPort=${HTTP_PROXY_PORT}"
ENV MAVEN_CLI_OPTS="--batch-mode --quiet"

FROM pom as dependency_check
RUN sh ../tools/mvn ${MAVEN_CLI_OPTS} \\
    org.owasp:dependency-check-maven:check

# Copy the source code itself
FROM pom as source
COPY app/src src

FROM source as test
RUN sh ../tools/mvn ${MAVEN_CLI_OPTS} test

FROM source as package
RUN sh ../tools/mvn ${MAVEN_CLI_OPTS} package

# Use a jre image for running the application
FROM openjdk:${JAVA_VERSION}-jre-slim
WORKDIR /app
COPY --from=package /app/target/app.jar app.jar
CMD ["java", "-jar", "app.jar"]
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Build context with a Maven project and its build file."""
    root = tmp_path / "project"
    (root / "app" / "src" / "main").mkdir(parents=True)
    (root / "app" / "pom.xml").write_text("<project><artifactId>app</artifactId></project>\n")
    (root / "app" / "src" / "main" / "App.java").write_text("class App {}\n")
    (root / "maven-settings.xml").write_text("<settings/>\n")
    (root / "Dockerfile").write_text(BUILDFILE)
    return root


@pytest.fixture
def base_images(tmp_path: Path) -> dict[str, str]:
    """Directories standing in for the base images the build file names."""
    maven = tmp_path / "images" / "maven"
    (maven / "tools").mkdir(parents=True)
    (maven / "tools" / "mvn").write_text(MVN_SCRIPT)
    jre = tmp_path / "images" / "jre"
    (jre / "usr" / "lib" / "jvm").mkdir(parents=True)
    (jre / "usr" / "lib" / "jvm" / "release").write_text('JAVA_VERSION="1.8"\n')
    return {
        "maven:3.5-jdk-8": str(maven),
        "maven:3.5-jdk-11": str(maven),
        "openjdk:8-jre-slim": str(jre),
        "openjdk:11-jre-slim": str(jre),
    }


@pytest.fixture
def make_service(tmp_path: Path, project: Path, base_images: dict[str, str]):
    """Factory for build services over the project's build file."""
    services: list[BuildService] = []

    def _make(build_args: dict[str, str] | None = None) -> BuildService:
        settings = load_settings(
            start_dir=str(project),
            build={"context_dir": str(project), "max_workers": 4, "command_timeout": 60},
            store={"path": str(tmp_path / "store")},
            bases=base_images,
        )
        stages = load_buildfile(project / "Dockerfile", build_args=build_args)
        service = BuildService(stages, settings)
        services.append(service)
        return service

    yield _make

    for service in services:
        service.close()
