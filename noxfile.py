"""Nox sessions for the leaderboard bot: tests, lint and coverage."""

import nox

nox.options.sessions = ["tests", "lint"]
python_versions = ["3.11", "3.12"]

COVERAGE_TARGETS = ("bots", "challenges", "ranking", "retro_api")


def _cov_args() -> list[str]:
    return [f"--cov={target}" for target in COVERAGE_TARGETS]


@nox.session(python=python_versions)
def tests(session):
    """Run the test suite with coverage."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *_cov_args(),
        "--cov-report=term-missing",
        "--cov-report=xml:coverage.xml",
        "--cov-fail-under=80",
        *session.posargs,
    )


@nox.session(python=python_versions[0])
def lint(session):
    """Run ruff for linting and formatting checks."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")


@nox.session(python=python_versions[0])
def format_code(session):
    """Format code with ruff."""
    session.install("ruff>=0.1.0")
    session.run("ruff", "format", ".")
    session.run("ruff", "check", "--fix", ".")


@nox.session(python=python_versions[0])
def ranking(session):
    """Run only the rank resolution tests; quick check while tuning tie rules."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        "tests/test_ranking_resolver.py",
        "tests/test_ranking_points.py",
        "-v",
        *session.posargs,
    )


@nox.session(python=python_versions[0])
def coverage_report(session):
    """Generate an HTML coverage report with branch data."""
    session.install("-e", ".[dev]")
    session.run(
        "pytest",
        *_cov_args(),
        "--cov-branch",
        "--cov-report=html:htmlcov",
        "--tb=short",
    )
    session.log("Coverage report generated in htmlcov/ directory")
