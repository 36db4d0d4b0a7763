"""Architectural fitness functions to enforce the ports-and-adapters layering.

The core stays free of driver imports, services reach stores only through
``doc_repository.core.ports``, and nothing inside the package reaches outward
into adapters except the bootstrap module.
"""

import re
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent.parent / "doc_repository"
DRIVER_PATTERN = re.compile(r"^\s*(from|import)\s+(tinydb|pymongo)\b", re.MULTILINE)


def _violations(directory: Path, pattern: re.Pattern[str]) -> list[Path]:
    return [
        py_file.relative_to(PACKAGE_DIR)
        for py_file in directory.rglob("*.py")
        if pattern.search(py_file.read_text())
    ]


def test_no_python_modules_at_root():
    """Only packaging and test configuration live at the repository root."""
    root = Path(__file__).parent.parent
    allowed = {"setup.py", "conftest.py", "main.py", "__main__.py"}
    violations = [f.name for f in root.glob("*.py") if f.name not in allowed]

    assert not violations, (
        f"Unexpected Python modules at root: {violations}\n"
        "Code belongs inside the doc_repository package."
    )


def test_no_store_drivers_in_core():
    """Core layer must not import document store drivers."""
    violations = _violations(PACKAGE_DIR / "core", DRIVER_PATTERN)

    assert not violations, (
        f"Core layer imports a store driver: {violations}\n"
        "Core must remain store-agnostic; use doc_repository.core.ports."
    )


def test_no_store_drivers_in_services():
    """Services reach stores only through DocumentStorePort."""
    violations = _violations(PACKAGE_DIR / "services", DRIVER_PATTERN)

    assert not violations, (
        f"Services layer imports a store driver: {violations}\n"
        "Use doc_repository.core.ports.DocumentStorePort instead."
    )


def test_core_and_services_do_not_import_adapters():
    """Adapters are wired in by bootstrap, never imported by inner layers."""
    pattern = re.compile(r"^\s*from\s+doc_repository\.adapters\b", re.MULTILINE)
    violations = _violations(PACKAGE_DIR / "core", pattern) + _violations(
        PACKAGE_DIR / "services", pattern
    )

    assert not violations, f"Inner layers import adapters: {violations}"
