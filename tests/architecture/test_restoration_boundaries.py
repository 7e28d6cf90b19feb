"""
Import and transaction boundaries.

1. Kernel independence -- restoration_kernel/** never imports
   restoration_services or restoration_config.
2. Domain purity       -- restoration_kernel/domain/** imports no ORM, DB,
   model, service or selector code.
3. Config entrypoint   -- outside restoration_config only the package root
   and its schema module are imported (never the loader).
4. Transaction owner   -- kernel services never call session.commit() or
   session.rollback(); only the unit of work does.

All scanning is done via AST.
"""

import ast
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    tree = ast.parse(path.read_text(), filename=str(path))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            results.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            if _matches_any(module, forbidden):
                found.append(f"{path.relative_to(ROOT)}:{lineno} imports {module}")
    return found


def test_packages_exist():
    for package in ("restoration_kernel", "restoration_services", "restoration_config"):
        assert _python_files(package), f"{package} has no modules"


def test_kernel_does_not_import_outer_layers():
    assert _violations(
        "restoration_kernel", ("restoration_services", "restoration_config")
    ) == []


def test_domain_is_pure():
    assert _violations(
        "restoration_kernel/domain",
        (
            "sqlalchemy",
            "restoration_kernel.db",
            "restoration_kernel.models",
            "restoration_kernel.services",
            "restoration_kernel.selectors",
        ),
    ) == []


@pytest.mark.parametrize("package", ["restoration_kernel", "restoration_services"])
def test_config_loader_not_imported_directly(package):
    assert _violations(package, ("restoration_config.loader",)) == []


def _session_commits(path: Path) -> list[int]:
    tree = ast.parse(path.read_text(), filename=str(path))
    lines = []
    for node in ast.walk(tree):
        if not (isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute)):
            continue
        if node.func.attr not in ("commit", "rollback"):
            continue
        target = node.func.value
        name = target.attr if isinstance(target, ast.Attribute) else getattr(target, "id", "")
        if name == "session":
            lines.append(node.lineno)
    return lines


def test_kernel_services_never_commit():
    offenders = [
        f"{path.relative_to(ROOT)}:{lineno}"
        for path in _python_files("restoration_kernel/services")
        for lineno in _session_commits(path)
    ]
    assert offenders == []


def test_unit_of_work_is_the_commit_point():
    assert _session_commits(ROOT / "restoration_services" / "unit_of_work.py")
