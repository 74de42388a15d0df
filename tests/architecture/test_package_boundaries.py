"""
Package dependency boundaries.

    clinic_kernel     imports no other clinic package (create_tables and
                      drop_tables may load outer ORM models)
    clinic_config     depends on the kernel only
    clinic_portal     never touches the store: no sqlalchemy, no ingestion
                      or batch imports
    clinic_ingestion  never depends on the batch layer

These tests read source code via AST; they cannot break anything.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(encoding="utf-8"), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...], exempt: tuple[str, ...] = ()) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        relative = filepath.relative_to(ROOT).as_posix()
        if relative in exempt:
            continue
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {relative}:{lineno} imports '{module}'")
    return found


class TestKernelBoundary:
    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations(
            "clinic_kernel",
            ("clinic_config", "clinic_portal", "clinic_ingestion", "clinic_batch"),
            exempt=("clinic_kernel/db/engine.py",),
        )
        assert not violations, "Kernel imports an outer package:\n" + "\n".join(violations)


class TestConfigBoundary:
    def test_config_depends_on_kernel_only(self):
        violations = _violations(
            "clinic_config", ("clinic_portal", "clinic_ingestion", "clinic_batch", "sqlalchemy"),
        )
        assert not violations, "Config imports beyond the kernel:\n" + "\n".join(violations)


class TestPortalBoundary:
    def test_portal_never_touches_the_store(self):
        violations = _violations(
            "clinic_portal", ("sqlalchemy", "clinic_ingestion", "clinic_batch", "clinic_kernel.models"),
        )
        assert not violations, "Portal reaches into the store:\n" + "\n".join(violations)


class TestIngestionBoundary:
    def test_ingestion_does_not_import_batch(self):
        violations = _violations("clinic_ingestion", ("clinic_batch", "playwright"))
        assert not violations, "Ingestion imports the batch layer:\n" + "\n".join(violations)
