"""
Import-boundary enforcement for the workflow kernel.

1. Domain purity      -- inventory_kernel/domain/** may not import the ORM,
                         the db layer, models, services or selectors.
2. Clock discipline   -- only domain/clock.py reads the wall clock.
3. Config loading     -- only inventory_config/__init__.py imports the loader;
                         the kernel reads inventory_config.schema only.
4. Commit ownership   -- services other than the orchestrator never call
                         ``session.commit()``.

All scanning is done via AST; these tests are read-only.
"""

import ast
import glob
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(root: str) -> list[str]:
    return sorted(glob.glob(str(ROOT / root / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _qualified_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for calls on a plain name."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if (
            isinstance(node, ast.Call)
            and isinstance(node.func, ast.Attribute)
            and isinstance(node.func.value, ast.Name)
        ):
            results.append((node.lineno, f"{node.func.value.id}.{node.func.attr}"))
    return results


class TestDomainPurity:
    FORBIDDEN = (
        "sqlalchemy",
        "inventory_kernel.db",
        "inventory_kernel.models",
        "inventory_kernel.services",
        "inventory_kernel.selectors",
        "inventory_config",
    )

    def test_domain_imports(self):
        violations = [
            f"{path}:{line} imports {module}"
            for path in _python_files("inventory_kernel/domain")
            for line, module in _extract_imports(path)
            if _matches_any(module, self.FORBIDDEN)
        ]
        assert not violations, "\n".join(violations)

    WALL_CLOCK = {"datetime.now", "datetime.utcnow", "date.today"}

    def test_only_clock_reads_wall_time(self):
        violations = [
            f"{path}:{line} calls {call}"
            for path in _python_files("inventory_kernel")
            if not path.endswith("clock.py")
            for line, call in _qualified_calls(path)
            if call in self.WALL_CLOCK
        ]
        assert not violations, "\n".join(violations)


class TestConfigCentralisation:
    def test_loader_is_private(self):
        violations = [
            f"{path}:{line} imports {module}"
            for path in _python_files("inventory_kernel") + _python_files("scripts")
            for line, module in _extract_imports(path)
            if _matches_any(module, ("inventory_config.loader",))
        ]
        assert not violations, "\n".join(violations)

    def test_schema_does_not_import_kernel(self):
        imports = _extract_imports(str(ROOT / "inventory_config" / "schema.py"))
        assert not [m for _, m in imports if m.startswith("inventory_kernel")]


class TestCommitOwnership:
    @staticmethod
    def _session_commits(filepath: str) -> list[int]:
        """Lines calling ``session.commit()`` or ``self._session.commit()``."""
        tree = ast.parse(Path(filepath).read_text(), filename=filepath)
        lines = []
        for node in ast.walk(tree):
            if not (isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute)):
                continue
            if node.func.attr != "commit":
                continue
            receiver = node.func.value
            if isinstance(receiver, ast.Name) and receiver.id == "session":
                lines.append(node.lineno)
            elif isinstance(receiver, ast.Attribute) and receiver.attr == "_session":
                lines.append(node.lineno)
        return lines

    def test_only_orchestrator_commits(self):
        violations = [
            f"{path}:{line}"
            for path in _python_files("inventory_kernel/services")
            if not path.endswith("workflow_orchestrator.py")
            for line in self._session_commits(path)
        ]
        assert not violations, "\n".join(violations)
