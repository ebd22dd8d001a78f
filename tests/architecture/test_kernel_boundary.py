"""
Kernel Boundary & Invariants Contract.

Tests that enforce the kernel's architectural boundaries:

1. escrow_kernel/** may NOT import escrow_config. Configuration reaches the
   kernel only as EscrowPolicy values built by escrow_config.bridges.

2. escrow_kernel/domain/** is pure: no SQLAlchemy and no services.

3. Services never commit; the caller owns the outer transaction.

4. Runtime checks raise typed errors; no ``assert`` statements, which
   vanish under ``python -O``.

5. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST -- they cannot break anything.
"""

import ast
from pathlib import Path

from escrow_kernel.invariants import (
    ALL_ESCROW_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    EscrowInvariant,
)

ROOT = Path(__file__).resolve().parents[2]
KERNEL = ROOT / "escrow_kernel"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(root: Path) -> list[Path]:
    return sorted(root.rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(files: list[Path], prefixes: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in files:
        for lineno, module in _extract_imports(filepath):
            for prefix in prefixes:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:
    def test_kernel_files_found(self):
        assert _python_files(KERNEL)

    def test_kernel_does_not_import_config(self):
        violations = _violations(_python_files(KERNEL), FORBIDDEN_KERNEL_IMPORTS)
        assert not violations, (
            "Kernel boundary violation -- escrow_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )


class TestDomainPurity:
    FORBIDDEN = ("sqlalchemy", "escrow_kernel.services", "escrow_kernel.models", "escrow_kernel.db")

    def test_domain_has_no_persistence_imports(self):
        violations = _violations(_python_files(KERNEL / "domain"), self.FORBIDDEN)
        assert not violations, (
            "Domain purity violation -- escrow_kernel/domain/** must not "
            "touch persistence:\n" + "\n".join(violations)
        )


class TestServicesNeverCommit:
    def test_no_commit_calls(self):
        offenders: list[str] = []
        for filepath in _python_files(KERNEL / "services"):
            tree = ast.parse(filepath.read_text(), filename=str(filepath))
            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Attribute)
                    and node.func.attr == "commit"
                    and isinstance(node.func.value, ast.Attribute)
                    and node.func.value.attr in ("session", "_session")
                ):
                    offenders.append(f"  {filepath.relative_to(ROOT)}:{node.lineno}")
        assert not offenders, "Services must not commit:\n" + "\n".join(offenders)


class TestNoRuntimeAsserts:
    def test_no_assert_statements(self):
        offenders: list[str] = []
        for filepath in _python_files(KERNEL) + _python_files(ROOT / "escrow_config"):
            tree = ast.parse(filepath.read_text(), filename=str(filepath))
            for node in ast.walk(tree):
                if isinstance(node, ast.Assert):
                    offenders.append(f"  {filepath.relative_to(ROOT)}:{node.lineno}")
        assert not offenders, "Use typed errors, not assert:\n" + "\n".join(offenders)


class TestInvariantsDeclared:
    def test_invariants_non_empty(self):
        assert ALL_ESCROW_INVARIANTS
        assert ALL_ESCROW_INVARIANTS == frozenset(EscrowInvariant)

    def test_every_invariant_documented(self):
        source = (KERNEL / "invariants.py").read_text()
        tree = ast.parse(source)
        documented = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.ClassDef) and node.name == "EscrowInvariant":
                body = node.body
                for stmt, following in zip(body, body[1:]):
                    if (
                        isinstance(stmt, ast.Assign)
                        and isinstance(following, ast.Expr)
                        and isinstance(following.value, ast.Constant)
                    ):
                        documented.add(stmt.targets[0].id)
        assert documented == {i.name for i in EscrowInvariant}
