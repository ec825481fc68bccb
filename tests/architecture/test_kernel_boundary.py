"""
Kernel boundary tests.

ledger_kernel/** never imports ledger_engines, ledger_modules or
ledger_config; outer layers plug into the kernel (for example through
``register_immutability_listeners(extra_listeners=...)``), never the other
way round.  These tests read source code via AST.
"""

import ast
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((REPO_ROOT / package).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    """(line_number, module) for every import in ``path``, lazy ones included."""
    tree = ast.parse(path.read_text(), filename=str(path))
    results = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            results.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


class TestKernelNoUpwardDependencies:
    """The kernel depends on nothing above it."""

    FORBIDDEN_PREFIXES = ("ledger_engines", "ledger_modules", "ledger_config")

    def test_kernel_does_not_import_outer_packages(self):
        """No module under ledger_kernel imports an outer package, even lazily."""
        violations = [
            f"{path.relative_to(REPO_ROOT)}:{lineno} imports '{module}'"
            for path in _python_files("ledger_kernel")
            for lineno, module in _extract_imports(path)
            if any(module == p or module.startswith(f"{p}.") for p in self.FORBIDDEN_PREFIXES)
        ]
        assert not violations, "kernel imports outer layers:\n" + "\n".join(violations)

    def test_engines_stay_pure(self):
        """Pure engines do not reach into the modules layer."""
        violations = [
            f"{path.relative_to(REPO_ROOT)}:{lineno} imports '{module}'"
            for path in _python_files("ledger_engines")
            for lineno, module in _extract_imports(path)
            if module == "ledger_modules" or module.startswith("ledger_modules.")
        ]
        assert not violations, "engines import the modules layer:\n" + "\n".join(violations)


class TestModuleListenersRegistered:
    """Payment rows stay append-only with the listeners supplied from outside the kernel."""

    def test_payment_listeners_supplied_by_billing(self):
        """The billing module hands one before_update guard per payment table to the kernel."""
        from ledger_modules._orm_registry import module_immutability_listeners
        from ledger_modules.billing.orm import BillPaymentModel, InvoicePaymentModel

        listeners = module_immutability_listeners()

        assert [(target, name) for target, name, _ in listeners] == [
            (InvoicePaymentModel, "before_update"),
            (BillPaymentModel, "before_update"),
        ]
