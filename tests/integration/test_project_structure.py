from pathlib import Path
import re


def test_target_package_structure_exists():
    required_paths = [
        "media_hub/app/cli",
        "media_hub/app/tui",
        "media_hub/core/engine",
        "media_hub/core/models",
        "media_hub/core/formatting",
        "media_hub/core/runtime",
        "media_hub/configs/schema",
        "media_hub/providers/aws/services",
        "media_hub/security",
        "tests/unit",
        "tests/integration",
    ]

    for path in required_paths:
        assert Path(path).exists(), f"missing path: {path}"


def test_no_root_tests_outside_unit_integration():
    root_tests = list(Path("tests").glob("test_*.py"))
    assert not root_tests, f"root tests remain: {[p.name for p in root_tests]}"


def test_core_does_not_import_the_tui():
    forbidden = re.compile(r"^\s*(from|import)\s+(questionary|media_hub\.app)(\.|\s|$)")
    violations = []

    for path in Path("media_hub/core").rglob("*.py"):
        for lineno, line in enumerate(
            path.read_text(encoding="utf-8").splitlines(), start=1
        ):
            if forbidden.search(line):
                violations.append(f"{path}:{lineno}:{line.strip()}")

    assert not violations, "core imports the interactive layer:\n" + "\n".join(
        violations
    )
