from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Sequence

SRC_ROOT = Path(__file__).resolve().parents[1] / "src" / "kasse"

_FRAMEWORKS = {"fastapi", "starlette", "redis", "httpx", "requests"}

# Imports each layer must not make. Outer layers (infrastructure, api) are unrestricted.
LAYER_RULES: dict[str, frozenset[str]] = {
    "domain": frozenset(
        _FRAMEWORKS
        | {
            "pydantic",
            "opentelemetry",
            "prometheus_client",
            "kasse.application",
            "kasse.infrastructure",
            "kasse.api",
        }
    ),
    "application": frozenset(_FRAMEWORKS | {"kasse.infrastructure", "kasse.api"}),
}


@dataclass(frozen=True)
class Violation:
    layer: str
    file_path: Path
    line: int
    module: str

    def __str__(self) -> str:
        return f"[{self.layer}] {self.file_path}:{self.line} -> {self.module}"


def _python_files(root: Path) -> Iterator[Path]:
    if root.is_file():
        if root.suffix == ".py":
            yield root
        return
    yield from sorted(root.rglob("*.py"))


def _is_forbidden(module: str, forbidden: Iterable[str]) -> bool:
    return any(module == name or module.startswith(f"{name}.") for name in forbidden)


def _imported_modules(tree: ast.AST) -> Iterator[tuple[int, str]]:
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield node.lineno, alias.name
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            yield node.lineno, node.module


def scan(layer: str, paths: Sequence[Path]) -> list[Violation]:
    forbidden = LAYER_RULES[layer]
    violations: list[Violation] = []
    for path in paths:
        for file_path in _python_files(path):
            tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
            violations.extend(
                Violation(layer=layer, file_path=file_path, line=line, module=module)
                for line, module in _imported_modules(tree)
                if _is_forbidden(module, forbidden)
            )
    return violations


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check that the inner layers of src/kasse stay free of framework and outer-layer imports."
    )
    parser.add_argument(
        "--layer",
        choices=sorted(LAYER_RULES),
        help="Rule set to apply to --path (default: domain).",
    )
    parser.add_argument(
        "--path",
        action="append",
        default=[],
        help="Path to scan (repeatable). Without it every restricted layer under src/kasse is checked.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.path:
        violations = scan(args.layer or "domain", [Path(item) for item in args.path])
    else:
        layers = [args.layer] if args.layer else sorted(LAYER_RULES)
        violations = [
            violation
            for layer in layers
            for violation in scan(layer, [SRC_ROOT / layer])
        ]

    if not violations:
        print("depcheck passed")
        return 0

    print("depcheck failed: forbidden imports detected")
    for violation in violations:
        print(violation)
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
