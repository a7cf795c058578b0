from __future__ import annotations

import subprocess
import sys
from pathlib import Path

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "tools" / "depcheck.py"


def _run_depcheck(*args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, str(SCRIPT_PATH), *args],
        capture_output=True,
        text=True,
        check=False,
    )


def test_depcheck_fails_on_forbidden_import(tmp_path: Path) -> None:
    domain_dir = tmp_path / "domain"
    domain_dir.mkdir(parents=True, exist_ok=True)

    violating_file = domain_dir / "checkout.py"
    violating_file.write_text("import httpx\nfrom kasse.infrastructure.config import Settings\n", encoding="utf-8")

    result = _run_depcheck("--path", str(domain_dir))

    combined_output = f"{result.stdout}\n{result.stderr}"
    assert result.returncode != 0
    assert "httpx" in combined_output
    assert "kasse.infrastructure.config" in combined_output
    assert str(violating_file) in combined_output


def test_depcheck_passes_for_domain_package() -> None:
    result = _run_depcheck()

    assert result.returncode == 0, result.stdout + result.stderr


def test_application_layer_may_not_reach_infrastructure(tmp_path: Path) -> None:
    use_case = tmp_path / "use_case.py"
    use_case.write_text(
        "from pydantic import BaseModel\nfrom kasse.infrastructure.backend.http_client import BackendHttpClient\n",
        encoding="utf-8",
    )

    result = _run_depcheck("--layer", "application", "--path", str(use_case))

    assert result.returncode != 0
    assert "kasse.infrastructure.backend.http_client" in result.stdout
    assert "pydantic" not in result.stdout
