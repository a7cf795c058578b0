from __future__ import annotations

import os
from dataclasses import dataclass

from kasse.domain.checkout.validation import ComplianceMode, ComplianceRules

DEFAULT_BACKEND_URL = "http://localhost:5183/api/"


@dataclass(frozen=True)
class Settings:
    backend_url: str
    backend_token: str | None
    timeout_seconds: float
    retry_max_attempts: int
    retry_backoff_ms: int
    fiscal_tax_id: str
    register_id: str
    compliance_mode: ComplianceMode
    auto_close_seconds: float
    currency: str
    redis_url: str | None

    @classmethod
    def from_env(cls) -> Settings:
        mode = os.getenv("KASSE_COMPLIANCE_MODE", ComplianceMode.STANDARD.value).strip().upper()
        try:
            compliance_mode = ComplianceMode(mode)
        except ValueError as exc:
            raise ValueError(f"KASSE_COMPLIANCE_MODE must be one of STRICT, STANDARD, TRAINING, got {mode!r}") from exc

        settings = cls(
            backend_url=_normalize_base_url(os.getenv("KASSE_BACKEND_URL", DEFAULT_BACKEND_URL)),
            backend_token=os.getenv("KASSE_BACKEND_TOKEN") or None,
            timeout_seconds=float(os.getenv("KASSE_TIMEOUT_SECONDS", "10")),
            retry_max_attempts=int(os.getenv("KASSE_RETRY_MAX_ATTEMPTS", "3")),
            retry_backoff_ms=int(os.getenv("KASSE_RETRY_BACKOFF_MS", "150")),
            fiscal_tax_id=os.getenv("KASSE_FISCAL_TAX_ID", "ATU12345678").strip(),
            register_id=os.getenv("KASSE_REGISTER_ID", "KASSE-001").strip(),
            compliance_mode=compliance_mode,
            auto_close_seconds=float(os.getenv("KASSE_AUTO_CLOSE_SECONDS", "1.5")),
            currency=os.getenv("KASSE_CURRENCY", "EUR").strip().upper(),
            redis_url=os.getenv("REDIS_URL") or None,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not self.backend_url:
            raise ValueError("KASSE_BACKEND_URL must not be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("KASSE_TIMEOUT_SECONDS must be > 0")
        if self.retry_max_attempts < 1:
            raise ValueError("KASSE_RETRY_MAX_ATTEMPTS must be >= 1")
        if self.retry_backoff_ms < 0:
            raise ValueError("KASSE_RETRY_BACKOFF_MS must be >= 0")
        if self.auto_close_seconds < 0:
            raise ValueError("KASSE_AUTO_CLOSE_SECONDS must be >= 0")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError("KASSE_CURRENCY must be a 3-letter currency code")
        if not self.fiscal_tax_id:
            raise ValueError("KASSE_FISCAL_TAX_ID must not be empty")
        if not self.register_id:
            raise ValueError("KASSE_REGISTER_ID must not be empty")

    def compliance_rules(self) -> ComplianceRules:
        return ComplianceRules(
            fiscal_tax_id=self.fiscal_tax_id,
            register_id=self.register_id,
            mode=self.compliance_mode,
        )


def _normalize_base_url(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        return ""
    return normalized if normalized.endswith("/") else f"{normalized}/"
