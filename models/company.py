"""Company branding and contact settings used on documents and screens."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional


DEFAULT_SENDER_EMAIL = "noreply@printshop.com"


@dataclass(frozen=True)
class CompanySettings:
    """Single-row ``company_settings`` table, with defaults for missing columns."""

    company_name: str = "Print Shop"
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    primary_color: str = "#1f2937"
    currency_symbol: str = "Le"
    currency_code: str = "SLL"
    notification_sender_name: Optional[str] = None
    notification_sender_email: str = DEFAULT_SENDER_EMAIL

    @property
    def sender(self) -> str:
        """``"Name <address>"`` header value for outbound email."""
        name = self.notification_sender_name or self.company_name
        return f"{name} <{self.notification_sender_email}>"

    def contact_lines(self) -> list:
        return [line for line in (self.address, self.phone, self.email, self.website) if line]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]], currency_symbol: Optional[str] = None) -> "CompanySettings":
        """Build from a row; ``None`` gives the defaults."""
        row = row or {}
        defaults = cls()
        return cls(
            company_name=row.get("company_name") or defaults.company_name,
            address=row.get("address"),
            phone=row.get("phone"),
            email=row.get("email"),
            website=row.get("website"),
            logo_url=row.get("logo_url"),
            primary_color=row.get("primary_color") or defaults.primary_color,
            currency_symbol=row.get("currency_symbol") or currency_symbol or defaults.currency_symbol,
            currency_code=row.get("currency_code") or defaults.currency_code,
            notification_sender_name=row.get("notification_sender_name"),
            notification_sender_email=row.get("notification_sender_email") or DEFAULT_SENDER_EMAIL,
        )
