"""Monthly payroll runs."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from core.exceptions import NotFoundError, ValidationError
from core.gateway import DataGateway
from core.timeutil import iso_now
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


def payroll_month(value: Union[str, date, datetime]) -> str:
    """First day of the month as ``YYYY-MM-01``."""
    if isinstance(value, str):
        try:
            value = datetime.strptime(value[:7], "%Y-%m")
        except ValueError:
            raise ValidationError(f"Invalid payroll month: {value}", field="month")
    return f"{value.year:04d}-{value.month:02d}-01"


def net_amount(employee: Dict[str, Any]) -> Decimal:
    return (Decimal(str(employee.get("salary") or 0))
            + Decimal(str(employee.get("allowances") or 0))
            - Decimal(str(employee.get("deductions") or 0)))


class PayrollService:
    """Create one payroll per month and mark it processed."""

    def __init__(self, gateway: DataGateway):
        self._gateway = gateway

    def list_payrolls(self) -> List[Dict[str, Any]]:
        return (self._gateway.table("payrolls")
                .select("*")
                .order("month", ascending=False)
                .execute()) or []

    def payments(self, payroll_id: Any) -> List[Dict[str, Any]]:
        return (self._gateway.table("payroll_payments")
                .select("*, employees(name, position)")
                .eq("payroll_id", payroll_id)
                .execute()) or []

    def create_payroll(self, month: Union[str, date, datetime],
                       employees: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Draft the payroll for ``month``.

        Each employee is paid salary + allowances - deductions; the payroll
        total is the sum of those.

        Raises:
            ValidationError: A payroll for that month already exists, or
                there is nobody to pay
        """
        month_string = payroll_month(month)

        existing = (self._gateway.table("payrolls")
                    .select("id")
                    .eq("month", month_string)
                    .maybe_single()
                    .execute())
        if existing:
            raise ValidationError("A payroll for this month already exists.", field="month")

        if employees is None:
            employees = (self._gateway.table("employees")
                         .select("*")
                         .eq("is_active", True)
                         .execute()) or []
        if not employees:
            raise ValidationError("No active employees to pay", field="employees")

        total = sum((net_amount(emp) for emp in employees), Decimal("0"))
        payroll = self._gateway.table("payrolls").insert({
            "month": month_string,
            "total_amount": float(total),
            "status": "draft",
        })[0]

        self._gateway.table("payroll_payments").insert([
            {
                "payroll_id": payroll["id"],
                "employee_id": emp.get("id"),
                "base_salary": float(emp.get("salary") or 0),
                "allowances": float(emp.get("allowances") or 0),
                "deductions": float(emp.get("deductions") or 0),
                "net_amount": float(net_amount(emp)),
            }
            for emp in employees
        ])
        logger.info(f"Payroll for {month_string} drafted: {len(employees)} employees, total {total:.2f}")
        return payroll

    def process_payroll(self, payroll_id: Any) -> Dict[str, Any]:
        rows = (self._gateway.table("payrolls")
                .eq("id", payroll_id)
                .update({"status": "processed", "processed_at": iso_now()}))
        if not rows:
            raise NotFoundError("update:payrolls", f"Payroll {payroll_id} not found")
        logger.info(f"Payroll {payroll_id} processed")
        return rows[0]
