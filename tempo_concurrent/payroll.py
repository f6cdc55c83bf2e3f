"""Payroll CSV import for concurrent payment runs."""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List

from .calldata import is_address

REQUIRED_COLUMNS = ("employee_id", "name", "wallet_address", "amount")


@dataclass
class PayrollEmployee:
    employee_id: str
    name: str
    wallet_address: str
    amount: str
    department: str | None = None


@dataclass
class PayrollRowError:
    row: int
    field: str
    message: str
    value: str


@dataclass
class PayrollParseResult:
    employees: List[PayrollEmployee] = field(default_factory=list)
    errors: List[PayrollRowError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_payroll_csv(path: str | Path) -> PayrollParseResult:
    """Read a payroll CSV, collecting row-level problems instead of stopping.

    Row numbers in errors count the header as row 1, matching what a
    spreadsheet shows.
    """

    result = PayrollParseResult()
    with Path(path).open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        headers = [h.strip() for h in reader.fieldnames or []]
        if not headers:
            result.errors.append(
                PayrollRowError(0, "headers", "CSV file is empty or has no headers", "")
            )
            return result
        missing = [col for col in REQUIRED_COLUMNS if col not in headers]
        if missing:
            result.errors.append(
                PayrollRowError(
                    0, "headers", f"Missing required columns: {', '.join(missing)}", ", ".join(headers)
                )
            )
            return result

        for row_number, raw in enumerate(reader, start=2):
            row = {(k or "").strip(): (v or "").strip() for k, v in raw.items()}
            row_errors = _validate_row(row_number, row)
            if row_errors:
                result.errors.extend(row_errors)
                continue
            result.employees.append(
                PayrollEmployee(
                    employee_id=row["employee_id"],
                    name=row["name"],
                    wallet_address=row["wallet_address"],
                    amount=row["amount"],
                    department=row.get("department") or None,
                )
            )
    return result


def _validate_row(row_number: int, row: Dict[str, str]) -> List[PayrollRowError]:
    errors: List[PayrollRowError] = []
    if not row.get("employee_id"):
        errors.append(PayrollRowError(row_number, "employee_id", "Employee ID is required", ""))
    address = row.get("wallet_address", "")
    if not is_address(address):
        errors.append(
            PayrollRowError(row_number, "wallet_address", "Invalid wallet address", address)
        )
    amount = row.get("amount", "")
    try:
        valid_amount = Decimal(amount) > 0
    except InvalidOperation:
        valid_amount = False
    if not valid_amount:
        errors.append(PayrollRowError(row_number, "amount", "Amount must be a positive number", amount))
    return errors


def generate_payroll_memo(employee_id: str, period: str | None = None) -> str:
    """Return ``{PERIOD}-{EMPLOYEE_ID}`` trimmed to fit a 32-byte memo."""

    period_str = period or date.today().strftime("%b%Y").upper()
    memo = f"{period_str}-{employee_id}"
    encoded = memo.encode("utf-8")
    if len(encoded) > 32:
        memo = encoded[:32].decode("utf-8", errors="ignore")
    return memo


def payroll_to_payments(
    employees: List[PayrollEmployee], token: str, period: str | None = None
) -> List[Dict[str, Any]]:
    return [
        {
            "token": token,
            "to": employee.wallet_address,
            "amount": employee.amount,
            "memo": generate_payroll_memo(employee.employee_id, period),
        }
        for employee in employees
    ]
