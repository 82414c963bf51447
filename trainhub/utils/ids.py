"""Identifier generation helpers."""

from __future__ import annotations

from datetime import date


def build_invoice_number(invoice_date: date, request_id: int) -> str:
    """Invoice number ``INV-YYYYMMDD-NNNN`` from the invoice date and booking request id."""
    return f"INV-{invoice_date:%Y%m%d}-{request_id:04d}"
